"""Real-time poker chip tracker server."""

__version__ = "1.0.0"
