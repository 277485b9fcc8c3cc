"""Protocol module for WebSocket message handling."""
from .messages import (
    ClientMessage,
    StateUpdateMessage,
    parse_client_message,
)
from .handlers import MessageHandler

__all__ = [
    "ClientMessage",
    "StateUpdateMessage",
    "parse_client_message",
    "MessageHandler",
]
