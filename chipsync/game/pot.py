"""Pot tracking for the current hand."""
from dataclasses import dataclass


@dataclass
class Pot:
    """Chips wagered during the current hand and not yet paid out."""

    total: int = 0

    def add_bet(self, amount: int) -> None:
        """Add a bet to the pot."""
        self.total += amount

    def get_total(self) -> int:
        """Get total pot amount."""
        return self.total

    def collect(self) -> int:
        """Empty the pot for payout.

        Returns:
            Chips that were in the pot.
        """
        amount = self.total
        self.reset()
        return amount

    def reset(self) -> None:
        """Reset pot for a new hand."""
        self.total = 0
