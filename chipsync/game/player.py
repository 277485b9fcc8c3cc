"""Player model."""
from dataclasses import dataclass


@dataclass
class Player:
    """A player tracked by the session.

    `connection_id` follows the player's current WebSocket and changes on
    reconnect; `client_id` is the durable key chosen by the client.
    """

    connection_id: str
    client_id: str
    name: str
    chips: int = 0
    original_chips: int = 0
    bet: int = 0
    call_need: int = 0
    loan: int = 0
    in_debt: bool = False
    folded: bool = False

    @classmethod
    def buy_in(cls, connection_id: str, client_id: str, name: str, chips: int) -> "Player":
        """Create a new player holding their initial stack."""
        return cls(
            connection_id=connection_id,
            client_id=client_id,
            name=name,
            chips=chips,
            original_chips=chips,
        )

    def place_bet(self, amount: int) -> int:
        """Move chips from the stack into the current bet.

        Args:
            amount: Chips to wager. Caller has checked the stack covers it.

        Returns:
            Amount moved.
        """
        self.chips -= amount
        self.bet += amount
        return amount

    def go_all_in(self) -> int:
        """Move the whole stack into the current bet.

        Returns:
            Amount moved.
        """
        return self.place_bet(self.chips)

    def fold(self) -> None:
        """Withdraw from the current hand."""
        self.folded = True

    def take_loan(self, amount: int) -> None:
        """Borrow chips. Caller has checked the stack is empty."""
        self.chips = amount
        self.loan = amount
        self.in_debt = True

    def repay_loan(self) -> int:
        """Pay back as much of the outstanding loan as the stack allows.

        Returns:
            Amount repaid.
        """
        if not self.in_debt:
            return 0

        if self.chips >= self.loan:
            repaid = self.loan
            self.chips -= self.loan
            self.loan = 0
            self.in_debt = False
        else:
            repaid = self.chips
            self.loan -= self.chips
            self.chips = 0
        return repaid

    def accrue_interest(self, percent: int) -> int:
        """Grow the outstanding loan by `percent`, rounded up.

        Returns:
            Interest added.
        """
        if not self.in_debt:
            return 0
        interest = -(-self.loan * percent // 100)
        self.loan += interest
        return interest

    def reset_for_new_hand(self) -> None:
        """Clear per-hand state after a win."""
        self.bet = 0
        self.folded = False

    def reset_to_buy_in(self) -> None:
        """Restore the initial stack and clear debts and hand state."""
        self.chips = self.original_chips
        self.bet = 0
        self.call_need = 0
        self.loan = 0
        self.in_debt = False
        self.folded = False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "connection_id": self.connection_id,
            "client_id": self.client_id,
            "name": self.name,
            "chips": self.chips,
            "original_chips": self.original_chips,
            "bet": self.bet,
            "call_need": self.call_need,
            "loan": self.loan,
            "in_debt": self.in_debt,
            "folded": self.folded,
        }
