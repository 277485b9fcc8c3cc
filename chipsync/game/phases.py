"""Round/phase progression and ready-vote tracking."""
from enum import Enum
from typing import Iterable


class Phase(str, Enum):
    """Sub-state within a round."""
    BETTING = "bet"    # Wagering open
    DRAWING = "draw"   # Between wagering rounds


ROUND_NAMES = ("preflop", "flop", "turn", "river")
LAST_ROUND = len(ROUND_NAMES) - 1


def next_position(phase: Phase, round_index: int) -> tuple[Phase, int]:
    """Get the (phase, round) that follows a quorum advance.

    Betting moves to drawing within the same round. Drawing moves to betting
    in the next round, except at the last round where the hand stays put
    until a win or reset ends it.
    """
    if phase == Phase.BETTING:
        return Phase.DRAWING, round_index
    if round_index >= LAST_ROUND:
        return Phase.DRAWING, LAST_ROUND
    return Phase.BETTING, round_index + 1


class ReadyVotes:
    """Connection ids that have voted to advance the current phase."""

    def __init__(self) -> None:
        self._votes: set[str] = set()

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._votes

    def __len__(self) -> int:
        return len(self._votes)

    def toggle(self, connection_id: str) -> bool:
        """Flip a connection's vote.

        Returns:
            True if the connection is now ready.
        """
        if connection_id in self._votes:
            self._votes.remove(connection_id)
            return False
        self._votes.add(connection_id)
        return True

    def discard(self, connection_id: str) -> None:
        self._votes.discard(connection_id)

    def replace(self, old_id: str, new_id: str) -> None:
        """Carry a pending vote over to a new connection id."""
        if old_id in self._votes:
            self._votes.remove(old_id)
            self._votes.add(new_id)

    def clear(self) -> None:
        self._votes.clear()

    def has_quorum(self, active_ids: Iterable[str]) -> bool:
        """Check whether every active connection has voted.

        An empty active set never forms a quorum.
        """
        active = list(active_ids)
        return bool(active) and all(cid in self._votes for cid in active)
