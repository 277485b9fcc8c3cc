"""Game engine module."""
from .player import Player
from .pot import Pot
from .phases import Phase, ROUND_NAMES, ReadyVotes, next_position
from .betting import (
    Action,
    ActionProcessor,
    ActionResult,
    ActionType,
    RejectReason,
    RequestContext,
)
from .session import GameSession

__all__ = [
    "Player",
    "Pot",
    "Phase",
    "ROUND_NAMES",
    "ReadyVotes",
    "next_position",
    "Action",
    "ActionProcessor",
    "ActionResult",
    "ActionType",
    "RejectReason",
    "RequestContext",
    "GameSession",
]
