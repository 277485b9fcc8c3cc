"""Pydantic message schemas for WebSocket protocol."""
from typing import Optional, Literal, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for messages: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


_CLIENT_ID = AliasChoices("clientId", "uuid", "client_id")


# ============= Client -> Server Messages =============

class AddPlayerMessage(WireModel):
    """Join the game, or reclaim a player after reconnecting."""
    type: Literal["addPlayer"] = "addPlayer"
    name: str
    initial_chips: int = Field(ge=0)
    client_id: str = Field(min_length=1, validation_alias=_CLIENT_ID)


class BetMessage(WireModel):
    """Wager chips from the player's stack."""
    type: Literal["bet", "actionBet"] = "actionBet"
    player_id: str
    amount: int


class AllInMessage(WireModel):
    """Wager the whole stack."""
    type: Literal["actionAllIn"] = "actionAllIn"
    player_id: str


class FoldMessage(WireModel):
    """Leave the current hand."""
    type: Literal["actionFold"] = "actionFold"
    player_id: str


class LoanMessage(WireModel):
    """Borrow chips with an empty stack."""
    type: Literal["actionLoan"] = "actionLoan"
    player_id: str
    amount: int


class NextPhaseMessage(WireModel):
    """Toggle the sender's vote to advance the phase."""
    type: Literal["nextPhase"] = "nextPhase"


class ConfirmWinMessage(WireModel):
    """Claim the pot."""
    type: Literal["confirmWin"] = "confirmWin"
    player_id: str


class ResetGameMessage(WireModel):
    """Restore every player's buy-in and start over."""
    type: Literal["resetGame"] = "resetGame"


class RemovePlayerMessage(WireModel):
    """Remove the sender's own player."""
    type: Literal["removePlayer"] = "removePlayer"
    player_id: Optional[str] = None
    client_id: Optional[str] = Field(default=None, validation_alias=_CLIENT_ID)


class DeleteAllPlayersMessage(WireModel):
    """Clear the player list."""
    type: Literal["deleteAllPlayers"] = "deleteAllPlayers"


# Union of all client messages
ClientMessage = Union[
    AddPlayerMessage,
    BetMessage,
    AllInMessage,
    FoldMessage,
    LoanMessage,
    NextPhaseMessage,
    ConfirmWinMessage,
    ResetGameMessage,
    RemovePlayerMessage,
    DeleteAllPlayersMessage,
]


# ============= Server -> Client Messages =============

class ConnectedMessage(WireModel):
    """Tells a new connection the id it must claim in its requests."""
    type: Literal["connected"] = "connected"
    connection_id: str


class PlayerState(WireModel):
    """One player in a state snapshot."""
    connection_id: str = Field(alias="id")
    client_id: str
    name: str
    chips: int
    original_chips: int
    bet: int
    call_need: int
    loan: int
    in_debt: bool
    folded: bool
    ready: bool = False


class SessionState(WireModel):
    """Full session snapshot."""
    round_index: int
    rounds: list[str]
    round_name: str
    phase: str
    pot: int
    ready_players: list[str]
    players: list[PlayerState]


class StateUpdateMessage(WireModel):
    """Full state update."""
    type: Literal["updateState"] = "updateState"
    state: SessionState


class RejectedMessage(WireModel):
    """Rejection notice, sent only when rejections are reported."""
    type: Literal["actionRejected"] = "actionRejected"
    message: str
    code: Optional[str] = None


def parse_client_message(data: dict) -> ClientMessage:
    """Parse a client message from JSON dict.

    Args:
        data: Message data dictionary.

    Returns:
        Parsed client message.

    Raises:
        ValueError: If message type is unknown or the payload is invalid.
    """
    if not isinstance(data, dict):
        raise ValueError("Message must be a JSON object")

    msg_type = data.get("type")

    type_map = {
        "addPlayer": AddPlayerMessage,
        "bet": BetMessage,
        "actionBet": BetMessage,
        "actionAllIn": AllInMessage,
        "actionFold": FoldMessage,
        "actionLoan": LoanMessage,
        "nextPhase": NextPhaseMessage,
        "confirmWin": ConfirmWinMessage,
        "resetGame": ResetGameMessage,
        "removePlayer": RemovePlayerMessage,
        "deleteAllPlayers": DeleteAllPlayersMessage,
    }

    if not isinstance(msg_type, str) or msg_type not in type_map:
        raise ValueError(f"Unknown message type: {msg_type}")

    return type_map[msg_type].model_validate(data)


def state_message(state: dict) -> dict:
    """Build the wire form of an updateState message from a session snapshot."""
    return StateUpdateMessage(state=SessionState.model_validate(state)).model_dump(by_alias=True)
