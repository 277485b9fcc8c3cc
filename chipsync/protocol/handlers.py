"""Message handlers for WebSocket protocol."""
import json
from typing import TYPE_CHECKING

from chipsync.protocol.messages import (
    parse_client_message,
    ClientMessage,
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
)
from chipsync.game.betting import (
    APPLIED,
    Action,
    ActionResult,
    ActionType,
    RejectReason,
    RequestContext,
)
from chipsync.utils.logger import get_logger

if TYPE_CHECKING:
    from chipsync.main import GameServer

logger = get_logger(__name__)


class MessageHandler:
    """Turns incoming WebSocket frames into session mutations."""

    def __init__(self, server: "GameServer"):
        """Initialize handler.

        Args:
            server: The game server instance.
        """
        self.server = server

    def handle_message(self, connection_id: str, raw_message: str) -> ActionResult:
        """Handle an incoming message.

        Args:
            connection_id: Connection the frame arrived on.
            raw_message: Raw JSON message string.

        Returns:
            Result of applying the message. Malformed frames are rejected.
        """
        try:
            data = json.loads(raw_message)
            message = parse_client_message(data)
        except (ValueError, RecursionError) as e:
            # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors;
            # deeply nested JSON overflows the decoder
            logger.debug(f"Dropped malformed message from {connection_id}: {e}")
            return ActionResult.rejected(RejectReason.MALFORMED)

        return self.dispatch(RequestContext(sender_id=connection_id), message)

    def dispatch(self, context: RequestContext, message: ClientMessage) -> ActionResult:
        """Route a parsed message to the session."""
        session = self.server.session

        if isinstance(message, AddPlayerMessage):
            return session.join(
                context.sender_id,
                message.client_id,
                message.name,
                message.initial_chips,
            )

        if isinstance(message, BetMessage):
            return session.process_action(
                context,
                Action(type=ActionType.BET, player_id=message.player_id, amount=message.amount),
            )

        if isinstance(message, AllInMessage):
            return session.process_action(
                context, Action(type=ActionType.ALL_IN, player_id=message.player_id)
            )

        if isinstance(message, FoldMessage):
            return session.process_action(
                context, Action(type=ActionType.FOLD, player_id=message.player_id)
            )

        if isinstance(message, LoanMessage):
            return session.process_action(
                context,
                Action(type=ActionType.LOAN, player_id=message.player_id, amount=message.amount),
            )

        if isinstance(message, NextPhaseMessage):
            return session.toggle_ready(context.sender_id)

        if isinstance(message, ConfirmWinMessage):
            return session.process_action(
                context, Action(type=ActionType.CONFIRM_WIN, player_id=message.player_id)
            )

        if isinstance(message, ResetGameMessage):
            return session.process_action(context, Action(type=ActionType.RESET_GAME))

        if isinstance(message, RemovePlayerMessage):
            return session.remove(context.sender_id, message.player_id, message.client_id)

        if isinstance(message, DeleteAllPlayersMessage):
            session.remove_all()
            return APPLIED

        return ActionResult.rejected(RejectReason.MALFORMED)
