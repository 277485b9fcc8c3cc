"""Session state and player registry."""
from typing import Optional

from chipsync.config import config
from chipsync.game.betting import (
    APPLIED,
    Action,
    ActionProcessor,
    ActionResult,
    RejectReason,
    RequestContext,
)
from chipsync.game.phases import Phase, ROUND_NAMES, ReadyVotes, next_position
from chipsync.game.player import Player
from chipsync.game.pot import Pot
from chipsync.utils.logger import get_logger

logger = get_logger(__name__)


class GameSession:
    """The single authoritative record of the game.

    All mutation goes through the methods here; callers serialize access and
    broadcast a snapshot after every applied result.
    """

    def __init__(self):
        self.round_index: int = 0
        self.phase = Phase.BETTING
        self.pot = Pot()
        self.players: list[Player] = []  # Join order
        self.ready_votes = ReadyVotes()
        self.processor = ActionProcessor(self)

    # Player registry

    def get_player(self, connection_id: str) -> Optional[Player]:
        """Get player by current connection id."""
        for player in self.players:
            if player.connection_id == connection_id:
                return player
        return None

    def get_player_by_client(self, client_id: str) -> Optional[Player]:
        """Get player by durable client id."""
        for player in self.players:
            if player.client_id == client_id:
                return player
        return None

    def join(self, connection_id: str, client_id: str, name: str, initial_chips: int) -> ActionResult:
        """Add a player, or reattach an existing one to a new connection.

        A connection holds at most one player. Joining under a new client id
        from a connection that already owns a player is rejected, as is
        reattaching a player onto a connection owned by someone else.

        Args:
            connection_id: Connection the request arrived on.
            client_id: Durable id chosen by the client.
            name: Display name for a new player.
            initial_chips: Buy-in for a new player.

        Returns:
            Applied when a player was added or reattached.
        """
        holder = self.get_player(connection_id)
        if holder is not None and holder.client_id != client_id:
            logger.debug(f"Connection {connection_id} already belongs to {holder.name}")
            return ActionResult.rejected(RejectReason.ALREADY_JOINED)

        player = self.get_player_by_client(client_id)
        if player:
            old_id = player.connection_id
            player.connection_id = connection_id
            self.ready_votes.replace(old_id, connection_id)
            logger.info(f"{player.name} reconnected ({old_id} -> {connection_id})")
            return APPLIED

        player = Player.buy_in(connection_id, client_id, name, initial_chips)
        self.players.append(player)
        self.update_call_amounts()
        logger.info(f"{name} joined with {initial_chips} chips")
        return APPLIED

    def remove(self, sender_id: str, player_id: Optional[str], client_id: Optional[str]) -> ActionResult:
        """Remove a player at their own request.

        The player is located by connection id or client id. The request is
        honoured only when it comes from that player's connection or carries
        that player's client id.
        """
        player = None
        for p in self.players:
            if (player_id is not None and p.connection_id == player_id) or (
                client_id is not None and p.client_id == client_id
            ):
                player = p
                break
        if player is None:
            return ActionResult.rejected(RejectReason.PLAYER_NOT_FOUND)

        if player.connection_id != sender_id and player.client_id != client_id:
            return ActionResult.rejected(RejectReason.UNAUTHORIZED)

        self.ready_votes.discard(player.connection_id)
        self.players.remove(player)
        self.update_call_amounts()
        logger.info(f"Removed player {player.name}")
        return APPLIED

    def remove_all(self) -> None:
        """Drop every player and return the table to its initial state."""
        self.players = []
        self.round_index = 0
        self.phase = Phase.BETTING
        self.pot.reset()
        self.ready_votes.clear()
        logger.info("All players removed")

    # Actions

    def process_action(self, context: RequestContext, action: Action) -> ActionResult:
        """Validate and apply a betting/settlement action."""
        result = self.processor.process(context, action)
        if not result.applied:
            logger.debug(
                f"Rejected {action.type.value} from {context.sender_id}: {result.reason.value}"
            )
        return result

    def update_call_amounts(self) -> None:
        """Recompute every player's outstanding call against the highest bet."""
        max_bet = max((p.bet for p in self.players), default=0)
        for player in self.players:
            if player.folded:
                player.call_need = 0
            else:
                player.call_need = max(0, max_bet - player.bet)

    # Phase voting

    def get_active_players(self) -> list[Player]:
        """Get players still in the hand."""
        return [p for p in self.players if not p.folded]

    def toggle_ready(self, connection_id: str) -> ActionResult:
        """Flip a player's vote to advance, advancing on a full quorum.

        Args:
            connection_id: Connection of the voting player.

        Returns:
            Applied for any known player, whether or not the phase moved.
        """
        player = self.get_player(connection_id)
        if player is None:
            return ActionResult.rejected(RejectReason.PLAYER_NOT_FOUND)

        self.ready_votes.toggle(connection_id)

        active_ids = [p.connection_id for p in self.get_active_players()]
        if self.ready_votes.has_quorum(active_ids):
            self._advance_phase()
        return APPLIED

    def _advance_phase(self) -> None:
        self.ready_votes.clear()

        if self.phase == Phase.DRAWING:
            for player in self.players:
                interest = player.accrue_interest(config.loan_interest_percent)
                if interest:
                    logger.info(f"{player.name} owes {interest} interest (loan {player.loan})")

        phase, round_index = next_position(self.phase, self.round_index)
        if (phase, round_index) == (self.phase, self.round_index):
            logger.info(f"Hand held at {self.round_name}; waiting for a win or reset")
            return

        self.phase = phase
        self.round_index = round_index
        logger.info(f"Advanced to {self.round_name} ({self.phase.value})")

    # Snapshots

    @property
    def round_name(self) -> str:
        return ROUND_NAMES[self.round_index]

    def get_state(self) -> dict:
        """Get the full session state for broadcasting."""
        return {
            "round_index": self.round_index,
            "rounds": list(ROUND_NAMES),
            "round_name": self.round_name,
            "phase": self.phase.value,
            "pot": self.pot.get_total(),
            "ready_players": [
                p.connection_id for p in self.players if p.connection_id in self.ready_votes
            ],
            "players": [
                {**p.to_dict(), "ready": p.connection_id in self.ready_votes}
                for p in self.players
            ],
        }
