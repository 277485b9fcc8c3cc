"""Action validation and state mutation."""
from enum import Enum
from dataclasses import dataclass
from typing import Callable, Optional, TYPE_CHECKING

from chipsync.config import config
from chipsync.game.phases import Phase
from chipsync.utils.logger import get_logger

if TYPE_CHECKING:
    from chipsync.game.player import Player
    from chipsync.game.session import GameSession

logger = get_logger(__name__)


class ActionType(str, Enum):
    """Player action types."""
    BET = "bet"
    ALL_IN = "all_in"
    FOLD = "fold"
    LOAN = "loan"
    CONFIRM_WIN = "confirm_win"
    RESET_GAME = "reset_game"


class RejectReason(str, Enum):
    """Why an action was not applied."""
    UNAUTHORIZED = "unauthorized"
    PLAYER_NOT_FOUND = "player_not_found"
    PLAYER_FOLDED = "player_folded"
    WRONG_PHASE = "wrong_phase"
    INSUFFICIENT_CHIPS = "insufficient_chips"
    INVALID_AMOUNT = "invalid_amount"
    ALREADY_IN_DEBT = "already_in_debt"
    HAS_CHIPS = "has_chips"
    ALREADY_JOINED = "already_joined"
    LOAN_LIMIT = "loan_limit"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class RequestContext:
    """Who sent the request, as seen by the transport."""
    sender_id: str


@dataclass
class Action:
    """A player's action."""
    type: ActionType
    player_id: Optional[str] = None  # Claimed connection id; unused by admin actions
    amount: int = 0


@dataclass(frozen=True)
class ActionResult:
    """Outcome of an action: applied, or rejected with a reason."""
    applied: bool
    reason: Optional[RejectReason] = None

    @classmethod
    def ok(cls) -> "ActionResult":
        return cls(applied=True)

    @classmethod
    def rejected(cls, reason: RejectReason) -> "ActionResult":
        return cls(applied=False, reason=reason)


APPLIED = ActionResult.ok()

ADMIN_ACTIONS = frozenset({ActionType.RESET_GAME})


class ActionProcessor:
    """Validates actions against the session and applies the accepted ones.

    A rejected action leaves the session untouched.
    """

    def __init__(self, session: "GameSession"):
        """Initialize processor.

        Args:
            session: The session to validate against and mutate.
        """
        self.session = session
        self._handlers: dict[ActionType, Callable[["Player", Action], ActionResult]] = {
            ActionType.BET: self._bet,
            ActionType.ALL_IN: self._all_in,
            ActionType.FOLD: self._fold,
            ActionType.LOAN: self._loan,
            ActionType.CONFIRM_WIN: self._confirm_win,
        }

    def process(self, context: RequestContext, action: Action) -> ActionResult:
        """Validate and apply an action.

        Args:
            context: Transport-level identity of the requester.
            action: The action to apply.

        Returns:
            Result of the action.
        """
        if action.type in ADMIN_ACTIONS:
            self._reset_game()
            return APPLIED

        # Nobody may act on another connection's behalf
        if action.player_id is None or context.sender_id != action.player_id:
            return ActionResult.rejected(RejectReason.UNAUTHORIZED)

        player = self.session.get_player(action.player_id)
        if player is None:
            return ActionResult.rejected(RejectReason.PLAYER_NOT_FOUND)

        return self._handlers[action.type](player, action)

    def _bet(self, player: "Player", action: Action) -> ActionResult:
        if player.folded:
            return ActionResult.rejected(RejectReason.PLAYER_FOLDED)
        if self.session.phase != Phase.BETTING:
            return ActionResult.rejected(RejectReason.WRONG_PHASE)
        if action.amount <= 0:
            return ActionResult.rejected(RejectReason.INVALID_AMOUNT)
        if player.chips < action.amount:
            return ActionResult.rejected(RejectReason.INSUFFICIENT_CHIPS)

        amount = player.place_bet(action.amount)
        self.session.pot.add_bet(amount)
        self.session.update_call_amounts()
        logger.info(f"{player.name} bet {amount} (pot {self.session.pot.get_total()})")
        return APPLIED

    def _all_in(self, player: "Player", action: Action) -> ActionResult:
        if self.session.phase != Phase.BETTING:
            return ActionResult.rejected(RejectReason.WRONG_PHASE)
        if player.chips <= 0:
            return ActionResult.rejected(RejectReason.INSUFFICIENT_CHIPS)

        amount = player.go_all_in()
        self.session.pot.add_bet(amount)
        self.session.update_call_amounts()
        logger.info(f"{player.name} went all-in for {amount} (pot {self.session.pot.get_total()})")
        return APPLIED

    def _fold(self, player: "Player", action: Action) -> ActionResult:
        player.fold()
        self.session.update_call_amounts()
        logger.info(f"{player.name} folded")
        return APPLIED

    def _loan(self, player: "Player", action: Action) -> ActionResult:
        if player.in_debt:
            return ActionResult.rejected(RejectReason.ALREADY_IN_DEBT)
        if player.chips != 0:
            return ActionResult.rejected(RejectReason.HAS_CHIPS)
        if action.amount <= 0:
            return ActionResult.rejected(RejectReason.INVALID_AMOUNT)
        if action.amount > config.max_loan:
            return ActionResult.rejected(RejectReason.LOAN_LIMIT)

        player.take_loan(action.amount)
        logger.info(f"{player.name} borrowed {action.amount}")
        return APPLIED

    def _confirm_win(self, player: "Player", action: Action) -> ActionResult:
        """Pay the pot to the winner and start a fresh hand.

        A win ends the hand whatever round it is in. Debt repayment runs
        after the payout, for the winner only.
        """
        session = self.session
        won = session.pot.collect()
        player.chips += won

        session.round_index = 0
        session.phase = Phase.BETTING
        for p in session.players:
            p.reset_for_new_hand()

        repaid = player.repay_loan()

        session.update_call_amounts()
        session.ready_votes.clear()

        logger.info(f"{player.name} won {won}" + (f", repaid {repaid}" if repaid else ""))
        return APPLIED

    def _reset_game(self) -> None:
        session = self.session
        session.round_index = 0
        session.phase = Phase.BETTING
        session.pot.reset()
        for p in session.players:
            p.reset_to_buy_in()
        session.ready_votes.clear()
        logger.info("Game reset")
