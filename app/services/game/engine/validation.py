"""Who may act, and when.

``validate_action`` applies the gates every action shares: lobby versus
running game, seat and elimination, whose turn it is, the roll phase, a
running auction and an unpaid debt. Money and ownership checks belong to the
individual handlers. Rule violations come back as result objects with a
string error code; nothing here raises.
"""

import logging
from dataclasses import dataclass, field

from app.schemas.game_engine import (
    GamePhase,
    GameState,
    GameStatus,
    PlayerStatus,
    Trade,
)

from .actions import (
    AddBotAction,
    BuyPropertyAction,
    EndAuctionAction,
    EndTurnAction,
    GameAction,
    JoinGameAction,
    LeaveGameAction,
    PassBidAction,
    PlaceBidAction,
    RollAction,
    SetConnectedAction,
    StartAuctionAction,
    StartGameAction,
)
from .events import AnyGameEvent

logger = logging.getLogger(__name__)

LOBBY_ACTIONS = (JoinGameAction, AddBotAction, StartGameAction)
AUCTION_ACTIONS = (PlaceBidAction, PassBidAction, EndAuctionAction)
# Actions reserved for the player whose turn it is
TURN_ACTIONS = (RollAction, EndTurnAction, BuyPropertyAction, StartAuctionAction)


@dataclass
class ProcessResult:
    """Outcome of one action: the new state and its events, or an error code.

    A *blocked* result is a failure that still carries a new state: the
    action could not complete, but the game moved into a phase the caller
    must persist (a human who cannot cover a debt at turn end).
    """

    state: GameState | None = None
    events: list[AnyGameEvent] = field(default_factory=list)
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None
    trade: Trade | None = None

    @classmethod
    def ok(
        cls,
        state: GameState,
        events: list[AnyGameEvent] | None = None,
        trade: Trade | None = None,
    ) -> "ProcessResult":
        return cls(
            state=state,
            events=events or [],
            success=True,
            trade=trade,
        )

    @classmethod
    def failure(cls, code: str, message: str) -> "ProcessResult":
        return cls(
            state=None,
            events=[],
            success=False,
            error_code=code,
            error_message=message,
        )

    @classmethod
    def blocked(
        cls,
        state: GameState,
        events: list[AnyGameEvent],
        code: str,
        message: str,
    ) -> "ProcessResult":
        """A rejection whose state change must still be persisted."""
        return cls(
            state=state,
            events=events,
            success=False,
            error_code=code,
            error_message=message,
        )

    @classmethod
    def from_validation(cls, validation: "ValidationResult") -> "ProcessResult":
        return cls.failure(
            validation.error_code or "VALIDATION_ERROR",
            validation.error_message or "Invalid action",
        )


@dataclass
class ValidationResult:
    """Verdict of the shared gates; carries the first failing code."""

    is_valid: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def error(cls, code: str, message: str) -> "ValidationResult":
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message,
        )


def validate_action(
    state: GameState,
    action: GameAction,
    player_id: str,
) -> ValidationResult:
    """Validate an action before processing.

    Checks:
    - Game status allows this action (lobby vs active vs ended)
    - The player belongs to the game and is still playing
    - Turn-bound actions come from the player whose turn it is
    - The current phase accepts the action

    Args:
        state: Current game state.
        action: The action to validate.
        player_id: The player attempting the action.

    Returns:
        ValidationResult indicating success or failure with error details.
    """
    action_type = type(action).__name__
    logger.debug(
        "Validating action: type=%s, player=%s, status=%s, phase=%s",
        action_type,
        player_id,
        state.status.value,
        state.phase.value,
    )

    if isinstance(action, LOBBY_ACTIONS):
        if state.status != GameStatus.LOBBY:
            logger.warning(
                "Validation failed: GAME_ALREADY_STARTED, status=%s",
                state.status.value,
            )
            return ValidationResult.error(
                "GAME_ALREADY_STARTED",
                "Game has already started",
            )
        if isinstance(action, JoinGameAction):
            return ValidationResult.ok()
        if state.host_id != player_id:
            logger.warning("Validation failed: NOT_HOST, player=%s", player_id)
            return ValidationResult.error(
                "NOT_HOST",
                "Only the host can do that",
            )
        return ValidationResult.ok()

    player = state.players.get(player_id)
    if player is None:
        logger.warning("Validation failed: PLAYER_NOT_FOUND, player=%s", player_id)
        return ValidationResult.error(
            "PLAYER_NOT_FOUND",
            "You are not a player in this game",
        )

    if isinstance(action, SetConnectedAction):
        return ValidationResult.ok()

    if state.status == GameStatus.END:
        logger.warning("Validation failed: GAME_OVER")
        return ValidationResult.error(
            "GAME_OVER",
            "Game has already finished",
        )

    if isinstance(action, LeaveGameAction):
        if not player.is_active:
            return ValidationResult.error(
                "PLAYER_NOT_ACTIVE",
                "You are no longer playing",
            )
        return ValidationResult.ok()

    if state.status == GameStatus.LOBBY:
        logger.warning("Validation failed: GAME_NOT_STARTED")
        return ValidationResult.error(
            "GAME_NOT_STARTED",
            "Game has not started yet",
        )

    # A bankrupt player's stale end-turn is a no-op, not an error
    if isinstance(action, EndTurnAction) and player.status == PlayerStatus.BANKRUPT:
        return ValidationResult.ok()

    if not player.is_active:
        logger.warning(
            "Validation failed: PLAYER_NOT_ACTIVE, player=%s, status=%s",
            player_id,
            player.status.value,
        )
        return ValidationResult.error(
            "PLAYER_NOT_ACTIVE",
            "You are no longer playing",
        )

    if isinstance(action, TURN_ACTIONS) and state.turn != player_id:
        logger.warning(
            "Validation failed: NOT_YOUR_TURN, current=%s, attempted=%s",
            state.turn,
            player_id,
        )
        return ValidationResult.error(
            "NOT_YOUR_TURN",
            "It's not your turn",
        )

    if isinstance(action, AUCTION_ACTIONS):
        if state.phase != GamePhase.AUCTION or state.auction is None:
            return ValidationResult.error(
                "AUCTION_NOT_ACTIVE",
                "There is no auction in progress",
            )
        return ValidationResult.ok()

    if isinstance(action, RollAction) and state.phase != GamePhase.BEFORE_ROLL:
        logger.warning(
            "Validation failed: INVALID_PHASE (roll), phase=%s",
            state.phase.value,
        )
        return ValidationResult.error(
            "INVALID_PHASE",
            "Cannot roll dice now",
        )

    if isinstance(action, (EndTurnAction, BuyPropertyAction, StartAuctionAction)):
        if state.phase == GamePhase.AUCTION:
            return ValidationResult.error(
                "AUCTION_ACTIVE",
                "Finish the auction first",
            )
        if (
            isinstance(action, (BuyPropertyAction, StartAuctionAction))
            and state.phase == GamePhase.BANKRUPTCY_IMMINENT
        ):
            return ValidationResult.error(
                "DEBT_OUTSTANDING",
                "Raise money to cover your debt first",
            )

    logger.debug("Action validated successfully: type=%s", action_type)
    return ValidationResult.ok()
