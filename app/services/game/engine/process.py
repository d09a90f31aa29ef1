"""Main entry point for game action processing.

This module provides the primary interface for processing game actions:
- process_action(): Validates and processes any game action
- Dispatches to specialized handlers based on action type
- Returns ProcessResult with new state and events
"""

import logging
import random

from app.schemas.game_engine import GameState, Trade

from .actions import (
    AcceptTradeAction,
    AddBotAction,
    BuildHouseAction,
    BuyPropertyAction,
    CancelTradeAction,
    DeclareBankruptcyAction,
    DeclineTradeAction,
    EndAuctionAction,
    EndTurnAction,
    GameAction,
    JoinGameAction,
    LeaveGameAction,
    MortgagePropertyAction,
    PassBidAction,
    PayBailAction,
    PlaceBidAction,
    ProposeTradeAction,
    RollAction,
    SellHouseAction,
    SellPropertyAction,
    SetConnectedAction,
    StartAuctionAction,
    StartGameAction,
    UnmortgagePropertyAction,
    UseJailFreeCardAction,
)
from .auction import (
    process_end_auction,
    process_pass_bid,
    process_place_bid,
    process_start_auction,
)
from .lobby import (
    process_add_bot,
    process_join_game,
    process_set_connected,
    process_start_game,
)
from .rolling import process_roll, roll_dice
from .rules import refresh_assets
from .trading import (
    process_accept_trade,
    process_cancel_trade,
    process_decline_trade,
    process_propose_trade,
)
from .transactions import (
    process_build_house,
    process_buy_property,
    process_mortgage,
    process_pay_bail,
    process_sell_house,
    process_sell_to_bank,
    process_unmortgage,
    process_use_jail_free_card,
)
from .turns import process_declare_bankruptcy, process_end_turn, process_leave
from .validation import ProcessResult, validate_action

logger = logging.getLogger(__name__)


def process_action(
    state: GameState,
    action: GameAction,
    player_id: str,
    *,
    rng: random.Random | None = None,
    trade: Trade | None = None,
) -> ProcessResult:
    """Process a game action and return the result.

    This is the main entry point for all game actions. It:
    1. Validates the action is legal given current state
    2. Dispatches to the appropriate handler on a private deep copy
    3. Recomputes every player's derived assets
    4. Assigns sequence numbers and appends events to the event log
    5. Returns ProcessResult with new state and events

    The input state is never modified; a failed action leaves it untouched.

    Args:
        state: Current game state.
        action: The action to process.
        player_id: The player attempting the action.
        rng: Random source for dice, shuffles and colours.
        trade: The trade document for accept/decline/cancel actions.

    Returns:
        ProcessResult containing:
        - success: Whether the action was processed successfully
        - state: The new game state (if successful, or blocked)
        - events: List of events that occurred (with seq numbers)
        - trade: The created or updated trade document, if any
        - error_code/error_message: Error details (if failed)

    Example:
        >>> result = process_action(state, BuyPropertyAction(tile_id=2), player_id)
        >>> if result.success:
        ...     new_state = result.state
        ...     for event in result.events:
        ...         broadcast(event)  # event.seq is set
        ... else:
        ...     send_error(result.error_code, result.error_message)
    """
    rng = rng or random.Random()
    action_type = type(action).__name__
    logger.info(
        "Processing action: type=%s, player=%s, game=%s, phase=%s",
        action_type,
        player_id,
        state.game_id,
        state.phase.value,
    )
    logger.debug("Action details: %s", action)

    validation = validate_action(state, action, player_id)
    if not validation.is_valid:
        logger.warning(
            "Action validation failed: code=%s, message=%s, player=%s, action=%s",
            validation.error_code,
            validation.error_message,
            player_id,
            action_type,
        )
        return ProcessResult.from_validation(validation)

    working = state.model_copy(deep=True)
    result = _dispatch(working, action, player_id, rng, trade)

    if result.state is not None:
        refresh_assets(result.state)
        result = _assign_event_sequences(result)

    if result.success:
        logger.info(
            "Action processed successfully: type=%s, player=%s, events_generated=%d",
            action_type,
            player_id,
            len(result.events),
        )
        logger.debug("Generated events: %s", [e.event_type for e in result.events])
    else:
        logger.warning(
            "Action processing failed: type=%s, player=%s, error=%s",
            action_type,
            player_id,
            result.error_code,
        )
    return result


def _dispatch(
    state: GameState,
    action: GameAction,
    player_id: str,
    rng: random.Random,
    trade: Trade | None,
) -> ProcessResult:
    if isinstance(action, JoinGameAction):
        return process_join_game(state, player_id, action.name, rng, user_id=action.user_id)
    if isinstance(action, AddBotAction):
        return process_add_bot(state, action.difficulty, rng)
    if isinstance(action, StartGameAction):
        return process_start_game(state, rng)
    if isinstance(action, SetConnectedAction):
        return process_set_connected(state, player_id, action.connected)
    if isinstance(action, LeaveGameAction):
        return process_leave(state, player_id)

    if isinstance(action, RollAction):
        return process_roll(state, player_id, action.dice or roll_dice(rng), rng)
    if isinstance(action, EndTurnAction):
        return process_end_turn(state, player_id)
    if isinstance(action, DeclareBankruptcyAction):
        return process_declare_bankruptcy(state, player_id)

    if isinstance(action, BuyPropertyAction):
        return process_buy_property(state, player_id, action.tile_id)
    if isinstance(action, BuildHouseAction):
        return process_build_house(state, player_id, action.tile_id)
    if isinstance(action, SellHouseAction):
        return process_sell_house(state, player_id, action.tile_id)
    if isinstance(action, MortgagePropertyAction):
        if not state.rules.mortgage_enabled:
            return ProcessResult.failure("MORTGAGE_DISABLED", "Mortgaging is disabled in this game")
        return process_mortgage(state, player_id, action.tile_id)
    if isinstance(action, UnmortgagePropertyAction):
        return process_unmortgage(state, player_id, action.tile_id)
    if isinstance(action, SellPropertyAction):
        return process_sell_to_bank(state, player_id, action.tile_id)

    if isinstance(action, PayBailAction):
        return process_pay_bail(state, player_id)
    if isinstance(action, UseJailFreeCardAction):
        return process_use_jail_free_card(state, player_id)

    if isinstance(action, StartAuctionAction):
        return process_start_auction(state, player_id, action.tile_id)
    if isinstance(action, PlaceBidAction):
        return process_place_bid(state, player_id, action.amount)
    if isinstance(action, PassBidAction):
        return process_pass_bid(state, player_id)
    if isinstance(action, EndAuctionAction):
        return process_end_auction(state, player_id)

    if isinstance(action, ProposeTradeAction):
        return process_propose_trade(
            state, player_id, action.responder_id, action.offer, action.request
        )
    if isinstance(action, AcceptTradeAction):
        return process_accept_trade(state, player_id, trade)
    if isinstance(action, DeclineTradeAction):
        return process_decline_trade(state, player_id, trade)
    if isinstance(action, CancelTradeAction):
        return process_cancel_trade(state, player_id, trade, expired=action.expired)

    logger.error("Unknown action type received: %s", type(action).__name__)
    return ProcessResult.failure(
        "UNKNOWN_ACTION",
        f"Unknown action type: {type(action).__name__}",
    )


def _assign_event_sequences(result: ProcessResult) -> ProcessResult:
    """Assign monotonically increasing sequence numbers to events.

    Updates each event's seq field, appends the serialized events to the
    state's event log and advances the state's event_seq counter.
    """
    state = result.state
    if state is None or not result.events:
        return result

    current_seq = state.event_seq
    for event in result.events:
        event.seq = current_seq
        current_seq += 1
        state.event_log.append(event.model_dump(mode="json"))

    state.event_seq = current_seq
    return result
