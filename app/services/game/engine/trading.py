"""Player-to-player trades.

Trade documents live outside the game state; the service loads the trade
and passes it in. Validation and the asset swap both run under the game
lock, so the holdings checked are the holdings transferred.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from app.schemas.game_engine import (
    GameState,
    PlayerState,
    Trade,
    TradeOffer,
    TradeStatus,
)
from app.services.game.board import get_tile, group_tiles

from .events import TradeAccepted, TradeCancelled, TradeDeclined, TradeOffered
from .rules import property_state
from .validation import ProcessResult, ValidationResult

logger = logging.getLogger(__name__)


def check_holdings(state: GameState, party: PlayerState, side: TradeOffer) -> ValidationResult:
    """Does ``party`` still hold everything listed on their side of a trade?

    Properties must be owned, undeveloped and unmortgaged.
    """
    if party.money < side.money:
        return ValidationResult.error(
            "TRADE_ASSETS_UNAVAILABLE", f"{party.name} does not have {side.money}"
        )
    if party.get_out_of_jail_free_cards < side.get_out_of_jail_free_cards:
        return ValidationResult.error(
            "TRADE_ASSETS_UNAVAILABLE", f"{party.name} does not hold enough jail-free cards"
        )
    if len(set(side.properties)) != len(side.properties):
        return ValidationResult.error("INVALID_TRADE", "A property is listed twice")
    for tile_id in side.properties:
        ps = state.property_states.get(tile_id)
        if ps is None or ps.owner != party.id:
            return ValidationResult.error(
                "TRADE_ASSETS_UNAVAILABLE", f"{party.name} does not own tile {tile_id}"
            )
        if ps.level > 0:
            return ValidationResult.error(
                "TRADE_ASSETS_UNAVAILABLE", f"Tile {tile_id} has houses on it"
            )
        if ps.mortgaged:
            return ValidationResult.error(
                "TRADE_ASSETS_UNAVAILABLE", f"Tile {tile_id} is mortgaged"
            )
        group = get_tile(tile_id).group
        if group and any(property_state(state, t).level > 0 for t in group_tiles(group)):
            return ValidationResult.error(
                "TRADE_ASSETS_UNAVAILABLE", f"Sell the houses on the {group} group first"
            )
    return ValidationResult.ok()


def _give(state: GameState, giver: PlayerState, taker: PlayerState, side: TradeOffer) -> None:
    giver.money -= side.money
    taker.money += side.money
    giver.get_out_of_jail_free_cards -= side.get_out_of_jail_free_cards
    taker.get_out_of_jail_free_cards += side.get_out_of_jail_free_cards
    for tile_id in side.properties:
        giver.properties.remove(tile_id)
        taker.properties.append(tile_id)
        property_state(state, tile_id).owner = taker.id


def process_propose_trade(
    state: GameState,
    proposer_id: str,
    responder_id: str,
    offer: TradeOffer,
    request: TradeOffer,
) -> ProcessResult:
    proposer = state.players[proposer_id]
    responder = state.players.get(responder_id)
    if responder is None or not responder.is_active:
        return ProcessResult.failure("PLAYER_NOT_FOUND", "That player is not in the game")
    if responder_id == proposer_id:
        return ProcessResult.failure("INVALID_TRADE", "You cannot trade with yourself")
    if offer.is_empty and request.is_empty:
        return ProcessResult.failure("INVALID_TRADE", "A trade must exchange something")

    for party, side in ((proposer, offer), (responder, request)):
        holdings = check_holdings(state, party, side)
        if not holdings.is_valid:
            return ProcessResult.from_validation(holdings)

    created_at = datetime.now(timezone.utc)
    trade = Trade(
        id=str(uuid4()),
        game_id=state.game_id,
        proposer_id=proposer_id,
        responder_id=responder_id,
        offer=offer,
        request=request,
        created_at=created_at,
        expires_at=created_at + timedelta(seconds=state.rules.trade_expiry_seconds),
    )
    logger.info(
        "Trade proposed: game=%s, trade=%s, %s -> %s",
        state.game_id,
        trade.id,
        proposer_id,
        responder_id,
    )
    return ProcessResult.ok(state, [TradeOffered(trade=trade)], trade=trade)


def _trade_not_found() -> ProcessResult:
    return ProcessResult.failure("TRADE_NOT_FOUND", "Trade not found or expired")


def _pending(trade: Trade, state: GameState) -> ProcessResult | None:
    if trade.game_id != state.game_id:
        return _trade_not_found()
    if trade.status != TradeStatus.PENDING:
        return ProcessResult.failure(
            "TRADE_NOT_PENDING", f"Trade is already {trade.status.value}"
        )
    return None


def process_accept_trade(state: GameState, player_id: str, trade: Trade | None) -> ProcessResult:
    if trade is None:
        return _trade_not_found()
    error = _pending(trade, state)
    if error is not None:
        return error
    if trade.responder_id != player_id:
        return ProcessResult.failure("NOT_TRADE_RESPONDER", "Only the recipient can accept")

    proposer = state.players.get(trade.proposer_id)
    responder = state.players[player_id]
    if proposer is None or not proposer.is_active:
        return ProcessResult.failure("PLAYER_NOT_ACTIVE", "The proposer is no longer playing")

    for party, side in ((proposer, trade.offer), (responder, trade.request)):
        holdings = check_holdings(state, party, side)
        if not holdings.is_valid:
            logger.warning(
                "Trade acceptance rejected: trade=%s, reason=%s",
                trade.id,
                holdings.error_message,
            )
            return ProcessResult.from_validation(holdings)

    _give(state, proposer, responder, trade.offer)
    _give(state, responder, proposer, trade.request)

    accepted = trade.model_copy(update={"status": TradeStatus.ACCEPTED})
    logger.info("Trade accepted: game=%s, trade=%s", state.game_id, trade.id)
    return ProcessResult.ok(
        state,
        [
            TradeAccepted(
                trade_id=trade.id,
                proposer_id=trade.proposer_id,
                responder_id=trade.responder_id,
            )
        ],
        trade=accepted,
    )


def process_decline_trade(state: GameState, player_id: str, trade: Trade | None) -> ProcessResult:
    if trade is None:
        return _trade_not_found()
    error = _pending(trade, state)
    if error is not None:
        return error
    if trade.responder_id != player_id:
        return ProcessResult.failure("NOT_TRADE_RESPONDER", "Only the recipient can decline")

    declined = trade.model_copy(update={"status": TradeStatus.DECLINED})
    return ProcessResult.ok(
        state,
        [
            TradeDeclined(
                trade_id=trade.id,
                proposer_id=trade.proposer_id,
                responder_id=trade.responder_id,
                requested_properties=list(trade.request.properties),
            )
        ],
        trade=declined,
    )


def process_cancel_trade(
    state: GameState,
    player_id: str,
    trade: Trade | None,
    expired: bool = False,
) -> ProcessResult:
    if trade is None:
        return _trade_not_found()
    error = _pending(trade, state)
    if error is not None:
        return error
    if trade.proposer_id != player_id:
        return ProcessResult.failure("NOT_TRADE_PROPOSER", "Only the proposer can cancel")

    cancelled = trade.model_copy(update={"status": TradeStatus.CANCELLED})
    logger.info("Trade cancelled: trade=%s, expired=%s", trade.id, expired)
    return ProcessResult.ok(
        state,
        [
            TradeCancelled(
                trade_id=trade.id,
                proposer_id=trade.proposer_id,
                responder_id=trade.responder_id,
                expired=expired,
            )
        ],
        trade=cancelled,
    )
