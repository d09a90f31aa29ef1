"""Auctions for unowned tiles.

A standing high bid cannot be retracted: a high bidder who passes still
wins if nobody outbids them.
"""

import logging

from app.schemas.game_engine import Auction, GamePhase, GameState
from app.services.game.board import find_tile

from .events import (
    AnyGameEvent,
    AuctionBid,
    AuctionFailed,
    AuctionPassed,
    AuctionStarted,
    AuctionWon,
)
from .transactions import grant_property
from .validation import ProcessResult

logger = logging.getLogger(__name__)


def process_start_auction(state: GameState, player_id: str, tile_id: int) -> ProcessResult:
    tile = find_tile(tile_id)
    if tile is None or not tile.is_purchasable:
        return ProcessResult.failure("INVALID_TILE", f"Tile {tile_id} cannot be auctioned")
    ps = state.property_states.get(tile_id)
    if ps is not None and ps.owner is not None:
        return ProcessResult.failure("PROPERTY_ALREADY_OWNED", f"{tile.name} is already owned")
    if state.auction is not None:
        return ProcessResult.failure("AUCTION_ACTIVE", "An auction is already running")

    bidders = [p.id for p in state.active_players()]
    resume_phase = state.phase if state.phase == GamePhase.BEFORE_ROLL else GamePhase.AFTER_ROLL
    state.auction = Auction(tile_id=tile_id, bidders=bidders, resume_phase=resume_phase)
    state.phase = GamePhase.AUCTION
    logger.info(
        "Auction started: game=%s, tile=%d, by=%s, bidders=%d",
        state.game_id,
        tile_id,
        player_id,
        len(bidders),
    )
    return ProcessResult.ok(state, [AuctionStarted(tile_id=tile_id, bidders=bidders)])


def process_place_bid(state: GameState, player_id: str, amount: int) -> ProcessResult:
    auction = state.auction
    if auction is None:
        return ProcessResult.failure("AUCTION_NOT_ACTIVE", "There is no auction in progress")
    if player_id not in auction.bidders:
        return ProcessResult.failure("NOT_IN_AUCTION", "You are not bidding in this auction")
    if amount <= auction.current_bid:
        return ProcessResult.failure(
            "BID_TOO_LOW", f"Bid must be higher than {auction.current_bid}"
        )
    if state.players[player_id].money < amount:
        return ProcessResult.failure("INSUFFICIENT_FUNDS", f"You cannot afford {amount}")

    auction.current_bid = amount
    auction.current_bidder_id = player_id
    return ProcessResult.ok(
        state, [AuctionBid(player_id=player_id, tile_id=auction.tile_id, amount=amount)]
    )


def process_pass_bid(state: GameState, player_id: str) -> ProcessResult:
    auction = state.auction
    if auction is None:
        return ProcessResult.failure("AUCTION_NOT_ACTIVE", "There is no auction in progress")
    if player_id not in auction.bidders:
        return ProcessResult.failure("NOT_IN_AUCTION", "You are not bidding in this auction")

    auction.bidders.remove(player_id)
    events: list[AnyGameEvent] = [AuctionPassed(player_id=player_id, tile_id=auction.tile_id)]
    if len(auction.bidders) <= 1:
        events.extend(resolve_auction(state))
    return ProcessResult.ok(state, events)


def process_end_auction(state: GameState, player_id: str) -> ProcessResult:
    auction = state.auction
    if auction is None:
        return ProcessResult.failure("AUCTION_NOT_ACTIVE", "There is no auction in progress")
    if player_id not in auction.bidders and player_id != state.turn:
        return ProcessResult.failure("NOT_IN_AUCTION", "You are not part of this auction")
    return ProcessResult.ok(state, resolve_auction(state))


def resolve_auction(state: GameState) -> list[AnyGameEvent]:
    auction = state.auction
    if auction is None:
        return []
    state.auction = None
    state.phase = auction.resume_phase

    winner = state.players.get(auction.current_bidder_id) if auction.current_bidder_id else None
    if (
        winner is not None
        and winner.is_active
        and auction.current_bid > 0
        and winner.money >= auction.current_bid
    ):
        winner.money -= auction.current_bid
        grant_property(state, winner, auction.tile_id)
        logger.info(
            "Auction won: tile=%d, winner=%s, amount=%d",
            auction.tile_id,
            winner.id,
            auction.current_bid,
        )
        return [AuctionWon(player_id=winner.id, tile_id=auction.tile_id, amount=auction.current_bid)]

    logger.info("Auction failed: tile=%d", auction.tile_id)
    return [AuctionFailed(tile_id=auction.tile_id)]
