"""Turn rotation primitives: who plays next, removal from play, game end."""

import logging

from app.schemas.game_engine import GamePhase, GameState, GameStatus

from .auction import resolve_auction
from .events import AnyGameEvent, AuctionFailed, GameOver, TurnEnded, TurnStarted

logger = logging.getLogger(__name__)


def next_player_id(state: GameState, after_id: str) -> str | None:
    """Next active player in ``order`` after ``after_id``, wrapping around.

    Returns ``after_id`` itself when nobody else is left, None for an empty order.
    """
    order = state.order
    if not order:
        return None
    start = order.index(after_id) if after_id in order else -1
    candidates = order[start + 1 :] + order[: start + 1]
    for pid in candidates:
        player = state.players.get(pid)
        if player is not None and player.is_active:
            return pid
    return None


def finish_game(state: GameState) -> list[AnyGameEvent]:
    """Move the game to its terminal phase; the first player left in order wins."""
    winner_id = state.order[0] if state.order else None
    state.phase = GamePhase.GAME_OVER
    state.status = GameStatus.END
    state.auction = None
    state.turn = winner_id
    logger.info("Game over: game=%s, winner=%s", state.game_id, winner_id)
    return [GameOver(winner_id=winner_id)]


def advance_turn(state: GameState, from_player_id: str, reason: str) -> list[AnyGameEvent]:
    """Hand the turn from ``from_player_id`` to the next active player."""
    if len(state.order) <= 1:
        return finish_game(state)

    player = state.players[from_player_id]
    player.last_roll_was_double = False
    player.consecutive_doubles = 0

    next_id = next_player_id(state, from_player_id)
    if next_id is None or next_id == from_player_id:
        return finish_game(state)

    state.turn = next_id
    state.phase = GamePhase.BEFORE_ROLL
    state.turn_number += 1
    logger.info(
        "Turn advanced: game=%s, from=%s, to=%s, turn_number=%d",
        state.game_id,
        from_player_id,
        next_id,
        state.turn_number,
    )
    return [
        TurnEnded(player_id=from_player_id, reason=reason, next_player_id=next_id),
        TurnStarted(player_id=next_id, turn_number=state.turn_number),
    ]


def remove_from_rotation(state: GameState, player_id: str) -> list[AnyGameEvent]:
    """Take a player out of ``order`` and out of any running auction.

    An auction left with one bidder or none is settled on the spot.

    If it was their turn, the next player in rotation starts a fresh turn.
    One or zero players left ends the game.
    """
    events: list[AnyGameEvent] = []
    was_turn = state.turn == player_id
    successor = next_player_id(state, player_id) if was_turn else None

    if player_id in state.order:
        state.order.remove(player_id)

    auction = state.auction
    if auction is not None:
        if player_id in auction.bidders:
            auction.bidders.remove(player_id)
        if auction.current_bidder_id == player_id:
            auction.current_bidder_id = None
            auction.current_bid = 0
        if was_turn:
            events.append(AuctionFailed(tile_id=auction.tile_id))
            state.auction = None
        elif len(auction.bidders) <= 1:
            events.extend(resolve_auction(state))

    if len(state.order) <= 1:
        return events + finish_game(state)

    if was_turn and successor is not None and successor != player_id:
        state.turn = successor
        state.phase = GamePhase.BEFORE_ROLL
        state.turn_number += 1
        events.append(TurnStarted(player_id=successor, turn_number=state.turn_number))
    return events
