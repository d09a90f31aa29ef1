"""Handlers for deferred jobs.

Each handler receives the JSON payload it was scheduled with. Failures are
logged by the TimerCoordinator; handlers only guard against the expected
races (the game finished, the turn already moved on).
"""

import logging
from functools import partial
from typing import Any

from app.schemas.game_engine import GamePhase, GameStatus

from .engine import CancelTradeAction, EndAuctionAction, EndTurnAction, TurnReminder
from .service import GameNotFoundError, GameService
from .timers import JobKind, TimerCoordinator

logger = logging.getLogger(__name__)


async def expire_trade(service: GameService, payload: dict[str, Any]) -> None:
    """Cancel a trade nobody answered in time."""
    game_id = payload["game_id"]
    try:
        result = await service.perform(
            game_id,
            payload["proposer_id"],
            CancelTradeAction(trade_id=payload["trade_id"], expired=True),
        )
    except GameNotFoundError:
        logger.debug("Trade expiry for finished game %s ignored", game_id)
        return
    if not result.success:
        logger.debug(
            "Trade %s not expired: %s",
            payload["trade_id"],
            result.error_code,
        )


async def expire_turn(service: GameService, payload: dict[str, Any]) -> None:
    """A turn ran out of time: force bots along, remind humans."""
    game_id = payload["game_id"]
    player_id = payload["player_id"]
    try:
        state = await service.get_game(game_id)
    except GameNotFoundError:
        return

    if (
        state.status != GameStatus.ACTIVE
        or state.turn != player_id
        or state.turn_number != payload["turn_number"]
    ):
        logger.debug("Stale turn timer: game=%s, player=%s", game_id, player_id)
        return

    player = state.players[player_id]
    if not player.is_bot:
        logger.info("Turn time limit reached: game=%s, player=%s", game_id, player_id)
        await service.send_notice(
            game_id,
            player_id,
            TurnReminder(player_id=player_id, turn_number=state.turn_number),
        )
        service.schedule_turn_timer(state)
        return

    logger.warning("Bot overran its turn, forcing end: game=%s, bot=%s", game_id, player_id)
    if state.phase == GamePhase.AUCTION:
        await service.perform(game_id, player_id, EndAuctionAction())
    result = await service.perform(game_id, player_id, EndTurnAction())
    if not result.success:
        logger.warning(
            "Forced end turn failed: game=%s, bot=%s, error=%s",
            game_id,
            player_id,
            result.error_code,
        )
        service.schedule_turn_timer(await service.get_game(game_id))


async def record_stats(service: GameService, payload: dict[str, Any]) -> None:
    await service.record_stats(payload["game_id"])


def register_jobs(timers: TimerCoordinator, service: GameService) -> None:
    timers.register(JobKind.TRADE_EXPIRY, partial(expire_trade, service))
    timers.register(JobKind.TURN_EXPIRY, partial(expire_turn, service))
    timers.register(JobKind.STATS_SNAPSHOT, partial(record_stats, service))
