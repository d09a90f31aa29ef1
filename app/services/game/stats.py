"""Per-player money and net worth history, sampled after turns and bankruptcies."""

import logging

from app.schemas.game_engine import GameState, StatsSnapshot

from .engine.rules import net_worth
from .store import GameStore

logger = logging.getLogger(__name__)


def snapshot(state: GameState) -> dict[str, StatsSnapshot]:
    return {
        player.id: StatsSnapshot(
            turn_number=state.turn_number,
            money=player.money,
            net_worth=net_worth(state, player),
        )
        for player in state.players.values()
    }


class StatsRecorder:
    def __init__(self, store: GameStore, ttl_seconds: int = 3600):
        self._store = store
        self._ttl_seconds = ttl_seconds

    async def record(self, state: GameState) -> dict[str, list[StatsSnapshot]]:
        """Append one snapshot per player; a repeated turn number replaces the last entry."""
        history = await self._store.load_stats(state.game_id)
        for player_id, point in snapshot(state).items():
            series = history.setdefault(player_id, [])
            if series and series[-1].turn_number == point.turn_number:
                series[-1] = point
            else:
                series.append(point)
        await self._store.save_stats(state.game_id, history, self._ttl_seconds)
        logger.debug(
            "Stats recorded: game=%s, turn_number=%d, players=%d",
            state.game_id,
            state.turn_number,
            len(history),
        )
        return history

    async def history(self, game_id: str) -> dict[str, list[StatsSnapshot]]:
        return await self._store.load_stats(game_id)
