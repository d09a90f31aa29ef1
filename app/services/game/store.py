"""Redis persistence for game documents, trades, stats and bot registries.

Key layout:
- game:{game_id}                              GameState JSON
- game:{game_id}:bots                         hash bot_id -> difficulty
- trade:{game_id}:{trade_id}                  Trade JSON (TTL)
- trade-cooldown:{game_id}:{bot_id}:{owner}   marker (TTL)
- stats:{game_id}                             per-player StatsSnapshot history (TTL)
- player:{player_id}:current_game             game id
"""

import json
import logging

from upstash_redis.asyncio import Redis

from app.dependencies.redis import get_redis_client
from app.schemas.game_engine import GameState, StatsSnapshot, Trade

logger = logging.getLogger(__name__)


class GameStore:
    """Thin typed layer over the Upstash client.

    Read failures and write failures propagate to the caller; there is no
    local cache to fall back on.
    """

    def __init__(self, redis_client: Redis | None = None, event_log_retention: int = 10):
        self._redis = redis_client or get_redis_client()
        self._event_log_retention = event_log_retention

    @property
    def redis(self) -> Redis:
        return self._redis

    def _game_key(self, game_id: str) -> str:
        return f"game:{game_id}"

    def _bots_key(self, game_id: str) -> str:
        return f"game:{game_id}:bots"

    def _trade_key(self, game_id: str, trade_id: str) -> str:
        return f"trade:{game_id}:{trade_id}"

    def _cooldown_key(self, game_id: str, bot_id: str, owner_id: str) -> str:
        return f"trade-cooldown:{game_id}:{bot_id}:{owner_id}"

    def _stats_key(self, game_id: str) -> str:
        return f"stats:{game_id}"

    def _current_game_key(self, player_id: str) -> str:
        return f"player:{player_id}:current_game"

    # --- Game documents ---

    async def load_game(self, game_id: str) -> GameState | None:
        raw = await self._redis.get(self._game_key(game_id))
        if raw is None:
            return None
        return GameState.model_validate_json(raw)

    async def save_game(self, state: GameState) -> None:
        """Persist the whole document, keeping only the recent event log tail."""
        tail = state.event_log[-self._event_log_retention :] if self._event_log_retention else []
        document = state.model_copy(update={"event_log": tail})
        await self._redis.set(self._game_key(state.game_id), document.model_dump_json())
        logger.debug(
            "Game saved: game=%s, phase=%s, turn_number=%d",
            state.game_id,
            state.phase.value,
            state.turn_number,
        )

    async def delete_game(self, game_id: str) -> None:
        await self._redis.delete(self._game_key(game_id))

    # --- Trades ---

    async def load_trade(self, game_id: str, trade_id: str) -> Trade | None:
        raw = await self._redis.get(self._trade_key(game_id, trade_id))
        if raw is None:
            return None
        return Trade.model_validate_json(raw)

    async def save_trade(self, trade: Trade, ttl_seconds: int) -> None:
        await self._redis.set(
            self._trade_key(trade.game_id, trade.id),
            trade.model_dump_json(),
            ex=ttl_seconds,
        )

    async def set_trade_cooldown(
        self,
        game_id: str,
        bot_id: str,
        owner_id: str,
        proposed_at: float,
        ttl_seconds: int,
    ) -> None:
        """Remember when ``bot_id`` last proposed a trade to ``owner_id``."""
        await self._redis.set(
            self._cooldown_key(game_id, bot_id, owner_id),
            str(proposed_at),
            ex=ttl_seconds,
        )

    async def get_trade_cooldown(self, game_id: str, bot_id: str, owner_id: str) -> float | None:
        raw = await self._redis.get(self._cooldown_key(game_id, bot_id, owner_id))
        return float(raw) if raw is not None else None

    # --- Stats ---

    async def load_stats(self, game_id: str) -> dict[str, list[StatsSnapshot]]:
        raw = await self._redis.get(self._stats_key(game_id))
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable stats for game %s", game_id)
            return {}
        return {
            player_id: [StatsSnapshot.model_validate(s) for s in snapshots]
            for player_id, snapshots in data.items()
        }

    async def save_stats(
        self,
        game_id: str,
        stats: dict[str, list[StatsSnapshot]],
        ttl_seconds: int,
    ) -> None:
        payload = {
            player_id: [s.model_dump() for s in snapshots] for player_id, snapshots in stats.items()
        }
        await self._redis.set(self._stats_key(game_id), json.dumps(payload), ex=ttl_seconds)

    # --- Player pointers ---

    async def set_current_game(self, player_id: str, game_id: str) -> None:
        await self._redis.set(self._current_game_key(player_id), game_id)

    async def get_current_game(self, player_id: str) -> str | None:
        return await self._redis.get(self._current_game_key(player_id))

    async def clear_current_game(self, player_id: str, game_id: str | None = None) -> None:
        """Drop the pointer; with ``game_id``, only while it still points there."""
        if game_id is not None and await self.get_current_game(player_id) != game_id:
            return
        await self._redis.delete(self._current_game_key(player_id))

    # --- Bot registry ---

    async def register_bot(self, game_id: str, bot_id: str, difficulty: str) -> None:
        await self._redis.hset(self._bots_key(game_id), bot_id, difficulty)

    async def deregister_bot(self, game_id: str, bot_id: str) -> None:
        await self._redis.hdel(self._bots_key(game_id), bot_id)

    async def load_bots(self, game_id: str) -> dict[str, str]:
        return await self._redis.hgetall(self._bots_key(game_id)) or {}

    async def list_bot_games(self) -> list[str]:
        """Game ids with a registered bot; scanned once at startup."""
        keys = await self._redis.keys("game:*:bots")
        return [key.split(":")[1] for key in keys]

    # --- Cleanup ---

    async def purge_game(self, game_id: str, player_ids: list[str]) -> None:
        """Delete every key belonging to a finished game."""
        doomed = [
            self._stats_key(game_id),
            self._bots_key(game_id),
            self._game_key(game_id),
        ]
        doomed.extend(await self._redis.keys(f"trade-cooldown:{game_id}:*"))
        doomed.extend(await self._redis.keys(f"trade:{game_id}:*"))
        for player_id in player_ids:
            if await self.get_current_game(player_id) == game_id:
                doomed.append(self._current_game_key(player_id))
        await self._redis.delete(*doomed)
        logger.info("Game purged: game=%s, keys=%d", game_id, len(doomed))
