"""Per-game mutual exclusion over Redis.

Every mutation of a game document happens while holding ``lock:{game_id}``.
The lock is a plain ``SET NX PX`` key: acquisition polls until it wins, the
TTL frees locks of crashed holders, and release deletes the key outright.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import uuid4

from upstash_redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Emit a contention warning every N failed attempts
WARN_EVERY_ATTEMPTS = 50


@dataclass(frozen=True)
class LockToken:
    game_id: str
    token: str


class GameLock:
    def __init__(self, redis_client: Redis, ttl_ms: int = 5000, retry_ms: int = 100):
        self._redis = redis_client
        self._ttl_ms = ttl_ms
        self._retry_ms = retry_ms

    @staticmethod
    def key(game_id: str) -> str:
        return f"lock:{game_id}"

    async def acquire(self, game_id: str) -> LockToken:
        """Block until ``lock:{game_id}`` is ours. There is no give-up timeout."""
        token = str(uuid4())
        attempts = 0
        while True:
            acquired = await self._redis.set(
                self.key(game_id), token, px=self._ttl_ms, nx=True
            )
            if acquired:
                if attempts:
                    logger.debug("Lock acquired: game=%s, after %d retries", game_id, attempts)
                return LockToken(game_id=game_id, token=token)
            attempts += 1
            if attempts % WARN_EVERY_ATTEMPTS == 0:
                logger.warning(
                    "Still waiting for game lock: game=%s, attempts=%d",
                    game_id,
                    attempts,
                )
            await asyncio.sleep(self._retry_ms / 1000)

    async def release(self, game_id: str) -> None:
        # Unconditional; the token is not compared
        await self._redis.delete(self.key(game_id))

    @asynccontextmanager
    async def hold(self, game_id: str) -> AsyncIterator[LockToken]:
        token = await self.acquire(game_id)
        try:
            yield token
        finally:
            await self.release(game_id)
