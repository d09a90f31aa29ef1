"""Tests for the per-game Redis lock."""

import asyncio

import pytest

from app.services.game.lock import GameLock

from .conftest import GAME_ID


@pytest.fixture
def lock(fake_redis) -> GameLock:
    return GameLock(fake_redis, ttl_ms=5000, retry_ms=1)


class TestGameLock:
    @pytest.mark.asyncio
    async def test_acquire_and_release(self, lock: GameLock, fake_redis):
        token = await lock.acquire(GAME_ID)

        assert fake_redis.data[f"lock:{GAME_ID}"] == token.token

        await lock.release(GAME_ID)

        assert f"lock:{GAME_ID}" not in fake_redis.data

    @pytest.mark.asyncio
    async def test_second_holder_waits(self, lock: GameLock):
        await lock.acquire(GAME_ID)
        waiter = asyncio.create_task(lock.acquire(GAME_ID))

        await asyncio.sleep(0.02)
        assert not waiter.done()

        await lock.release(GAME_ID)
        token = await asyncio.wait_for(waiter, timeout=1)

        assert token.game_id == GAME_ID

    @pytest.mark.asyncio
    async def test_games_do_not_block_each_other(self, lock: GameLock):
        await lock.acquire(GAME_ID)

        token = await asyncio.wait_for(lock.acquire("game-0002"), timeout=1)

        assert token.game_id == "game-0002"

    @pytest.mark.asyncio
    async def test_hold_releases_on_error(self, lock: GameLock, fake_redis):
        with pytest.raises(RuntimeError):
            async with lock.hold(GAME_ID):
                assert f"lock:{GAME_ID}" in fake_redis.data
                raise RuntimeError("boom")

        assert f"lock:{GAME_ID}" not in fake_redis.data
