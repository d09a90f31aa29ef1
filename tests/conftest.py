"""Shared fixtures for game engine and service tests."""

import fnmatch
import random

import pytest
import pytest_asyncio

from app.config import Settings
from app.schemas.game_engine import (
    Deck,
    GamePhase,
    GameRules,
    GameState,
    GameStatus,
    PlayerState,
    PropertyState,
)
from app.schemas.ws import WSServerMessage
from app.services.game.board import PURCHASABLE_TILE_IDS, DeckType, deck_card_ids
from app.services.game.engine.rules import refresh_assets
from app.services.game.jobs import register_jobs
from app.services.game.lock import GameLock
from app.services.game.service import GameService
from app.services.game.store import GameStore
from app.services.game.timers import TimerCoordinator

# Fixed ids for deterministic testing
GAME_ID = "game-0001"
PLAYER_1_ID = "player-1"
PLAYER_2_ID = "player-2"
PLAYER_3_ID = "player-3"
BOT_1_ID = "bot_00000000-0000-0000-0000-000000000001"


class FakeRedis:
    """In-memory stand-in for the Upstash async client.

    Covers the commands the store, lock and connection manager use. TTLs are
    accepted and ignored.
    """

    def __init__(self) -> None:
        self.data: dict[str, object] = {}

    async def get(self, key: str):
        return self.data.get(key)

    async def set(self, key: str, value, ex=None, px=None, nx: bool = False):
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def keys(self, pattern: str) -> list[str]:
        return [key for key in self.data if fnmatch.fnmatchcase(key, pattern)]

    async def hset(self, key: str, field: str, value) -> int:
        bucket = self.data.setdefault(key, {})
        is_new = field not in bucket
        bucket[field] = value
        return int(is_new)

    async def hgetall(self, key: str) -> dict:
        return dict(self.data.get(key) or {})

    async def hdel(self, key: str, *fields: str) -> int:
        bucket = self.data.get(key) or {}
        removed = sum(1 for f in fields if bucket.pop(f, None) is not None)
        if key in self.data and not bucket:
            del self.data[key]
        return removed

    async def incr(self, key: str) -> int:
        value = int(self.data.get(key) or 0) + 1
        self.data[key] = value
        return value

    async def decr(self, key: str) -> int:
        value = int(self.data.get(key) or 0) - 1
        self.data[key] = value
        return value


class FakeBroadcaster:
    """Records every message the service sends."""

    def __init__(self) -> None:
        self.room_messages: list[tuple[str, WSServerMessage]] = []
        self.user_messages: list[tuple[str, WSServerMessage]] = []

    async def send_to_room(self, game_id: str, message: WSServerMessage) -> int:
        self.room_messages.append((game_id, message))
        return 1

    async def send_to_user(self, player_id: str, message: WSServerMessage) -> int:
        self.user_messages.append((player_id, message))
        return 1

    def room_payloads(self, message_type) -> list[dict]:
        return [m.payload for _, m in self.room_messages if m.type == message_type]


def make_settings(**overrides) -> Settings:
    """Settings with every delay switched off and long timers."""
    values = {
        "SUPABASE_URL": "https://project.supabase.co",
        "UPSTASH_REDIS_REST_URL": "https://redis.upstash.io",
        "UPSTASH_REDIS_REST_TOKEN": "test-token",
        "GAME_LOCK_RETRY_MS": 1,
        "BOT_MIN_DELAY_MS": 0,
        "BOT_MAX_DELAY_MS": 0,
        "CARD_DELAY_MAX_MS": 0,
        "TURN_TIME_LIMIT_SECONDS": 60,
        "STATS_JOB_DELAY_SECONDS": 60,
    }
    values.update(overrides)
    return Settings(**values)


def create_player(
    player_id: str,
    name: str | None = None,
    money: int = 15000,
    position: int = 1,
    is_bot: bool = False,
    **kwargs,
) -> PlayerState:
    """Helper to create a player."""
    return PlayerState(
        id=player_id,
        user_id=None if is_bot else player_id,
        name=name or player_id,
        money=money,
        position=position,
        is_bot=is_bot,
        **kwargs,
    )


def create_game(
    players: list[PlayerState],
    turn: str | None = None,
    phase: GamePhase = GamePhase.BEFORE_ROLL,
    rules: GameRules | None = None,
) -> GameState:
    """Helper to create an active game with every tile unowned and decks in id order."""
    humans = [p.id for p in players if not p.is_bot]
    return GameState(
        game_id=GAME_ID,
        players={p.id: p for p in players},
        order=[p.id for p in players],
        turn=turn or players[0].id,
        phase=phase,
        property_states={tile_id: PropertyState() for tile_id in PURCHASABLE_TILE_IDS},
        deck=Deck(
            chance=deck_card_ids(DeckType.CHANCE),
            community=deck_card_ids(DeckType.COMMUNITY),
        ),
        status=GameStatus.ACTIVE,
        host_id=humans[0] if humans else None,
        rules=rules or GameRules(),
    )


def give_property(
    state: GameState,
    player_id: str,
    tile_id: int,
    level: int = 0,
    mortgaged: bool = False,
) -> None:
    """Helper to hand a tile to a player directly."""
    ps = state.property_states[tile_id]
    ps.owner = player_id
    ps.level = level
    ps.mortgaged = mortgaged
    player = state.players[player_id]
    if tile_id not in player.properties:
        player.properties.append(tile_id)
    refresh_assets(state)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def two_player_game() -> GameState:
    """Alice (to move) and Bob, both on Start with the initial balance."""
    return create_game(
        [create_player(PLAYER_1_ID, "Alice"), create_player(PLAYER_2_ID, "Bob")],
    )


@pytest.fixture
def three_player_game() -> GameState:
    """Alice (to move), Bob and Carol."""
    return create_game(
        [
            create_player(PLAYER_1_ID, "Alice"),
            create_player(PLAYER_2_ID, "Bob"),
            create_player(PLAYER_3_ID, "Carol"),
        ],
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def broadcaster() -> FakeBroadcaster:
    return FakeBroadcaster()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store(fake_redis, settings) -> GameStore:
    return GameStore(fake_redis, event_log_retention=settings.EVENT_LOG_RETENTION)


@pytest_asyncio.fixture
async def timers():
    coordinator = TimerCoordinator()
    yield coordinator
    await coordinator.shutdown()


@pytest.fixture
def service(fake_redis, store, broadcaster, timers, settings) -> GameService:
    """GameService over in-memory Redis with jobs registered and no bots."""
    lock = GameLock(fake_redis, ttl_ms=settings.GAME_LOCK_TTL_MS, retry_ms=1)
    game_service = GameService(
        store,
        lock,
        broadcaster,
        timers,
        settings=settings,
        rng=random.Random(42),
    )
    register_jobs(timers, game_service)
    return game_service
