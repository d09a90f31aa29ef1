"""Locked, persisted game operations.

GameService is the single entry point through which game documents change.
Every operation runs the same sequence:

1. Acquire ``lock:{game_id}`` and load the document (``locked()``)
2. Run the pure engine on a private copy (``process_action``)
3. Persist the new document and any trade document (``_commit``)
4. Release the lock
5. Broadcast events and state, schedule timers, wake bots (``_publish``)

The engine never locks and never touches the store, so there is no lock
re-entrancy: only the outermost service call acquires. ``_commit`` accepts
only a ``LockedGame``, and only ``locked()`` builds one.
"""

import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from uuid import uuid4

from app.config import Settings, get_settings
from app.schemas.game_engine import GameRules, GameState, GameStatus, PlayerStatus, Trade
from app.schemas.ws import (
    GameEventsPayload,
    GameNoticePayload,
    GameStatePayload,
    MessageType,
    WSServerMessage,
)

from . import pacing
from .engine import (
    TRADE_RESPONSE_ACTIONS,
    AnotherTurn,
    AnyGameEvent,
    GameAction,
    GameOver,
    GameStats,
    JailNotice,
    JoinGameAction,
    PlayerBankrupt,
    ProcessResult,
    SetConnectedAction,
    TradeAccepted,
    TradeCancelled,
    TradeDeclined,
    TradeOffered,
    TurnEnded,
    TurnStarted,
    check_invariants,
    process_action,
)
from .engine.events import CardDrawn, PlayerJoined, PlayerLeft
from .lock import GameLock, LockToken
from .stats import StatsRecorder
from .store import GameStore
from .timers import JobKind, TimerCoordinator, trade_timer_key, turn_timer_key

if TYPE_CHECKING:
    from app.services.bot.supervisor import BotSupervisor

logger = logging.getLogger(__name__)


class Broadcaster(Protocol):
    """Delivers server messages to everyone in a game or to one player."""

    async def send_to_room(self, game_id: str, message: WSServerMessage) -> int: ...

    async def send_to_user(self, player_id: str, message: WSServerMessage) -> int: ...


class GameServiceError(Exception):
    """Base error for service level failures (not rule violations)."""

    code = "GAME_SERVICE_ERROR"


class GameNotFoundError(GameServiceError):
    code = "GAME_NOT_FOUND"

    def __init__(self, game_id: str):
        super().__init__(f"Game {game_id} not found")
        self.game_id = game_id


@dataclass
class LockedGame:
    """A game document loaded while holding its lock.

    Only ``GameService.locked()`` constructs these; holding one is the proof
    that a write is allowed.
    """

    token: LockToken
    state: GameState


class GameService:
    def __init__(
        self,
        store: GameStore,
        lock: GameLock,
        broadcaster: Broadcaster,
        timers: TimerCoordinator,
        bots: "BotSupervisor | None" = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        stats: StatsRecorder | None = None,
    ):
        self._store = store
        self._lock = lock
        self._broadcaster = broadcaster
        self._timers = timers
        self._settings = settings or get_settings()
        self._rng = rng or random.Random()
        self._stats = stats or StatsRecorder(store, self._settings.STATS_TTL_SECONDS)
        self._bots = bots
        if bots is not None:
            bots.bind(self)

    @property
    def store(self) -> GameStore:
        return self._store

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def rng(self) -> random.Random:
        return self._rng

    # --- Locking ---

    @asynccontextmanager
    async def locked(self, game_id: str) -> AsyncIterator[LockedGame]:
        """Hold the game lock and yield the freshly loaded document."""
        async with self._lock.hold(game_id) as token:
            state = await self._store.load_game(game_id)
            if state is None:
                raise GameNotFoundError(game_id)
            yield LockedGame(token=token, state=state)

    # --- Reads (no lock) ---

    async def get_game(self, game_id: str) -> GameState:
        state = await self._store.load_game(game_id)
        if state is None:
            raise GameNotFoundError(game_id)
        return state

    async def get_trade(self, game_id: str, trade_id: str) -> Trade | None:
        return await self._store.load_trade(game_id, trade_id)

    async def get_current_game(self, player_id: str) -> GameState | None:
        """The lobby or running game ``player_id`` is still seated in, for reconnects.

        A pointer to a vanished game or one the player has left is dropped.
        """
        game_id = await self._store.get_current_game(player_id)
        if game_id is None:
            return None
        state = await self._store.load_game(game_id)
        player = state.players.get(player_id) if state is not None else None
        if (
            state is None
            or player is None
            or player.status == PlayerStatus.LEFT
            or state.status not in (GameStatus.LOBBY, GameStatus.ACTIVE)
        ):
            logger.debug("Dropping stale game pointer: player=%s, game=%s", player_id, game_id)
            await self._store.clear_current_game(player_id, game_id)
            return None
        return state

    # --- Writes ---

    async def create_game(
        self,
        host_id: str,
        host_name: str,
        rules: GameRules | None = None,
        is_simulation: bool = False,
    ) -> GameState:
        """Create a lobby with ``host_id`` seated as its host."""
        rules = rules or GameRules(trade_expiry_seconds=self._settings.TRADE_EXPIRY_SECONDS)
        state = GameState(game_id=str(uuid4()), rules=rules, is_simulation=is_simulation)
        async with self._lock.hold(state.game_id):
            await self._store.save_game(state)
        logger.info("Game created: game=%s, host=%s", state.game_id, host_id)

        result = await self.perform(
            state.game_id, host_id, JoinGameAction(name=host_name, user_id=host_id)
        )
        if result.state is None:
            raise GameServiceError(result.error_message or "Could not seat the host")
        return result.state

    async def perform(self, game_id: str, player_id: str, action: GameAction) -> ProcessResult:
        """Apply one action to one game under its lock.

        Rule violations come back as a failed ProcessResult with nothing
        persisted. A missing game raises GameNotFoundError. Store errors
        propagate after the lock is released.
        """
        async with self.locked(game_id) as game:
            trade = None
            if isinstance(action, TRADE_RESPONSE_ACTIONS):
                trade = await self._store.load_trade(game_id, action.trade_id)

            actor = game.state.players.get(player_id)
            if actor is not None and actor.is_bot:
                await pacing.bot_pause(self._settings, self._rng, game.state.is_simulation)

            result = process_action(game.state, action, player_id, rng=self._rng, trade=trade)

            if result.state is not None:
                if any(isinstance(e, CardDrawn) for e in result.events):
                    await pacing.card_pause(self._settings, self._rng, game.state.is_simulation)
                await self._commit(game, result)

        if result.state is not None:
            await self._publish(result.state, result.events)
        return result

    async def set_player_connected(self, game_id: str, player_id: str, connected: bool) -> None:
        state = await self._store.load_game(game_id)
        if state is None or player_id not in state.players:
            return
        await self.perform(game_id, player_id, SetConnectedAction(connected=connected))

    async def record_stats(self, game_id: str) -> None:
        state = await self._store.load_game(game_id)
        if state is None or state.status != GameStatus.ACTIVE:
            return
        await self._stats.record(state)

    async def send_notice(self, game_id: str, player_id: str, notice: AnyGameEvent) -> None:
        """Send a private event to one player; notices are never logged."""
        await self._broadcaster.send_to_user(
            player_id,
            WSServerMessage(
                type=MessageType.GAME_NOTICE,
                payload=GameNoticePayload(
                    game_id=game_id,
                    notice=notice.model_dump(mode="json"),
                ).model_dump(),
            ),
        )

    def schedule_turn_timer(self, state: GameState) -> None:
        if state.status != GameStatus.ACTIVE or state.turn is None:
            return
        self._timers.schedule(
            JobKind.TURN_EXPIRY,
            {
                "game_id": state.game_id,
                "player_id": state.turn,
                "turn_number": state.turn_number,
            },
            delay=self._settings.TURN_TIME_LIMIT_SECONDS,
            dedupe_key=turn_timer_key(state.game_id, state.turn),
        )

    # --- Internals ---

    async def _commit(self, game: LockedGame, result: ProcessResult) -> None:
        state = result.state
        if state is None or state.game_id != game.token.game_id:
            raise GameServiceError("Refusing to persist a state outside its lock")

        if result.trade is not None:
            await self._store.save_trade(result.trade, self._settings.TRADE_KEY_TTL_SECONDS)

        for event in result.events:
            if isinstance(event, PlayerJoined) and not event.is_bot:
                await self._store.set_current_game(event.player_id, state.game_id)
            elif isinstance(event, PlayerLeft):
                await self._store.clear_current_game(event.player_id, state.game_id)

        if any(isinstance(e, GameOver) for e in result.events):
            history = await self._stats.record(state)
            stats_event = GameStats(stats=history, seq=state.event_seq)
            state.event_seq += 1
            state.event_log.append(stats_event.model_dump(mode="json"))
            result.events.append(stats_event)
            await self._store.purge_game(state.game_id, list(state.players))
            logger.info("Game finished: game=%s, turns=%d", state.game_id, state.turn_number)
        else:
            await self._store.save_game(state)

        game.state = state

    async def _publish(self, state: GameState, events: list[AnyGameEvent]) -> None:
        game_id = state.game_id
        if events:
            await self._broadcaster.send_to_room(
                game_id,
                WSServerMessage(
                    type=MessageType.GAME_EVENTS,
                    payload=GameEventsPayload(
                        game_id=game_id,
                        events=[e.model_dump(mode="json") for e in events],
                    ).model_dump(),
                ),
            )
        await self._broadcaster.send_to_room(
            game_id,
            WSServerMessage(
                type=MessageType.GAME_STATE,
                payload=GameStatePayload(state=state.model_dump(mode="json")).model_dump(),
            ),
        )

        self._schedule_timers(state, events)
        await self._notify_jailed_player(state, events)

        if state.is_simulation:
            for problem in check_invariants(state):
                logger.error("Invariant violated: game=%s, %s", game_id, problem)

        if self._bots is not None:
            await self._bots.observe(state, events)

    def _schedule_timers(self, state: GameState, events: list[AnyGameEvent]) -> None:
        game_id = state.game_id
        for event in events:
            if isinstance(event, TradeOffered):
                self._timers.schedule(
                    JobKind.TRADE_EXPIRY,
                    {
                        "game_id": game_id,
                        "trade_id": event.trade.id,
                        "proposer_id": event.trade.proposer_id,
                    },
                    delay=state.rules.trade_expiry_seconds,
                    dedupe_key=trade_timer_key(game_id, event.trade.id),
                )
            elif isinstance(event, (TradeAccepted, TradeDeclined, TradeCancelled)):
                self._timers.cancel(trade_timer_key(game_id, event.trade_id))
            elif isinstance(event, TurnEnded):
                self._timers.cancel(turn_timer_key(game_id, event.player_id))

        if any(isinstance(e, GameOver) for e in events):
            self._timers.cancel_prefix(turn_timer_key(game_id, ""))
            self._timers.cancel_prefix(trade_timer_key(game_id, ""))
            return

        if any(isinstance(e, (TurnEnded, PlayerBankrupt)) for e in events):
            self._timers.schedule(
                JobKind.STATS_SNAPSHOT,
                {"game_id": game_id},
                delay=self._settings.STATS_JOB_DELAY_SECONDS,
                dedupe_key=f"stats-{game_id}",
            )
        if any(isinstance(e, (TurnStarted, AnotherTurn)) for e in events):
            self.schedule_turn_timer(state)

    async def _notify_jailed_player(self, state: GameState, events: list[AnyGameEvent]) -> None:
        if not any(isinstance(e, (TurnStarted, AnotherTurn)) for e in events):
            return
        player = state.players.get(state.turn) if state.turn else None
        if player is None or player.is_bot or not player.in_jail:
            return
        await self.send_notice(
            state.game_id,
            player.id,
            JailNotice(
                player_id=player.id,
                can_use_card=player.get_out_of_jail_free_cards > 0,
                can_pay_bail=player.money >= state.rules.bail_amount,
            ),
        )


# Global service instance (initialized in lifespan)
_game_service: GameService | None = None


def get_game_service() -> GameService:
    """Get the global GameService instance."""
    if _game_service is None:
        raise RuntimeError("GameService has not been initialized")
    return _game_service


def set_game_service(service: GameService | None) -> None:
    """Set the global GameService instance."""
    global _game_service
    _game_service = service
