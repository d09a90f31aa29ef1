"""Registry of live bots and the reactions they take to game events.

The supervisor owns every BotPlayer on this process. It is told about each
committed action through ``observe`` and answers in background tasks, so a
human's request never waits for a bot's turn. Bot seats are mirrored in the
``game:{game_id}:bots`` hash and reloaded on startup.
"""

import asyncio
import logging
import random
from collections.abc import Coroutine
from typing import Any

from app.schemas.game_engine import BotDifficulty, GamePhase, GameState, GameStatus
from app.services.game.engine import (
    AnotherTurn,
    AnyGameEvent,
    GameOver,
    TradeDeclined,
    TradeOffered,
    TurnStarted,
)
from app.services.game.engine.events import (
    AuctionBid,
    AuctionPassed,
    AuctionStarted,
    PlayerBankrupt,
    PlayerJoined,
    PlayerLeft,
)
from app.services.game.service import GameNotFoundError, GameService
from app.services.game.store import GameStore

from .player import BotPlayer

logger = logging.getLogger(__name__)

AUCTION_EVENTS = (AuctionStarted, AuctionBid, AuctionPassed)
TURN_EVENTS = (TurnStarted, AnotherTurn)


class BotSupervisor:
    def __init__(self, store: GameStore, rng: random.Random | None = None):
        self._store = store
        self._rng = rng or random.Random()
        self._service: GameService | None = None
        self._bots: dict[str, dict[str, BotPlayer]] = {}  # game_id -> player_id -> bot
        self._tasks: dict[str, set[asyncio.Task]] = {}  # game_id -> running reactions

    def bind(self, service: GameService) -> None:
        self._service = service

    @property
    def service(self) -> GameService:
        if self._service is None:
            raise RuntimeError("BotSupervisor is not bound to a GameService")
        return self._service

    def get(self, game_id: str, player_id: str) -> BotPlayer | None:
        return self._bots.get(game_id, {}).get(player_id)

    def bots_in(self, game_id: str) -> list[BotPlayer]:
        return list(self._bots.get(game_id, {}).values())

    def _create(self, game_id: str, player_id: str, difficulty: BotDifficulty) -> BotPlayer:
        bot = BotPlayer(player_id, game_id, self.service, difficulty, rng=self._rng)
        self._bots.setdefault(game_id, {})[player_id] = bot
        return bot

    async def register(self, game_id: str, player_id: str, difficulty: BotDifficulty) -> BotPlayer:
        bot = self._create(game_id, player_id, difficulty)
        await self._store.register_bot(game_id, player_id, difficulty.value)
        logger.info("Bot registered: game=%s, bot=%s, difficulty=%s", game_id, player_id, difficulty.value)
        return bot

    async def deregister(self, game_id: str, player_id: str) -> None:
        game_bots = self._bots.get(game_id, {})
        game_bots.pop(player_id, None)
        if not game_bots:
            self._bots.pop(game_id, None)
        await self._store.deregister_bot(game_id, player_id)
        logger.info("Bot deregistered: game=%s, bot=%s", game_id, player_id)

    def release_game(self, game_id: str) -> None:
        """Forget a finished game's bots and stop their pending reactions."""
        self._bots.pop(game_id, None)
        current = asyncio.current_task()
        for task in self._tasks.pop(game_id, set()):
            if task is not current:
                task.cancel()
        logger.debug("Released bots of game %s", game_id)

    async def load_from_store(self) -> int:
        """Rebuild bots from the registry hashes and resume interrupted turns."""
        loaded = 0
        for game_id in await self._store.list_bot_games():
            state = await self._store.load_game(game_id)
            if state is None:
                logger.warning("Bot registry for missing game %s; skipping", game_id)
                continue
            for player_id, difficulty in (await self._store.load_bots(game_id)).items():
                self._create(game_id, player_id, BotDifficulty(difficulty))
                loaded += 1
            if state.status == GameStatus.ACTIVE:
                self._wake(state)
        logger.info("Loaded %d bots from the store", loaded)
        return loaded

    async def observe(self, state: GameState, events: list[AnyGameEvent]) -> None:
        """React to one committed action's events."""
        game_id = state.game_id
        for event in events:
            if isinstance(event, PlayerJoined) and event.is_bot:
                player = state.players[event.player_id]
                await self.register(
                    game_id,
                    event.player_id,
                    player.bot_difficulty or state.rules.bot_difficulty,
                )
            elif isinstance(event, (PlayerBankrupt, PlayerLeft)):
                if self.get(game_id, event.player_id) is not None:
                    await self.deregister(game_id, event.player_id)
            elif isinstance(event, TradeOffered):
                bot = self.get(game_id, event.trade.responder_id)
                if bot is not None:
                    self._spawn(game_id, bot.respond_to_trade(event.trade.id))
            elif isinstance(event, TradeDeclined):
                bot = self.get(game_id, event.proposer_id)
                if bot is not None:
                    bot.record_decline(event.responder_id, event.requested_properties)

        if any(isinstance(e, GameOver) for e in events):
            self.release_game(game_id)
            return

        if any(isinstance(e, AUCTION_EVENTS) for e in events):
            self._wake_bidders(state)
        if any(isinstance(e, TURN_EVENTS) for e in events):
            self._wake_turn(state)

    def _wake(self, state: GameState) -> None:
        if state.phase == GamePhase.AUCTION:
            self._wake_bidders(state)
        else:
            self._wake_turn(state)

    def _wake_turn(self, state: GameState) -> None:
        bot = self.get(state.game_id, state.turn) if state.turn else None
        if bot is not None and state.phase in (GamePhase.BEFORE_ROLL, GamePhase.AFTER_ROLL):
            self._spawn(state.game_id, bot.take_turn())

    def _wake_bidders(self, state: GameState) -> None:
        auction = state.auction
        if auction is None:
            return
        for player_id in auction.bidders:
            bot = self.get(state.game_id, player_id)
            if bot is not None and auction.current_bidder_id != player_id:
                self._spawn(state.game_id, bot.bid_in_auction())

    def _spawn(self, game_id: str, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(self._guard(game_id, coro))
        tasks = self._tasks.setdefault(game_id, set())
        tasks.add(task)
        task.add_done_callback(tasks.discard)

    async def _guard(self, game_id: str, coro: Coroutine[Any, Any, None]) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except GameNotFoundError:
            logger.debug("Bot reaction for finished game %s dropped", game_id)
        except Exception:
            logger.exception("Bot reaction failed: game=%s", game_id)

    async def drain(self) -> None:
        """Wait until no bot reaction is running (reactions may spawn more)."""
        while True:
            pending = [t for tasks in self._tasks.values() for t in tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def shutdown(self) -> None:
        tasks = [t for tasks in self._tasks.values() for t in tasks]
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Bot supervisor stopped, %d reactions cancelled", len(tasks))
