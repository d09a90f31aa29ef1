"""A bot seat: plays its turns, bids, and trades through GameService."""

import logging
import random
import time

from app.schemas.game_engine import (
    BotDifficulty,
    GamePhase,
    GameState,
    GameStatus,
    PlayerState,
    TradeOffer,
    TradeStatus,
)
from app.services.game.board import COLOR_GROUPS
from app.services.game.engine import (
    AcceptTradeAction,
    BuildHouseAction,
    BuyPropertyAction,
    DeclineTradeAction,
    EndTurnAction,
    GameAction,
    PassBidAction,
    PlaceBidAction,
    ProcessResult,
    PropertyUnowned,
    ProposeTradeAction,
    RollAction,
)
from app.services.game.engine.rules import property_state
from app.services.game.service import GameService

from . import strategy

logger = logging.getLogger(__name__)


class BotPlayer:
    def __init__(
        self,
        player_id: str,
        game_id: str,
        service: GameService,
        difficulty: BotDifficulty = BotDifficulty.MEDIUM,
        rng: random.Random | None = None,
    ):
        self.player_id = player_id
        self.game_id = game_id
        self.difficulty = difficulty
        self.profile = strategy.PROFILES[difficulty]
        self._service = service
        self._rng = rng or random.Random()
        # (responder_id, tile_id) -> declines so far
        self.declined_trades: dict[tuple[str, int], int] = {}

    def __repr__(self) -> str:
        return f"BotPlayer({self.player_id!r}, game={self.game_id!r}, {self.difficulty.value})"

    def _me(self, state: GameState) -> PlayerState | None:
        player = state.players.get(self.player_id)
        return player if player is not None and player.is_active else None

    def holds_turn(self, state: GameState) -> bool:
        return (
            state.status == GameStatus.ACTIVE
            and state.turn == self.player_id
            and self._me(state) is not None
        )

    async def _act(self, action: GameAction) -> ProcessResult:
        result = await self._service.perform(self.game_id, self.player_id, action)
        if not result.success:
            logger.debug(
                "Bot action rejected: bot=%s, action=%s, error=%s",
                self.player_id,
                action.action_type,
                result.error_code,
            )
        return result

    async def take_turn(self) -> None:
        """Roll, buy, build, maybe propose a trade, then end the turn.

        Also resumes a turn interrupted after the roll.
        """
        state = await self._service.get_game(self.game_id)
        if not self.holds_turn(state):
            return

        if state.phase == GamePhase.BEFORE_ROLL:
            result = await self._act(RollAction())
            if result.state is None:
                return
            state = result.state
            if not self.holds_turn(state):
                return
            for event in result.events:
                if isinstance(event, PropertyUnowned) and event.player_id == self.player_id:
                    state = await self.decide_to_buy(state, event.tile_id)

        if state.phase != GamePhase.AFTER_ROLL or not self.holds_turn(state):
            return

        state = await self.manage_properties(state)
        await self.propose_trade(state)
        await self._act(EndTurnAction())

    async def decide_to_buy(self, state: GameState, tile_id: int) -> GameState:
        me = self._me(state)
        if me is None or property_state(state, tile_id).owner is not None:
            return state
        if not strategy.should_buy(state, me, tile_id, self.profile):
            logger.debug("Bot %s skips buying tile %d", self.player_id, tile_id)
            return state
        result = await self._act(BuyPropertyAction(tile_id=tile_id))
        return result.state or state

    async def manage_properties(self, state: GameState) -> GameState:
        """Build houses on monopolies until money or levels run out."""
        while True:
            me = self._me(state)
            if me is None:
                return state
            tile_id = strategy.next_build(state, me, self.profile)
            if tile_id is None:
                return state
            result = await self._act(BuildHouseAction(tile_id=tile_id))
            if result.state is None:
                return state
            state = result.state

    async def propose_trade(self, state: GameState) -> bool:
        """Try to buy a tile that would complete one of the bot's groups."""
        if self._rng.random() > self.profile.trade_chance:
            return False
        me = self._me(state)
        if me is None:
            return False

        settings = self._service.settings
        store = self._service.store
        now = time.time()
        best: tuple[int, str, int, TradeOffer] | None = None

        for tiles in COLOR_GROUPS.values():
            mine = [t for t in tiles if property_state(state, t).owner == self.player_id]
            if not mine or len(mine) == len(tiles):
                continue
            for tile_id in tiles:
                owner_id = property_state(state, tile_id).owner
                if owner_id is None or owner_id == self.player_id:
                    continue
                owner = state.players.get(owner_id)
                if owner is None or not owner.is_active or not strategy.is_tradeable(state, tile_id):
                    continue
                last = await store.get_trade_cooldown(self.game_id, self.player_id, owner_id)
                if last is not None and now - last < settings.TRADE_COOLDOWN_SECONDS:
                    continue
                offer = strategy.build_offer(
                    state, me, tile_id, self.declined_trades.get((owner_id, tile_id), 0)
                )
                if offer is None:
                    continue
                requested = TradeOffer(properties=[tile_id])
                score = strategy.offer_value(state, requested) - strategy.offer_value(state, offer)
                if best is None or score > best[0]:
                    best = (score, owner_id, tile_id, offer)

        if best is None:
            return False
        _, owner_id, tile_id, offer = best
        result = await self._act(
            ProposeTradeAction(
                responder_id=owner_id,
                offer=offer,
                request=TradeOffer(properties=[tile_id]),
            )
        )
        if not result.success:
            return False
        await store.set_trade_cooldown(
            self.game_id,
            self.player_id,
            owner_id,
            now,
            settings.TRADE_COOLDOWN_KEY_TTL_SECONDS,
        )
        logger.info(
            "Bot proposed trade: bot=%s, responder=%s, tile=%d",
            self.player_id,
            owner_id,
            tile_id,
        )
        return True

    async def respond_to_trade(self, trade_id: str) -> None:
        trade = await self._service.get_trade(self.game_id, trade_id)
        if trade is None or trade.status != TradeStatus.PENDING:
            return
        if trade.responder_id != self.player_id:
            return
        state = await self._service.get_game(self.game_id)
        me = self._me(state)
        if me is None:
            return
        if strategy.evaluate_trade(state, me, trade, self.difficulty):
            await self._act(AcceptTradeAction(trade_id=trade_id))
        else:
            await self._act(DeclineTradeAction(trade_id=trade_id))

    def record_decline(self, responder_id: str, tile_ids: list[int]) -> None:
        for tile_id in tile_ids:
            key = (responder_id, tile_id)
            self.declined_trades[key] = self.declined_trades.get(key, 0) + 1

    async def bid_in_auction(self) -> None:
        state = await self._service.get_game(self.game_id)
        me = self._me(state)
        auction = state.auction
        if me is None or auction is None or self.player_id not in auction.bidders:
            return
        if auction.current_bidder_id == self.player_id:
            return
        bid = strategy.choose_bid(state, me, self.profile)
        if bid is None:
            await self._act(PassBidAction())
        else:
            await self._act(PlaceBidAction(amount=bid))
