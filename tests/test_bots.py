"""Tests for bot decisions and for bots playing through the service.

Critical scenarios tested:
1. Valuation of trade sides (mortgages, houses, jail cards)
2. Buy, build and bid thresholds per difficulty
3. Offers the bot makes for a tile it wants, sweetened after declines
4. Accept/reject decisions on incoming trades
5. A bot seat finishing its turn and answering trades on its own
"""

import random
from datetime import datetime, timezone

import pytest
import pytest_asyncio

from app.schemas.game_engine import (
    Auction,
    BotDifficulty,
    GamePhase,
    GameState,
    Trade,
    TradeOffer,
    TradeStatus,
)
from app.services.bot.strategy import (
    PROFILES,
    build_offer,
    choose_bid,
    completes_group,
    evaluate_trade,
    is_tradeable,
    next_build,
    offer_value,
    should_buy,
)
from app.services.bot.supervisor import BotSupervisor
from app.services.game.engine import (
    AddBotAction,
    LeaveGameAction,
    ProposeTradeAction,
    StartGameAction,
)
from app.services.game.jobs import register_jobs
from app.services.game.lock import GameLock
from app.services.game.service import GameService

from .conftest import (
    BOT_1_ID,
    GAME_ID,
    PLAYER_1_ID,
    PLAYER_2_ID,
    create_game,
    create_player,
    give_property,
)

EASY = PROFILES[BotDifficulty.EASY]
MEDIUM = PROFILES[BotDifficulty.MEDIUM]
HARD = PROFILES[BotDifficulty.HARD]


@pytest.fixture
def bot_game() -> GameState:
    """Alice (to move) against a bot."""
    return create_game(
        [
            create_player(PLAYER_1_ID, "Alice"),
            create_player(BOT_1_ID, "Aarav", is_bot=True, bot_difficulty=BotDifficulty.HARD),
        ]
    )


def trade_for(offer: TradeOffer, request: TradeOffer) -> Trade:
    return Trade(
        id="trade-1",
        game_id=GAME_ID,
        proposer_id=PLAYER_1_ID,
        responder_id=BOT_1_ID,
        offer=offer,
        request=request,
        created_at=datetime.now(timezone.utc),
    )


class TestOfferValue:
    def test_plain_tile_counts_at_cost(self, bot_game: GameState):
        give_property(bot_game, PLAYER_1_ID, 2)

        assert offer_value(bot_game, TradeOffer(properties=[2])) == 1500

    def test_mortgage_is_discounted(self, bot_game: GameState):
        give_property(bot_game, PLAYER_1_ID, 2, mortgaged=True)

        # 1500 - ceil(750 * 1.1)
        assert offer_value(bot_game, TradeOffer(properties=[2])) == 675

    def test_houses_add_their_cost(self, bot_game: GameState):
        give_property(bot_game, PLAYER_1_ID, 2, level=2)

        assert offer_value(bot_game, TradeOffer(properties=[2])) == 2600

    def test_money_and_jail_cards(self, bot_game: GameState):
        side = TradeOffer(money=300, get_out_of_jail_free_cards=1)

        assert offer_value(bot_game, side) == 800


class TestBuyingAndBuilding:
    def test_easy_bot_keeps_a_reserve(self, bot_game: GameState):
        bot = bot_game.players[BOT_1_ID]
        bot.money = 3000

        assert not should_buy(bot_game, bot, 2, EASY)
        assert should_buy(bot_game, bot, 2, MEDIUM)

    def test_cannot_buy_beyond_means(self, bot_game: GameState):
        bot = bot_game.players[BOT_1_ID]
        bot.money = 1000

        assert not should_buy(bot_game, bot, 2, HARD)

    def test_builds_evenly(self, bot_game: GameState):
        give_property(bot_game, BOT_1_ID, 2, level=1)
        give_property(bot_game, BOT_1_ID, 3)
        give_property(bot_game, BOT_1_ID, 5)

        assert next_build(bot_game, bot_game.players[BOT_1_ID], MEDIUM) == 3

    def test_no_monopoly_no_building(self, bot_game: GameState):
        give_property(bot_game, BOT_1_ID, 2)

        assert next_build(bot_game, bot_game.players[BOT_1_ID], MEDIUM) is None


class TestBidding:
    def auction(self, state: GameState, current_bid: int = 0, bidder: str | None = None):
        state.phase = GamePhase.AUCTION
        state.auction = Auction(
            tile_id=2,
            current_bid=current_bid,
            current_bidder_id=bidder,
            bidders=[PLAYER_1_ID, BOT_1_ID],
        )

    def test_opening_bid_is_half_the_cost(self, bot_game: GameState):
        self.auction(bot_game)

        assert choose_bid(bot_game, bot_game.players[BOT_1_ID], HARD) == 750

    def test_stops_at_the_ceiling(self, bot_game: GameState):
        self.auction(bot_game, current_bid=1750, bidder=PLAYER_1_ID)

        assert choose_bid(bot_game, bot_game.players[BOT_1_ID], HARD) is None

    def test_easy_ceiling(self, bot_game: GameState):
        self.auction(bot_game, current_bid=1100, bidder=PLAYER_1_ID)

        assert choose_bid(bot_game, bot_game.players[BOT_1_ID], EASY) == 1200

    def test_does_not_outbid_itself(self, bot_game: GameState):
        self.auction(bot_game, current_bid=800, bidder=BOT_1_ID)

        assert choose_bid(bot_game, bot_game.players[BOT_1_ID], HARD) is None


class TestTradeTargets:
    def test_houses_in_group_block_trading(self, bot_game: GameState):
        give_property(bot_game, PLAYER_1_ID, 2)
        give_property(bot_game, PLAYER_1_ID, 3, level=1)

        assert not is_tradeable(bot_game, 2)
        assert is_tradeable(bot_game, 22)

    def test_completes_group(self, bot_game: GameState):
        give_property(bot_game, BOT_1_ID, 22)
        give_property(bot_game, PLAYER_1_ID, 24)
        bot = bot_game.players[BOT_1_ID]

        assert completes_group(bot_game, bot, 24)
        assert not completes_group(bot_game, bot, 2)

    def test_offer_pairs_a_spare_tile_with_money(self, bot_game: GameState):
        give_property(bot_game, BOT_1_ID, 2)
        give_property(bot_game, BOT_1_ID, 22)
        give_property(bot_game, PLAYER_1_ID, 24)
        bot = bot_game.players[BOT_1_ID]

        offer = build_offer(bot_game, bot, 24)

        assert offer == TradeOffer(money=1300, properties=[2])

    def test_offer_improves_after_a_decline(self, bot_game: GameState):
        give_property(bot_game, BOT_1_ID, 2)
        give_property(bot_game, BOT_1_ID, 22)
        give_property(bot_game, PLAYER_1_ID, 24)

        offer = build_offer(bot_game, bot_game.players[BOT_1_ID], 24, decline_count=1)

        assert offer.money == 1600

    def test_no_offer_when_broke(self, bot_game: GameState):
        give_property(bot_game, PLAYER_1_ID, 24)
        bot_game.players[BOT_1_ID].money = 500

        assert build_offer(bot_game, bot_game.players[BOT_1_ID], 24) is None


class TestEvaluateTrade:
    def test_hard_bot_wants_a_margin(self, bot_game: GameState):
        give_property(bot_game, BOT_1_ID, 2)
        bot = bot_game.players[BOT_1_ID]

        good = trade_for(TradeOffer(money=2000), TradeOffer(properties=[2]))
        thin = trade_for(TradeOffer(money=1600), TradeOffer(properties=[2]))

        assert evaluate_trade(bot_game, bot, good, BotDifficulty.HARD)
        assert not evaluate_trade(bot_game, bot, thin, BotDifficulty.HARD)
        assert evaluate_trade(bot_game, bot, thin, BotDifficulty.EASY)

    def test_never_breaks_up_a_monopoly(self, bot_game: GameState):
        for tile_id in (2, 3, 5):
            give_property(bot_game, BOT_1_ID, tile_id)
        bot = bot_game.players[BOT_1_ID]

        trade = trade_for(TradeOffer(money=10000), TradeOffer(properties=[2]))

        assert not evaluate_trade(bot_game, bot, trade, BotDifficulty.HARD)

    def test_accepts_a_losing_deal_that_completes_a_group(self, bot_game: GameState):
        give_property(bot_game, BOT_1_ID, 22)
        give_property(bot_game, PLAYER_1_ID, 24)
        bot = bot_game.players[BOT_1_ID]

        trade = trade_for(TradeOffer(properties=[24]), TradeOffer(money=3000))

        assert evaluate_trade(bot_game, bot, trade, BotDifficulty.HARD)


@pytest_asyncio.fixture
async def bot_service(fake_redis, store, broadcaster, timers, settings):
    """GameService with a live bot supervisor."""
    supervisor = BotSupervisor(store, rng=random.Random(7))
    game_service = GameService(
        store,
        GameLock(fake_redis, ttl_ms=settings.GAME_LOCK_TTL_MS, retry_ms=1),
        broadcaster,
        timers,
        bots=supervisor,
        settings=settings,
        rng=random.Random(42),
    )
    register_jobs(timers, game_service)
    yield game_service, supervisor
    await supervisor.shutdown()


class TestBotSeat:
    @pytest.mark.asyncio
    async def test_bot_plays_until_the_human_is_up(self, bot_service, store):
        service, supervisor = bot_service
        created = await service.create_game(PLAYER_1_ID, "Alice")
        game_id = created.game_id

        await service.perform(game_id, PLAYER_1_ID, AddBotAction())
        await service.perform(game_id, PLAYER_1_ID, StartGameAction())
        await supervisor.drain()

        state = await store.load_game(game_id)
        assert state.turn == PLAYER_1_ID
        assert state.phase == GamePhase.BEFORE_ROLL
        bots = await store.load_bots(game_id)
        assert len(bots) == 1
        bot_id = next(iter(bots))
        assert supervisor.get(game_id, bot_id) is not None

    @pytest.mark.asyncio
    async def test_bot_answers_a_trade(self, bot_service, store, bot_game: GameState):
        service, supervisor = bot_service
        give_property(bot_game, BOT_1_ID, 40)
        await store.save_game(bot_game)
        await supervisor.register(GAME_ID, BOT_1_ID, BotDifficulty.HARD)

        proposed = await service.perform(
            GAME_ID,
            PLAYER_1_ID,
            ProposeTradeAction(
                responder_id=BOT_1_ID,
                offer=TradeOffer(money=5000),
                request=TradeOffer(properties=[40]),
            ),
        )
        await supervisor.drain()

        trade = await store.load_trade(GAME_ID, proposed.trade.id)
        assert trade.status == TradeStatus.ACCEPTED
        state = await store.load_game(GAME_ID)
        assert state.property_states[40].owner == PLAYER_1_ID
        assert state.players[BOT_1_ID].money == 20000

    @pytest.mark.asyncio
    async def test_bot_declines_a_poor_trade(self, bot_service, store, bot_game: GameState):
        service, supervisor = bot_service
        give_property(bot_game, BOT_1_ID, 40)
        await store.save_game(bot_game)
        await supervisor.register(GAME_ID, BOT_1_ID, BotDifficulty.HARD)

        proposed = await service.perform(
            GAME_ID,
            PLAYER_1_ID,
            ProposeTradeAction(
                responder_id=BOT_1_ID,
                offer=TradeOffer(money=4600),
                request=TradeOffer(properties=[40]),
            ),
        )
        await supervisor.drain()

        trade = await store.load_trade(GAME_ID, proposed.trade.id)
        assert trade.status == TradeStatus.DECLINED
        assert (await store.load_game(GAME_ID)).property_states[40].owner == BOT_1_ID

    @pytest.mark.asyncio
    async def test_bot_leaving_is_deregistered(self, bot_service, store, bot_game: GameState):
        service, supervisor = bot_service
        bot_game.players[PLAYER_2_ID] = create_player(PLAYER_2_ID, "Bob")
        bot_game.order.append(PLAYER_2_ID)
        await store.save_game(bot_game)
        await supervisor.register(GAME_ID, BOT_1_ID, BotDifficulty.HARD)

        await service.perform(GAME_ID, BOT_1_ID, LeaveGameAction())

        assert supervisor.get(GAME_ID, BOT_1_ID) is None
        assert await store.load_bots(GAME_ID) == {}
