"""Tests for debt settlement, liquidation and bankruptcy.

Critical scenarios tested:
1. Partial payments reduce a debt and a second settle does nothing
2. Liquidation sells houses, then mortgages or sells tiles, in priority order
3. Bankruptcy hands the estate to the creditor (or back to the bank)
4. A bot that cannot cover its debt at turn end is eliminated
5. A human who cannot cover their debt is held in bankruptcy_imminent
"""

from app.schemas.game_engine import GamePhase, GameRules, GameState, GameStatus, PlayerStatus
from app.services.game.engine import (
    DeclareBankruptcyAction,
    EndTurnAction,
    GameOver,
    PlayerBankrupt,
    TurnStarted,
    process_action,
)
from app.services.game.engine.debt import (
    check_solvency,
    declare_bankruptcy,
    liquidate,
    settle_debt,
)
from app.services.game.engine.events import (
    DebtSettled,
    HouseSold,
    PropertyMortgaged,
    PropertySoldToBank,
)

from .conftest import (
    BOT_1_ID,
    PLAYER_1_ID,
    PLAYER_2_ID,
    PLAYER_3_ID,
    create_game,
    create_player,
    give_property,
)


def owe(state: GameState, debtor_id: str, creditor_id: str, amount: int, money: int) -> None:
    player = state.players[debtor_id]
    player.money = money
    player.debt_amount = amount
    player.debt_to_player_id = creditor_id


class TestSettleDebt:
    def test_partial_payment(self, two_player_game: GameState):
        owe(two_player_game, PLAYER_1_ID, PLAYER_2_ID, amount=400, money=300)

        events = settle_debt(two_player_game, PLAYER_1_ID)

        player = two_player_game.players[PLAYER_1_ID]
        assert player.money == 0
        assert player.debt_amount == 100
        assert two_player_game.players[PLAYER_2_ID].money == 15300
        assert isinstance(events[0], DebtSettled)
        assert events[0].amount == 300
        assert events[0].remaining_debt == 100

    def test_second_settle_is_a_no_op(self, two_player_game: GameState):
        owe(two_player_game, PLAYER_1_ID, PLAYER_2_ID, amount=400, money=300)
        settle_debt(two_player_game, PLAYER_1_ID)

        assert settle_debt(two_player_game, PLAYER_1_ID) == []
        assert two_player_game.players[PLAYER_2_ID].money == 15300

    def test_full_payment_clears_the_debt(self, two_player_game: GameState):
        owe(two_player_game, PLAYER_1_ID, PLAYER_2_ID, amount=400, money=1000)

        settle_debt(two_player_game, PLAYER_1_ID)

        player = two_player_game.players[PLAYER_1_ID]
        assert player.money == 600
        assert player.debt_amount is None
        assert player.debt_to_player_id is None


class TestLiquidate:
    def test_houses_go_before_tiles(self, two_player_game: GameState):
        for tile_id in (2, 3, 5):
            give_property(two_player_game, PLAYER_1_ID, tile_id, level=1)
        two_player_game.players[PLAYER_1_ID].money = -1000

        events = liquidate(two_player_game, PLAYER_1_ID)

        assert [type(e) for e in events] == [
            HouseSold,
            HouseSold,
            HouseSold,
            PropertySoldToBank,
        ]
        assert events[-1].tile_id == 2
        assert two_player_game.players[PLAYER_1_ID].money == 600
        assert two_player_game.players[PLAYER_1_ID].properties == [3, 5]

    def test_mortgages_when_enabled(self):
        state = create_game(
            [create_player(PLAYER_1_ID, money=-500), create_player(PLAYER_2_ID)],
            rules=GameRules(mortgage_enabled=True),
        )
        give_property(state, PLAYER_1_ID, 2)

        events = liquidate(state, PLAYER_1_ID)

        assert len(events) == 1
        assert isinstance(events[0], PropertyMortgaged)
        assert state.property_states[2].mortgaged
        assert state.property_states[2].owner == PLAYER_1_ID
        assert state.players[PLAYER_1_ID].money == 250

    def test_stops_when_nothing_is_left(self, two_player_game: GameState):
        two_player_game.players[PLAYER_1_ID].money = -200

        assert liquidate(two_player_game, PLAYER_1_ID) == []
        assert two_player_game.players[PLAYER_1_ID].money == -200


class TestDeclareBankruptcy:
    def test_estate_goes_to_creditor(self, three_player_game: GameState):
        state = three_player_game
        give_property(state, PLAYER_1_ID, 2, level=2)
        give_property(state, PLAYER_1_ID, 22, mortgaged=True)
        player = state.players[PLAYER_1_ID]
        player.money = 300
        player.get_out_of_jail_free_cards = 1

        events = declare_bankruptcy(state, PLAYER_1_ID, PLAYER_2_ID)

        creditor = state.players[PLAYER_2_ID]
        assert creditor.money == 15300
        assert creditor.get_out_of_jail_free_cards == 1
        assert sorted(creditor.properties) == [2, 22]
        assert state.property_states[2].owner == PLAYER_2_ID
        assert state.property_states[2].level == 0
        assert not state.property_states[22].mortgaged

        assert player.status == PlayerStatus.BANKRUPT
        assert player.properties == []
        assert player.money == 0
        assert PLAYER_1_ID not in state.order
        assert isinstance(events[0], PlayerBankrupt)
        assert events[0].creditor_id == PLAYER_2_ID

    def test_estate_returns_to_bank(self, three_player_game: GameState):
        state = three_player_game
        give_property(state, PLAYER_1_ID, 2)

        events = declare_bankruptcy(state, PLAYER_1_ID, None)

        assert state.property_states[2].owner is None
        assert events[0].creditor_id is None
        assert state.players[PLAYER_2_ID].money == 15000

    def test_turn_passes_when_holder_goes_bankrupt(self, three_player_game: GameState):
        events = declare_bankruptcy(three_player_game, PLAYER_1_ID, None)

        assert three_player_game.turn == PLAYER_2_ID
        assert any(isinstance(e, TurnStarted) for e in events)


class TestBankruptcyAtTurnEnd:
    def test_bot_that_cannot_pay_is_eliminated(self):
        """Bot owes 400 to Alice with nothing to sell; its end turn bankrupts it."""
        state = create_game(
            [
                create_player(BOT_1_ID, "Aarav", is_bot=True),
                create_player(PLAYER_1_ID, "Alice"),
                create_player(PLAYER_2_ID, "Bob"),
            ],
            phase=GamePhase.AFTER_ROLL,
        )
        owe(state, BOT_1_ID, PLAYER_1_ID, amount=400, money=0)

        result = process_action(state, EndTurnAction(), BOT_1_ID)

        assert result.success
        bankrupt = next(e for e in result.events if isinstance(e, PlayerBankrupt))
        assert bankrupt.creditor_id == PLAYER_1_ID
        new = result.state
        assert new.players[BOT_1_ID].status == PlayerStatus.BANKRUPT
        assert new.order == [PLAYER_1_ID, PLAYER_2_ID]
        assert new.turn == PLAYER_1_ID
        assert new.phase == GamePhase.BEFORE_ROLL

    def test_human_is_held_until_they_raise_money(self, two_player_game: GameState):
        state = two_player_game
        state.phase = GamePhase.AFTER_ROLL
        owe(state, PLAYER_1_ID, PLAYER_2_ID, amount=400, money=0)

        result = process_action(state, EndTurnAction(), PLAYER_1_ID)

        assert not result.success
        assert result.error_code == "DEBT_OUTSTANDING"
        assert result.state is not None
        assert result.state.phase == GamePhase.BANKRUPTCY_IMMINENT
        assert result.state.turn == PLAYER_1_ID

    def test_human_can_declare_bankruptcy(self, two_player_game: GameState):
        state = two_player_game
        state.phase = GamePhase.BANKRUPTCY_IMMINENT
        owe(state, PLAYER_1_ID, PLAYER_2_ID, amount=400, money=0)

        result = process_action(state, DeclareBankruptcyAction(), PLAYER_1_ID)

        assert result.success
        game_over = next(e for e in result.events if isinstance(e, GameOver))
        assert game_over.winner_id == PLAYER_2_ID
        assert result.state.status == GameStatus.END
        assert result.state.phase == GamePhase.GAME_OVER

    def test_bankruptcy_needs_a_debt(self, two_player_game: GameState):
        result = process_action(two_player_game, DeclareBankruptcyAction(), PLAYER_1_ID)

        assert result.error_code == "NOT_IN_DEBT"


class TestCheckSolvency:
    def test_humans_are_left_alone(self, two_player_game: GameState):
        two_player_game.players[PLAYER_1_ID].money = -100

        assert check_solvency(two_player_game, PLAYER_1_ID) == []
        assert two_player_game.players[PLAYER_1_ID].status == PlayerStatus.ACTIVE

    def test_broke_bot_is_resolved_at_once(self):
        state = create_game(
            [
                create_player(PLAYER_1_ID, "Alice"),
                create_player(PLAYER_3_ID, "Carol"),
                create_player(BOT_1_ID, "Aarav", money=-100, is_bot=True),
            ]
        )

        events = check_solvency(state, BOT_1_ID)

        assert any(isinstance(e, PlayerBankrupt) for e in events)
        assert state.players[BOT_1_ID].status == PlayerStatus.BANKRUPT
