"""Tests for rent calculation and paying rent on landing."""

from app.schemas.game_engine import GamePhase, GameRules, GameState
from app.services.game.engine import RollAction, calculate_rent, process_action
from app.services.game.engine.events import (
    PropertyOwnedBySelf,
    RentPaid,
    RentUnaffordable,
)

from .conftest import PLAYER_1_ID, PLAYER_2_ID, create_game, create_player, give_property


class TestCalculateRent:
    def test_base_rent_without_monopoly(self, two_player_game: GameState):
        give_property(two_player_game, PLAYER_2_ID, 22)

        assert calculate_rent(two_player_game, 22, 7) == 200

    def test_monopoly_doubles_base_rent(self, two_player_game: GameState):
        give_property(two_player_game, PLAYER_2_ID, 22)
        give_property(two_player_game, PLAYER_2_ID, 24)

        assert calculate_rent(two_player_game, 22, 7) == 400
        assert calculate_rent(two_player_game, 24, 7) == 440

    def test_monopoly_doubling_can_be_switched_off(self):
        state = create_game(
            [create_player(PLAYER_1_ID), create_player(PLAYER_2_ID)],
            rules=GameRules(double_rent_on_monopoly=False),
        )
        give_property(state, PLAYER_2_ID, 22)
        give_property(state, PLAYER_2_ID, 24)

        assert calculate_rent(state, 22, 7) == 200

    def test_houses_use_the_rent_table(self, two_player_game: GameState):
        give_property(two_player_game, PLAYER_2_ID, 22, level=2)
        give_property(two_player_game, PLAYER_2_ID, 24)

        assert calculate_rent(two_player_game, 22, 7) == 2400

    def test_mortgaged_tile_collects_nothing(self, two_player_game: GameState):
        give_property(two_player_game, PLAYER_2_ID, 22, mortgaged=True)

        assert calculate_rent(two_player_game, 22, 7) == 0

    def test_route_rent_scales_with_routes_owned(self, two_player_game: GameState):
        give_property(two_player_game, PLAYER_2_ID, 6)
        assert calculate_rent(two_player_game, 6, 7) == 250

        give_property(two_player_game, PLAYER_2_ID, 16)
        assert calculate_rent(two_player_game, 6, 7) == 500

    def test_utility_rent_multiplies_dice(self, two_player_game: GameState):
        give_property(two_player_game, PLAYER_2_ID, 14)
        assert calculate_rent(two_player_game, 14, 7) == 280

        give_property(two_player_game, PLAYER_2_ID, 28)
        assert calculate_rent(two_player_game, 14, 7) == 700

    def test_unowned_tile_has_no_rent(self, two_player_game: GameState):
        assert calculate_rent(two_player_game, 22, 7) == 0


class TestPayingRent:
    def test_rent_moves_money_to_owner(self, two_player_game: GameState):
        state = two_player_game
        give_property(state, PLAYER_2_ID, 22)
        give_property(state, PLAYER_2_ID, 24)
        state.players[PLAYER_1_ID].position = 20

        result = process_action(state, RollAction(dice=(1, 3)), PLAYER_1_ID)

        assert result.state.players[PLAYER_1_ID].money == 14560
        assert result.state.players[PLAYER_2_ID].money == 15440
        paid = next(e for e in result.events if isinstance(e, RentPaid))
        assert paid.owner_id == PLAYER_2_ID
        assert paid.amount == 440

    def test_jailed_owner_collects_nothing(self, two_player_game: GameState):
        state = two_player_game
        give_property(state, PLAYER_2_ID, 6)
        state.players[PLAYER_2_ID].in_jail = True
        state.players[PLAYER_2_ID].position = 11

        result = process_action(state, RollAction(dice=(2, 3)), PLAYER_1_ID)

        assert result.state.players[PLAYER_1_ID].money == 15000
        assert not any(isinstance(e, RentPaid) for e in result.events)

    def test_landing_on_own_tile(self, two_player_game: GameState):
        give_property(two_player_game, PLAYER_1_ID, 6)

        result = process_action(two_player_game, RollAction(dice=(2, 3)), PLAYER_1_ID)

        assert any(isinstance(e, PropertyOwnedBySelf) for e in result.events)
        assert result.state.players[PLAYER_1_ID].money == 15000

    def test_unaffordable_rent_becomes_debt(self, two_player_game: GameState):
        """Everything on hand is paid; the rest is owed to the owner."""
        state = two_player_game
        give_property(state, PLAYER_2_ID, 6)
        give_property(state, PLAYER_2_ID, 16)
        state.players[PLAYER_1_ID].money = 100

        result = process_action(state, RollAction(dice=(2, 3)), PLAYER_1_ID)

        assert result.success
        player = result.state.players[PLAYER_1_ID]
        assert player.money == 0
        assert player.debt_amount == 400
        assert player.debt_to_player_id == PLAYER_2_ID
        assert result.state.players[PLAYER_2_ID].money == 15100
        assert result.state.phase == GamePhase.AFTER_ROLL

        event = next(e for e in result.events if isinstance(e, RentUnaffordable))
        assert event.amount == 500
        assert event.amount_paid == 100
        assert event.remaining_debt == 400
