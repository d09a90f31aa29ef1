"""Tests for action validation and payload parsing.

Critical scenarios tested:
- Membership and status checks (unknown player, finished game, eliminated player)
- Turn validation for turn-bound actions
- Actions any seated player may take out of turn
- Client payload parsing strips server-controlled fields
"""

import pytest

from app.schemas.game_engine import GamePhase, GameState, GameStatus, PlayerStatus
from app.services.game.engine import (
    BuildHouseAction,
    CancelTradeAction,
    EndTurnAction,
    ProposeTradeAction,
    RollAction,
    SellPropertyAction,
    build_action_from_payload,
    validate_action,
)

from .conftest import PLAYER_1_ID, PLAYER_2_ID, give_property


class TestMembership:
    """Checks that apply before any turn logic."""

    def test_unknown_player(self, two_player_game: GameState):
        result = validate_action(two_player_game, RollAction(), "stranger")

        assert not result.is_valid
        assert result.error_code == "PLAYER_NOT_FOUND"

    def test_finished_game(self, two_player_game: GameState):
        two_player_game.status = GameStatus.END
        two_player_game.phase = GamePhase.GAME_OVER

        result = validate_action(two_player_game, RollAction(), PLAYER_1_ID)

        assert result.error_code == "GAME_OVER"

    def test_eliminated_player(self, two_player_game: GameState):
        two_player_game.players[PLAYER_2_ID].status = PlayerStatus.LEFT

        result = validate_action(two_player_game, SellPropertyAction(tile_id=2), PLAYER_2_ID)

        assert result.error_code == "PLAYER_NOT_ACTIVE"


class TestTurnValidation:
    def test_roll_out_of_turn(self, two_player_game: GameState):
        result = validate_action(two_player_game, RollAction(), PLAYER_2_ID)

        assert result.error_code == "NOT_YOUR_TURN"

    def test_end_turn_out_of_turn(self, two_player_game: GameState):
        result = validate_action(two_player_game, EndTurnAction(), PLAYER_2_ID)

        assert result.error_code == "NOT_YOUR_TURN"

    def test_building_is_allowed_out_of_turn(self, two_player_game: GameState):
        """Property management is not tied to the turn holder."""
        for tile_id in (2, 3, 5):
            give_property(two_player_game, PLAYER_2_ID, tile_id)

        result = validate_action(two_player_game, BuildHouseAction(tile_id=2), PLAYER_2_ID)

        assert result.is_valid

    def test_trading_is_allowed_out_of_turn(self, two_player_game: GameState):
        result = validate_action(
            two_player_game, ProposeTradeAction(responder_id=PLAYER_1_ID), PLAYER_2_ID
        )

        assert result.is_valid

    def test_cannot_roll_twice(self, two_player_game: GameState):
        two_player_game.phase = GamePhase.AFTER_ROLL

        result = validate_action(two_player_game, RollAction(), PLAYER_1_ID)

        assert result.error_code == "INVALID_PHASE"


class TestPayloadParsing:
    def test_builds_typed_action(self):
        action = build_action_from_payload({"action_type": "build_house", "tile_id": 2})

        assert isinstance(action, BuildHouseAction)
        assert action.tile_id == 2

    def test_client_cannot_choose_dice(self):
        action = build_action_from_payload({"action_type": "roll", "dice": [6, 6]})

        assert isinstance(action, RollAction)
        assert action.dice is None

    def test_client_cannot_mark_trade_expired(self):
        action = build_action_from_payload(
            {"action_type": "cancel_trade", "trade_id": "t-1", "expired": True}
        )

        assert isinstance(action, CancelTradeAction)
        assert not action.expired

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"action_type": "teleport"},
            {"action_type": "set_connected", "connected": False},
            {"action_type": "buy_property"},
            {"action_type": "buy_property", "tile_id": 41},
            {"action_type": "place_bid", "amount": 0},
        ],
    )
    def test_rejects_bad_payloads(self, payload):
        with pytest.raises(ValueError):
            build_action_from_payload(payload)
