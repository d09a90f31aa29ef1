"""Tests for dice rolls: movement, passing Start, doubles and jail rolls.

Critical scenarios tested:
- Passing or landing on Start pays the right amount
- Doubles grant humans another roll straight away
- Three doubles in a row send the player to jail and end the turn
- Jail rolls: doubles release without moving, the third failure forces bail
- Bots leave jail by card, then bail, and go bankrupt when broke
"""

from app.schemas.game_engine import GamePhase, GameState, GameStatus, PlayerStatus
from app.services.game.engine import (
    AnotherTurn,
    DiceRolled,
    GameOver,
    PlayerBankrupt,
    PropertyUnowned,
    RollAction,
    TurnEnded,
    TurnStarted,
    process_action,
)
from app.services.game.engine.events import (
    BailPaid,
    JailFreeCardUsed,
    JailRollFailed,
    JailRollSucceeded,
    PassedGo,
    WentToJail,
)

from .conftest import BOT_1_ID, PLAYER_1_ID, PLAYER_2_ID, create_game, create_player


def roll(state: GameState, dice: tuple[int, int], player_id: str = PLAYER_1_ID):
    return process_action(state, RollAction(dice=dice), player_id)


class TestMovement:
    """Plain moves around the board."""

    def test_roll_moves_player_and_reports_unowned_tile(self, two_player_game: GameState):
        result = roll(two_player_game, (2, 3))

        assert result.success
        player = result.state.players[PLAYER_1_ID]
        assert player.position == 6
        assert result.state.phase == GamePhase.AFTER_ROLL

        dice_event = result.events[0]
        assert isinstance(dice_event, DiceRolled)
        assert dice_event.from_position == 1
        assert dice_event.to_position == 6
        assert not dice_event.is_double
        assert any(isinstance(e, PropertyUnowned) and e.tile_id == 6 for e in result.events)

    def test_passing_start_pays_salary(self, two_player_game: GameState):
        """Wrapping past Start credits 2000 without the landing bonus."""
        two_player_game.players[PLAYER_1_ID].position = 39

        result = roll(two_player_game, (1, 3))

        player = result.state.players[PLAYER_1_ID]
        assert player.position == 3
        assert player.money == 17000
        passed = [e for e in result.events if isinstance(e, PassedGo)]
        assert len(passed) == 1
        assert passed[0].amount == 2000
        assert not passed[0].landed_on_start

    def test_landing_exactly_on_start_pays_bonus(self, two_player_game: GameState):
        two_player_game.players[PLAYER_1_ID].position = 38

        result = roll(two_player_game, (1, 2))

        player = result.state.players[PLAYER_1_ID]
        assert player.position == 1
        assert player.money == 18000
        passed = next(e for e in result.events if isinstance(e, PassedGo))
        assert passed.landed_on_start

    def test_go_to_jail_tile_ends_human_turn(self, two_player_game: GameState):
        two_player_game.players[PLAYER_1_ID].position = 26

        result = roll(two_player_game, (2, 3))

        player = result.state.players[PLAYER_1_ID]
        assert player.in_jail
        assert player.position == 11
        assert not any(isinstance(e, PassedGo) for e in result.events)
        jailed = next(e for e in result.events if isinstance(e, WentToJail))
        assert jailed.reason == "tile"
        ended = next(e for e in result.events if isinstance(e, TurnEnded))
        assert ended.reason == "jailed"
        assert result.state.turn == PLAYER_2_ID


class TestDoubles:
    """Doubles and the three-doubles penalty."""

    def test_human_double_grants_another_roll_immediately(self, two_player_game: GameState):
        result = roll(two_player_game, (3, 3))

        player = result.state.players[PLAYER_1_ID]
        assert player.position == 7
        assert player.consecutive_doubles == 1
        assert not player.last_roll_was_double
        assert result.state.phase == GamePhase.BEFORE_ROLL
        assert result.state.turn == PLAYER_1_ID
        assert isinstance(result.events[-1], AnotherTurn)

    def test_non_double_resets_the_double_counter(self, two_player_game: GameState):
        two_player_game.players[PLAYER_1_ID].consecutive_doubles = 2

        result = roll(two_player_game, (1, 2))

        assert result.state.players[PLAYER_1_ID].consecutive_doubles == 0
        assert not any(isinstance(e, AnotherTurn) for e in result.events)

    def test_third_double_sends_player_to_jail(self, two_player_game: GameState):
        two_player_game.players[PLAYER_1_ID].consecutive_doubles = 2

        result = roll(two_player_game, (2, 2))

        player = result.state.players[PLAYER_1_ID]
        assert player.in_jail
        assert player.position == 11
        assert player.consecutive_doubles == 0
        jailed = next(e for e in result.events if isinstance(e, WentToJail))
        assert jailed.reason == "three_doubles"
        assert not any(isinstance(e, AnotherTurn) for e in result.events)
        assert result.state.turn == PLAYER_2_ID

    def test_bot_double_waits_for_end_turn(self):
        """Bots get their extra roll when they end the turn, not after the roll."""
        state = create_game(
            [create_player(BOT_1_ID, "Aarav", is_bot=True), create_player(PLAYER_1_ID, "Alice")]
        )

        result = roll(state, (3, 3), BOT_1_ID)

        bot = result.state.players[BOT_1_ID]
        assert bot.last_roll_was_double
        assert result.state.phase == GamePhase.AFTER_ROLL
        assert not any(isinstance(e, AnotherTurn) for e in result.events)


class TestJailRoll:
    """Rolling while in jail."""

    def _jail(self, state: GameState, player_id: str = PLAYER_1_ID, jail_turns: int = 0) -> None:
        player = state.players[player_id]
        player.in_jail = True
        player.position = 11
        player.jail_turns = jail_turns

    def test_double_releases_without_moving(self, two_player_game: GameState):
        self._jail(two_player_game)

        result = roll(two_player_game, (4, 4))

        player = result.state.players[PLAYER_1_ID]
        assert not player.in_jail
        assert player.position == 11
        assert result.state.phase == GamePhase.AFTER_ROLL
        assert isinstance(result.events[-1], JailRollSucceeded)
        assert not any(isinstance(e, AnotherTurn) for e in result.events)

    def test_failed_roll_counts_jail_turns(self, two_player_game: GameState):
        self._jail(two_player_game)

        result = roll(two_player_game, (1, 2))

        player = result.state.players[PLAYER_1_ID]
        assert player.in_jail
        assert player.jail_turns == 1
        assert result.state.phase == GamePhase.AFTER_ROLL
        assert isinstance(result.events[-1], JailRollFailed)

    def test_third_failure_forces_bail(self, two_player_game: GameState):
        self._jail(two_player_game, jail_turns=2)

        result = roll(two_player_game, (1, 2))

        player = result.state.players[PLAYER_1_ID]
        assert not player.in_jail
        assert player.money == 14500
        bail = next(e for e in result.events if isinstance(e, BailPaid))
        assert bail.forced

    def test_third_failure_uses_card_before_bail(self, two_player_game: GameState):
        self._jail(two_player_game, jail_turns=2)
        two_player_game.players[PLAYER_1_ID].get_out_of_jail_free_cards = 1

        result = roll(two_player_game, (1, 2))

        player = result.state.players[PLAYER_1_ID]
        assert not player.in_jail
        assert player.money == 15000
        assert player.get_out_of_jail_free_cards == 0
        assert any(isinstance(e, JailFreeCardUsed) and e.forced for e in result.events)

    def test_forced_bail_may_leave_human_negative(self, two_player_game: GameState):
        self._jail(two_player_game, jail_turns=2)
        two_player_game.players[PLAYER_1_ID].money = 200

        result = roll(two_player_game, (1, 2))

        player = result.state.players[PLAYER_1_ID]
        assert player.money == -300
        assert player.status == PlayerStatus.ACTIVE

    def test_bot_pays_bail_after_failed_roll(self):
        state = create_game(
            [create_player(BOT_1_ID, "Aarav", is_bot=True), create_player(PLAYER_1_ID, "Alice")]
        )
        self._jail(state, BOT_1_ID)

        result = roll(state, (1, 2), BOT_1_ID)

        bot = result.state.players[BOT_1_ID]
        assert not bot.in_jail
        assert bot.money == 14500

    def test_broke_bot_in_jail_goes_bankrupt(self):
        state = create_game(
            [
                create_player(BOT_1_ID, "Aarav", money=0, is_bot=True),
                create_player(PLAYER_1_ID, "Alice"),
            ]
        )
        self._jail(state, BOT_1_ID)

        result = roll(state, (1, 2), BOT_1_ID)

        assert result.success
        assert result.state.players[BOT_1_ID].status == PlayerStatus.BANKRUPT
        assert BOT_1_ID not in result.state.order
        assert any(isinstance(e, PlayerBankrupt) for e in result.events)
        game_over = next(e for e in result.events if isinstance(e, GameOver))
        assert game_over.winner_id == PLAYER_1_ID
        assert result.state.status == GameStatus.END


class TestRollValidation:
    def test_cannot_roll_out_of_turn(self, two_player_game: GameState):
        result = roll(two_player_game, (1, 2), PLAYER_2_ID)

        assert not result.success
        assert result.error_code == "NOT_YOUR_TURN"

    def test_cannot_roll_twice(self, two_player_game: GameState):
        first = roll(two_player_game, (1, 2))

        second = roll(first.state, (1, 2))

        assert not second.success
        assert second.error_code == "INVALID_PHASE"

    def test_roll_without_dice_draws_from_rng(self, two_player_game: GameState, rng):
        result = process_action(two_player_game, RollAction(), PLAYER_1_ID, rng=rng)

        assert result.success
        dice = result.events[0].dice
        assert all(1 <= d <= 6 for d in dice)

    def test_turn_started_follows_turn_ended(self, two_player_game: GameState):
        two_player_game.players[PLAYER_1_ID].position = 26

        result = roll(two_player_game, (2, 3))

        kinds = [type(e) for e in result.events]
        assert kinds.index(TurnEnded) < kinds.index(TurnStarted)
