"""Dice rolling: movement, doubles and the jail roll."""

import logging
import random

from app.schemas.game_engine import GamePhase, GameState, GameStatus, PlayerState
from app.services.game.board import advance

from .debt import check_solvency, declare_bankruptcy
from .events import (
    AnotherTurn,
    AnyGameEvent,
    BailPaid,
    DiceRolled,
    JailFreeCardUsed,
    JailRollFailed,
    JailRollSucceeded,
)
from .landing import credit_pass_go, jail_player, resolve_landing
from .rules import release_from_jail
from .transactions import force_out_of_jail
from .validation import ProcessResult

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_DOUBLES = 3


def roll_dice(rng: random.Random) -> tuple[int, int]:
    return rng.randint(1, 6), rng.randint(1, 6)


def process_roll(
    state: GameState,
    player_id: str,
    dice: tuple[int, int],
    rng: random.Random,
) -> ProcessResult:
    """Resolve one roll for the player whose turn it is.

    Args:
        state: Working copy of the game state.
        player_id: The rolling player.
        dice: The two die values.
        rng: Random source for any card draws the landing triggers.

    Returns:
        ProcessResult with the mutated state and events in order.
    """
    player = state.players[player_id]
    state.phase = GamePhase.ROLLING
    logger.info(
        "Roll: player=%s, dice=%s, position=%d, in_jail=%s",
        player_id,
        dice,
        player.position,
        player.in_jail,
    )

    if player.in_jail:
        events = _jail_roll(state, player, dice)
    else:
        events = _move_roll(state, player, dice, rng)
    return ProcessResult.ok(state, events)


def _holds_turn(state: GameState, player: PlayerState) -> bool:
    return (
        player.is_active
        and state.status == GameStatus.ACTIVE
        and state.turn == player.id
    )


def _move_roll(
    state: GameState,
    player: PlayerState,
    dice: tuple[int, int],
    rng: random.Random,
) -> list[AnyGameEvent]:
    d1, d2 = dice
    is_double = d1 == d2
    if is_double:
        player.last_roll_was_double = True
        player.consecutive_doubles += 1
    else:
        player.last_roll_was_double = False
        player.consecutive_doubles = 0

    old = player.position
    new = advance(old, d1 + d2)
    player.position = new
    state.phase = GamePhase.AFTER_ROLL

    events: list[AnyGameEvent] = [
        DiceRolled(
            player_id=player.id,
            dice=dice,
            is_double=is_double,
            from_position=old,
            to_position=new,
        )
    ]
    if new < old:
        events.append(credit_pass_go(state, player, new))

    events.extend(resolve_landing(state, player.id, d1 + d2, rng))

    # Landing may have jailed, bankrupted or passed the turn already
    if not _holds_turn(state, player) or player.in_jail:
        return events

    if player.consecutive_doubles >= MAX_CONSECUTIVE_DOUBLES:
        events.extend(jail_player(state, player, "three_doubles"))
        return events

    if is_double and not player.is_bot:
        player.last_roll_was_double = False
        if state.phase == GamePhase.AFTER_ROLL:
            state.phase = GamePhase.BEFORE_ROLL
        events.append(
            AnotherTurn(player_id=player.id, consecutive_doubles=player.consecutive_doubles)
        )
    return events


def _jail_roll(
    state: GameState,
    player: PlayerState,
    dice: tuple[int, int],
) -> list[AnyGameEvent]:
    d1, d2 = dice
    state.phase = GamePhase.AFTER_ROLL
    player.last_roll_was_double = False
    player.consecutive_doubles = 0

    if d1 == d2:
        release_from_jail(player)
        logger.info("Jail roll succeeded: player=%s", player.id)
        return [JailRollSucceeded(player_id=player.id, dice=dice)]

    player.jail_turns += 1
    events: list[AnyGameEvent] = [
        JailRollFailed(player_id=player.id, dice=dice, jail_turns=player.jail_turns)
    ]

    if player.jail_turns >= state.rules.max_jail_turns:
        events.extend(force_out_of_jail(state, player))
        events.extend(check_solvency(state, player.id))
        return events

    if player.is_bot:
        events.extend(_bot_leaves_jail(state, player))
    return events


def _bot_leaves_jail(state: GameState, player: PlayerState) -> list[AnyGameEvent]:
    """Bots never wait in jail: card, then bail, then bankruptcy when broke."""
    if player.get_out_of_jail_free_cards > 0:
        player.get_out_of_jail_free_cards -= 1
        release_from_jail(player)
        return [JailFreeCardUsed(player_id=player.id, forced=True)]

    bail = state.rules.bail_amount
    if player.money >= bail:
        player.money -= bail
        release_from_jail(player)
        return [BailPaid(player_id=player.id, amount=bail, forced=True)]

    if player.money <= 0:
        logger.info("Bot bankrupt in jail: player=%s", player.id)
        return declare_bankruptcy(state, player.id, player.debt_to_player_id)
    return []
