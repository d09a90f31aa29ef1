"""Turn completion, voluntary bankruptcy and leaving a running game."""

import logging

from app.schemas.game_engine import (
    GamePhase,
    GameState,
    GameStatus,
    PlayerStatus,
)

from .debt import declare_bankruptcy, resolve_shortfall, settle_debt
from .events import AnotherTurn, AnyGameEvent, PlayerLeft
from .rotation import advance_turn, remove_from_rotation
from .rules import has_debt, property_state
from .validation import ProcessResult

logger = logging.getLogger(__name__)


def end_turn_flow(
    state: GameState,
    player_id: str,
    reason: str = "end_turn",
) -> tuple[list[AnyGameEvent], bool]:
    """Close out the current player's turn.

    Settles outstanding debt first. A bot that still cannot pay is liquidated
    and, failing that, eliminated. A human who cannot pay is held in
    bankruptcy_imminent; the second return value reports that block.

    Bots that rolled doubles are granted another turn here; humans get
    theirs immediately after the roll.
    """
    player = state.players[player_id]
    events = settle_debt(state, player_id)

    if has_debt(player):
        if not player.is_bot:
            state.phase = GamePhase.BANKRUPTCY_IMMINENT
            logger.info(
                "Turn end blocked by debt: player=%s, money=%d, debt=%s",
                player_id,
                player.money,
                player.debt_amount,
            )
            return events, True
        events.extend(resolve_shortfall(state, player_id))
        if player.status == PlayerStatus.BANKRUPT:
            return events, False

    if player.is_bot and player.last_roll_was_double and not player.in_jail:
        player.last_roll_was_double = False
        state.phase = GamePhase.BEFORE_ROLL
        events.append(
            AnotherTurn(player_id=player_id, consecutive_doubles=player.consecutive_doubles)
        )
        return events, False

    events.extend(advance_turn(state, player_id, reason))
    return events, False


def process_end_turn(state: GameState, player_id: str) -> ProcessResult:
    player = state.players[player_id]
    if player.status == PlayerStatus.BANKRUPT:
        logger.debug("End turn ignored for bankrupt player %s", player_id)
        return ProcessResult.ok(state, [])

    events, blocked = end_turn_flow(state, player_id)
    if blocked:
        return ProcessResult.blocked(
            state,
            events,
            "DEBT_OUTSTANDING",
            f"You owe {player.debt_amount or -player.money}. "
            "Sell, mortgage or declare bankruptcy.",
        )
    return ProcessResult.ok(state, events)


def process_declare_bankruptcy(state: GameState, player_id: str) -> ProcessResult:
    player = state.players[player_id]
    if not has_debt(player) and state.phase != GamePhase.BANKRUPTCY_IMMINENT:
        return ProcessResult.failure("NOT_IN_DEBT", "You have no debt to default on")
    events = declare_bankruptcy(state, player_id, player.debt_to_player_id)
    return ProcessResult.ok(state, events)


def process_leave(state: GameState, player_id: str) -> ProcessResult:
    """Remove a player. In a running game their estate goes back to the bank."""
    player = state.players[player_id]

    if state.status == GameStatus.LOBBY:
        del state.players[player_id]
        if player_id in state.order:
            state.order.remove(player_id)
        if state.host_id == player_id:
            humans = [p.id for p in state.players.values() if not p.is_bot]
            state.host_id = humans[0] if humans else None
        logger.info("Player left lobby: game=%s, player=%s", state.game_id, player_id)
        return ProcessResult.ok(state, [PlayerLeft(player_id=player_id)])

    for tile_id in player.properties:
        ps = property_state(state, tile_id)
        ps.owner = None
        ps.level = 0
        ps.mortgaged = False
    player.properties = []
    player.money = 0
    player.get_out_of_jail_free_cards = 0
    player.debt_amount = None
    player.debt_to_player_id = None
    player.in_jail = False
    player.status = PlayerStatus.LEFT
    player.is_connected = False

    logger.info("Player left game: game=%s, player=%s", state.game_id, player_id)
    events: list[AnyGameEvent] = [PlayerLeft(player_id=player_id)]
    events.extend(remove_from_rotation(state, player_id))
    return ProcessResult.ok(state, events)
