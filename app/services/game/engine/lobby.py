"""Lobby actions: seating players and bots, starting the game."""

import logging
import random
from uuid import uuid4

from app.schemas.game_engine import (
    BotDifficulty,
    GamePhase,
    GameState,
    GameStatus,
    PlayerAssets,
    PlayerState,
    PlayerStatus,
    PropertyState,
)
from app.services.game.board import (
    BOT_NAMES,
    PLAYER_COLORS,
    PURCHASABLE_TILE_IDS,
    START_TILE,
    DeckType,
)

from .cards import shuffled_deck
from .events import GameStarted, PlayerConnectionChanged, PlayerJoined, TurnStarted
from .validation import ProcessResult

logger = logging.getLogger(__name__)


def pick_color(state: GameState, rng: random.Random) -> str | None:
    used = {p.color for p in state.players.values() if p.color}
    available = [c for c in PLAYER_COLORS if c not in used]
    return rng.choice(available) if available else None


def process_join_game(
    state: GameState,
    player_id: str,
    name: str,
    rng: random.Random,
    user_id: str | None = None,
    is_bot: bool = False,
    difficulty: BotDifficulty | None = None,
) -> ProcessResult:
    if player_id in state.players:
        logger.debug("Player %s already seated in game %s", player_id, state.game_id)
        return ProcessResult.ok(state, [])
    if len(state.players) >= state.rules.max_players:
        return ProcessResult.failure(
            "GAME_FULL", f"Game already has {state.rules.max_players} players"
        )

    player = PlayerState(
        id=player_id,
        user_id=user_id,
        name=name,
        is_bot=is_bot,
        bot_difficulty=difficulty if is_bot else None,
        color=pick_color(state, rng),
        money=state.rules.initial_money,
    )
    state.players[player_id] = player
    state.order.append(player_id)
    if state.host_id is None and not is_bot:
        state.host_id = player_id

    logger.info(
        "Player joined: game=%s, player=%s, bot=%s, seats=%d/%d",
        state.game_id,
        player_id,
        is_bot,
        len(state.players),
        state.rules.max_players,
    )
    return ProcessResult.ok(
        state,
        [PlayerJoined(player_id=player_id, name=name, is_bot=is_bot, color=player.color)],
    )


def process_add_bot(
    state: GameState,
    difficulty: BotDifficulty | None,
    rng: random.Random,
) -> ProcessResult:
    taken = {p.name for p in state.players.values()}
    available = [n for n in BOT_NAMES if n not in taken]
    if not available:
        return ProcessResult.failure("NO_BOT_NAMES", "No bot names left")

    return process_join_game(
        state,
        f"bot_{uuid4()}",
        rng.choice(available),
        rng,
        is_bot=True,
        difficulty=difficulty or state.rules.bot_difficulty,
    )


def process_start_game(state: GameState, rng: random.Random) -> ProcessResult:
    """Move the lobby into play.

    Every player is reset to the starting balance on Start, the turn order
    and both decks are shuffled, and every purchasable tile begins unowned.
    """
    if len(state.players) < state.rules.min_players:
        return ProcessResult.failure(
            "NOT_ENOUGH_PLAYERS",
            f"At least {state.rules.min_players} players are needed",
        )

    for player in state.players.values():
        player.money = state.rules.initial_money
        player.position = START_TILE
        player.properties = []
        player.assets = PlayerAssets()
        player.in_jail = False
        player.jail_turns = 0
        player.get_out_of_jail_free_cards = 0
        player.last_roll_was_double = False
        player.consecutive_doubles = 0
        player.debt_amount = None
        player.debt_to_player_id = None
        player.status = PlayerStatus.ACTIVE

    order = list(state.players)
    rng.shuffle(order)
    state.order = order
    state.property_states = {tile_id: PropertyState() for tile_id in PURCHASABLE_TILE_IDS}
    state.deck.chance = shuffled_deck(DeckType.CHANCE, rng)
    state.deck.community = shuffled_deck(DeckType.COMMUNITY, rng)
    state.turn = order[0]
    state.phase = GamePhase.BEFORE_ROLL
    state.status = GameStatus.ACTIVE
    state.turn_number = 0
    state.auction = None

    logger.info(
        "Game started: game=%s, order=%s, first=%s",
        state.game_id,
        order,
        order[0],
    )
    return ProcessResult.ok(
        state,
        [
            GameStarted(player_order=order, first_player_id=order[0]),
            TurnStarted(player_id=order[0], turn_number=0),
        ],
    )


def process_set_connected(state: GameState, player_id: str, connected: bool) -> ProcessResult:
    player = state.players[player_id]
    if player.is_connected == connected:
        return ProcessResult.ok(state, [])

    player.is_connected = connected
    if player.is_active and state.status == GameStatus.ACTIVE:
        player.status = PlayerStatus.ACTIVE if connected else PlayerStatus.DISCONNECTED
    return ProcessResult.ok(
        state, [PlayerConnectionChanged(player_id=player_id, is_connected=connected)]
    )
