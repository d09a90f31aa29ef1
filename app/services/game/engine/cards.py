"""Chance and community decks.

Decks are queues of card ids: a draw pops the front and pushes the id back
to the bottom, so cards cycle and are never lost. An empty queue is refilled
from the full card set with a Fisher-Yates shuffle.
"""

import logging
import random

from app.schemas.game_engine import GameState, PlayerState
from app.services.game.board import (
    Card,
    DeckType,
    deck_card_ids,
    get_card,
    get_tile,
)

logger = logging.getLogger(__name__)

HOTEL_LEVEL = 5


def shuffled_deck(deck: DeckType, rng: random.Random) -> list[int]:
    ids = deck_card_ids(deck)
    rng.shuffle(ids)  # Fisher-Yates
    return ids


def draw_card(state: GameState, deck: DeckType, rng: random.Random) -> Card:
    queue = state.deck.chance if deck == DeckType.CHANCE else state.deck.community
    if not queue:
        queue.extend(shuffled_deck(deck, rng))
        logger.debug("Deck reshuffled: game=%s, deck=%s", state.game_id, deck.value)

    card_id = queue.pop(0)
    queue.append(card_id)
    return get_card(deck, card_id)


def repairs_cost(state: GameState, player: PlayerState, card: Card) -> int:
    """House levels 1-4 pay per house; a hotel (level 5) pays the hotel rate once."""
    total = 0
    for tile_id in player.properties:
        ps = state.property_states.get(tile_id)
        if ps is None or ps.level == 0 or not get_tile(tile_id).house_cost:
            continue
        if ps.level >= HOTEL_LEVEL:
            total += card.hotel_cost
        else:
            total += ps.level * card.house_cost
    return total
