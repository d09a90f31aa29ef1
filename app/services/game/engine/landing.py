"""Landing resolution: what happens on the tile a player arrives at.

Card moves re-enter ``resolve_landing`` for the destination tile, so a card
can chain into rent, tax, jail or another draw.
"""

import logging
import random

from app.schemas.game_engine import GameState, PlayerState
from app.services.game.board import (
    START_TILE,
    Card,
    CardKind,
    DeckType,
    Tile,
    TileType,
    advance,
    get_tile,
)

from .cards import draw_card, repairs_cost
from .debt import check_solvency
from .events import (
    AnyGameEvent,
    CardDrawn,
    CardMoneyEffect,
    CardMoveEffect,
    JailFreeCardReceived,
    PassedGo,
    PropertyOwnedBySelf,
    PropertyUnowned,
    RentPaid,
    RentUnaffordable,
    RepairsCharged,
    TaxPaid,
    WentToJail,
)
from .rules import calculate_rent, send_to_jail
from .turns import end_turn_flow

logger = logging.getLogger(__name__)

# Longest chain of card draws one landing may trigger
MAX_CARD_CHAIN = 3


def credit_pass_go(state: GameState, player: PlayerState, new_position: int) -> PassedGo:
    on_start = new_position == START_TILE
    amount = state.rules.pass_go_amount + (state.rules.on_go_bonus if on_start else 0)
    player.money += amount
    return PassedGo(player_id=player.id, amount=amount, landed_on_start=on_start)


def resolve_landing(
    state: GameState,
    player_id: str,
    dice_total: int,
    rng: random.Random,
    depth: int = 0,
) -> list[AnyGameEvent]:
    player = state.players[player_id]
    tile = get_tile(player.position)
    logger.debug(
        "Resolving landing: player=%s, tile=%d (%s), depth=%d",
        player_id,
        tile.id,
        tile.type.value,
        depth,
    )

    if tile.type == TileType.GO_TO_JAIL:
        return jail_player(state, player, "tile")
    if tile.type == TileType.TAX:
        return _pay_tax(state, player, tile)
    if tile.type in (TileType.CHANCE, TileType.COMMUNITY):
        if depth >= MAX_CARD_CHAIN:
            return []
        deck = DeckType.CHANCE if tile.type == TileType.CHANCE else DeckType.COMMUNITY
        return draw_and_apply(state, player, deck, dice_total, rng, depth)
    if tile.is_purchasable:
        return _land_on_property(state, player, tile, dice_total)
    # start, jail (just visiting), festival
    return []


def jail_player(state: GameState, player: PlayerState, reason: str) -> list[AnyGameEvent]:
    """Send a player to jail. A human's turn ends on the spot."""
    send_to_jail(state, player)
    logger.info("Player jailed: player=%s, reason=%s", player.id, reason)
    events: list[AnyGameEvent] = [WentToJail(player_id=player.id, reason=reason)]
    if not player.is_bot and state.turn == player.id:
        flow_events, _ = end_turn_flow(state, player.id, reason="jailed")
        events.extend(flow_events)
    return events


def _pay_tax(state: GameState, player: PlayerState, tile: Tile) -> list[AnyGameEvent]:
    amount = player.money * tile.cost // 100 if player.money > 0 else 0
    player.money -= amount
    events: list[AnyGameEvent] = [TaxPaid(player_id=player.id, tile_id=tile.id, amount=amount)]
    events.extend(check_solvency(state, player.id))
    return events


def _land_on_property(
    state: GameState,
    player: PlayerState,
    tile: Tile,
    dice_total: int,
) -> list[AnyGameEvent]:
    ps = state.property_states.get(tile.id)
    if ps is None or ps.owner is None:
        return [PropertyUnowned(player_id=player.id, tile_id=tile.id, cost=tile.cost)]
    if ps.owner == player.id:
        return [PropertyOwnedBySelf(player_id=player.id, tile_id=tile.id)]

    owner = state.players.get(ps.owner)
    if owner is None or not owner.is_active or owner.in_jail:
        # Jailed owners collect no rent
        return []

    rent = calculate_rent(state, tile.id, dice_total)
    if rent <= 0:
        return []

    if player.money >= rent:
        player.money -= rent
        owner.money += rent
        logger.info(
            "Rent paid: player=%s, owner=%s, tile=%d, amount=%d",
            player.id,
            owner.id,
            tile.id,
            rent,
        )
        return [RentPaid(player_id=player.id, owner_id=owner.id, tile_id=tile.id, amount=rent)]

    paid = max(player.money, 0)
    player.money -= paid
    owner.money += paid
    remaining = rent - paid
    # The newest creditor takes over any older outstanding amount
    player.debt_amount = (player.debt_amount or 0) + remaining
    player.debt_to_player_id = owner.id
    logger.info(
        "Rent unaffordable: player=%s, owner=%s, rent=%d, paid=%d, debt=%d",
        player.id,
        owner.id,
        rent,
        paid,
        player.debt_amount,
    )
    events: list[AnyGameEvent] = [
        RentUnaffordable(
            player_id=player.id,
            owner_id=owner.id,
            tile_id=tile.id,
            amount=rent,
            amount_paid=paid,
            remaining_debt=player.debt_amount,
        )
    ]
    events.extend(check_solvency(state, player.id))
    return events


def draw_and_apply(
    state: GameState,
    player: PlayerState,
    deck: DeckType,
    dice_total: int,
    rng: random.Random,
    depth: int = 0,
) -> list[AnyGameEvent]:
    card = draw_card(state, deck, rng)
    logger.info("Card drawn: player=%s, deck=%s, card=%d", player.id, deck.value, card.id)
    events: list[AnyGameEvent] = [
        CardDrawn(
            player_id=player.id,
            deck=deck.value,
            card_id=card.id,
            description=card.description,
        )
    ]
    events.extend(apply_card(state, player, card, dice_total, rng, depth))
    return events


def apply_card(
    state: GameState,
    player: PlayerState,
    card: Card,
    dice_total: int,
    rng: random.Random,
    depth: int = 0,
) -> list[AnyGameEvent]:
    """Apply one card's effect to ``player``; bots are checked for solvency after."""
    events: list[AnyGameEvent] = []

    if card.kind == CardKind.MONEY:
        if card.all_players:
            others = [p for p in state.active_players() if p.id != player.id]
            for other in others:
                other.money -= card.amount
                player.money += card.amount
            events.append(
                CardMoneyEffect(
                    player_id=player.id,
                    amount=card.amount * len(others),
                    per_player_amount=-card.amount,
                    other_player_ids=[p.id for p in others],
                )
            )
            for other in others:
                events.extend(check_solvency(state, other.id))
        else:
            player.money += card.amount
            events.append(CardMoneyEffect(player_id=player.id, amount=card.amount))
        events.extend(check_solvency(state, player.id))

    elif card.kind == CardKind.MOVE:
        old = player.position
        if card.destination is not None:
            new = card.destination
            passed_go = card.collect_go and new < old
        else:
            new = advance(old, card.spaces or 0)
            passed_go = False
        player.position = new
        events.append(CardMoveEffect(player_id=player.id, from_position=old, to_position=new))
        if passed_go:
            events.append(credit_pass_go(state, player, new))
        events.extend(resolve_landing(state, player.id, dice_total, rng, depth + 1))

    elif card.kind == CardKind.GET_OUT_OF_JAIL_FREE:
        player.get_out_of_jail_free_cards += 1
        events.append(
            JailFreeCardReceived(
                player_id=player.id,
                cards_held=player.get_out_of_jail_free_cards,
            )
        )

    elif card.kind == CardKind.GO_TO_JAIL:
        events.extend(jail_player(state, player, "card"))

    elif card.kind == CardKind.REPAIRS:
        cost = repairs_cost(state, player, card)
        player.money -= cost
        events.append(RepairsCharged(player_id=player.id, amount=cost))
        events.extend(check_solvency(state, player.id))

    return events
