"""Pure bot decisions: buying, building, bidding and trade valuation.

Nothing here touches the store or the service; every function reads a
GameState and returns a decision, so the rules can be tested directly.
"""

import math
from dataclasses import dataclass

from app.schemas.game_engine import BotDifficulty, GameState, PlayerState, Trade, TradeOffer
from app.services.game.board import COLOR_GROUPS, get_tile
from app.services.game.engine.rules import monopolies, property_state

# Flat value the bots put on one get-out-of-jail-free card
JAIL_CARD_VALUE = 500
BID_INCREMENT = 100


@dataclass(frozen=True)
class BotProfile:
    buy_reserve: int  # money that must remain after a purchase
    build_reserve: int  # money that must remain after building
    trade_chance: float  # probability of looking for a trade each turn
    bid_ceiling: float  # highest auction bid as a fraction of the tile cost
    min_trade_gain: float  # accepted net gain as a fraction of what is given up


PROFILES: dict[BotDifficulty, BotProfile] = {
    BotDifficulty.EASY: BotProfile(2000, 3000, 0.15, 0.8, 0.0),
    BotDifficulty.MEDIUM: BotProfile(0, 0, 0.25, 1.0, 0.0),
    BotDifficulty.HARD: BotProfile(0, 0, 0.40, 1.2, 0.1),
}


def offer_value(state: GameState, side: TradeOffer) -> int:
    """What one side of a trade is worth to a bot.

    Tiles count at cost plus built houses; a mortgaged tile loses its
    mortgage value plus ten percent.
    """
    value = side.money + JAIL_CARD_VALUE * side.get_out_of_jail_free_cards
    for tile_id in side.properties:
        tile = get_tile(tile_id)
        ps = property_state(state, tile_id)
        value += tile.cost
        if ps.mortgaged:
            value -= math.ceil(tile.mortgage_amount * 1.1)
        value += ps.level * tile.house_cost
    return value


def _rent_at(tile_id: int, level: int) -> int:
    tile = get_tile(tile_id)
    return tile.rent[level - 1] if level > 0 else tile.base_rent * 2


def monopoly_roi(state: GameState, group: str) -> float:
    """Rent gained per rupee spent on the next round of houses in a group."""
    rent_increase = 0
    cost = 0
    for tile_id in COLOR_GROUPS[group]:
        level = property_state(state, tile_id).level
        if level < 5:
            rent_increase += _rent_at(tile_id, level + 1) - _rent_at(tile_id, level)
            cost += get_tile(tile_id).house_cost
    return rent_increase / cost if cost else 0.0


def should_buy(state: GameState, player: PlayerState, tile_id: int, profile: BotProfile) -> bool:
    cost = get_tile(tile_id).cost
    return player.money >= cost and player.money - cost >= profile.buy_reserve


def next_build(state: GameState, player: PlayerState, profile: BotProfile) -> int | None:
    """Tile to put the next house on, or None to stop building.

    Monopolies are visited best return first; inside a group the least
    developed tile is built on first so the group rises evenly.
    """
    groups = sorted(
        monopolies(state, player.id),
        key=lambda g: monopoly_roi(state, g),
        reverse=True,
    )
    for group in groups:
        candidates = [
            t
            for t in COLOR_GROUPS[group]
            if property_state(state, t).level < 5 and not property_state(state, t).mortgaged
        ]
        if not candidates:
            continue
        target = min(candidates, key=lambda t: property_state(state, t).level)
        house_cost = get_tile(target).house_cost
        if player.money >= house_cost and player.money - house_cost >= profile.build_reserve:
            return target
    return None


def choose_bid(state: GameState, player: PlayerState, profile: BotProfile) -> int | None:
    """Next bid for the running auction, or None to pass."""
    auction = state.auction
    if auction is None or player.id not in auction.bidders:
        return None
    if auction.current_bidder_id == player.id:
        return None
    tile = get_tile(auction.tile_id)
    bid = max(auction.current_bid + BID_INCREMENT, tile.cost // 2)
    if bid > int(tile.cost * profile.bid_ceiling):
        return None
    if bid > player.money - profile.buy_reserve:
        return None
    return bid


def is_tradeable(state: GameState, tile_id: int) -> bool:
    """Unmortgaged, and no houses anywhere in its colour group."""
    if property_state(state, tile_id).mortgaged:
        return False
    group = get_tile(tile_id).group
    tiles = COLOR_GROUPS[group] if group else (tile_id,)
    return all(property_state(state, t).level == 0 for t in tiles)


def completes_group(state: GameState, player: PlayerState, tile_id: int) -> bool:
    group = get_tile(tile_id).group
    if group is None:
        return False
    missing = [t for t in COLOR_GROUPS[group] if property_state(state, t).owner != player.id]
    return missing == [tile_id]


def _property_to_offer(state: GameState, player: PlayerState, excluded_group: str) -> int | None:
    kept_groups = set(monopolies(state, player.id)) | {excluded_group}
    for tile_id in player.properties:
        if get_tile(tile_id).group in kept_groups:
            continue
        if is_tradeable(state, tile_id):
            return tile_id
    return None


def build_offer(
    state: GameState,
    player: PlayerState,
    requested_tile_id: int,
    decline_count: int = 0,
) -> TradeOffer | None:
    """What the bot gives for ``requested_tile_id``, or None if it is not worth it.

    Every earlier decline for the same tile sweetens the money part by 20%.
    """
    group = get_tile(requested_tile_id).group or ""
    requested_value = offer_value(state, TradeOffer(properties=[requested_tile_id]))
    improvement = 1 + decline_count * 0.2

    properties: list[int] = []
    offered_value = 0
    tile_to_offer = _property_to_offer(state, player, group)
    if tile_to_offer is not None:
        properties.append(tile_to_offer)
        offered_value += offer_value(state, TradeOffer(properties=properties))

    money = 0
    if offered_value < requested_value:
        money = math.ceil((requested_value - offered_value) * improvement / 100) * 100
        if player.money <= money:
            money = max(player.money - 100, 0)
    offered_value += money

    cards = 0
    if player.get_out_of_jail_free_cards > 0 and not player.in_jail:
        cards = 1
        offered_value += JAIL_CARD_VALUE

    if offered_value < requested_value:
        return None
    return TradeOffer(money=money, properties=properties, get_out_of_jail_free_cards=cards)


def evaluate_trade(
    state: GameState,
    player: PlayerState,
    trade: Trade,
    difficulty: BotDifficulty,
) -> bool:
    """Should ``player`` (the responder) accept ``trade``?"""
    for tile_id in trade.request.properties:
        group = get_tile(tile_id).group
        if group and group in monopolies(state, player.id):
            return False

    received = offer_value(state, trade.offer)
    given = offer_value(state, trade.request)
    gain = received - given
    completes = any(completes_group(state, player, t) for t in trade.offer.properties)

    if difficulty == BotDifficulty.EASY:
        return gain >= 0 or completes
    if difficulty == BotDifficulty.MEDIUM:
        if gain > 0:
            return True
        if player.money < 5000 and trade.request.money > 0:
            return False
        return completes
    return gain > given * PROFILES[BotDifficulty.HARD].min_trade_gain or completes
