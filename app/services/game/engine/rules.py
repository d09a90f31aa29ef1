"""Board economics shared by the engine: rent, monopolies, asset valuation."""

import math

from app.schemas.game_engine import (
    GameState,
    PlayerAssets,
    PlayerState,
    PropertyState,
)
from app.services.game.board import (
    TileType,
    find_tile,
    get_tile,
    group_tiles,
    tiles_of_type,
)

UTILITY_MULTIPLIERS = {1: 40, 2: 100}


def property_state(state: GameState, tile_id: int) -> PropertyState:
    """Return the mutable property state for a tile, creating it if missing."""
    ps = state.property_states.get(tile_id)
    if ps is None:
        ps = PropertyState()
        state.property_states[tile_id] = ps
    return ps


def owner_of(state: GameState, tile_id: int) -> str | None:
    ps = state.property_states.get(tile_id)
    return ps.owner if ps else None


def owns_group(state: GameState, player_id: str, group: str | None) -> bool:
    """True when the player owns every tile of a colour group."""
    if group is None:
        return False
    tiles = group_tiles(group)
    return bool(tiles) and all(owner_of(state, t) == player_id for t in tiles)


def monopolies(state: GameState, player_id: str) -> list[str]:
    groups: list[str] = []
    for tile_id in state.players[player_id].properties:
        group = get_tile(tile_id).group
        if group and group not in groups and owns_group(state, player_id, group):
            groups.append(group)
    return groups


def count_owned(state: GameState, player_id: str, tile_type: TileType) -> int:
    return sum(1 for t in tiles_of_type(tile_type) if owner_of(state, t) == player_id)


def calculate_rent(state: GameState, tile_id: int, dice_total: int) -> int:
    """Rent owed for landing on ``tile_id``.

    Mortgaged and unowned tiles collect nothing.
    """
    tile = get_tile(tile_id)
    ps = state.property_states.get(tile_id)
    if ps is None or ps.owner is None or ps.mortgaged:
        return 0

    if tile.type == TileType.PROPERTY:
        if ps.level > 0:
            return tile.rent[ps.level - 1]
        if state.rules.double_rent_on_monopoly and owns_group(state, ps.owner, tile.group):
            return tile.base_rent * 2
        return tile.base_rent

    if tile.type == TileType.ROUTE:
        return tile.base_rent * count_owned(state, ps.owner, TileType.ROUTE)

    if tile.type == TileType.UTILITY:
        owned = count_owned(state, ps.owner, TileType.UTILITY)
        return dice_total * UTILITY_MULTIPLIERS.get(owned, 0)

    return 0


def unmortgage_cost(state: GameState, tile_id: int) -> int:
    tile = get_tile(tile_id)
    return math.ceil(tile.mortgage_amount * (1 + state.rules.unmortgage_interest_rate))


def compute_assets(state: GameState, player: PlayerState) -> PlayerAssets:
    """Derive a player's asset summary from the property states."""
    assets = PlayerAssets()
    for tile_id in player.properties:
        tile = find_tile(tile_id)
        if tile is None:
            continue
        ps = state.property_states.get(tile_id) or PropertyState()
        assets.properties += 1
        assets.houses += ps.level
        if tile.type == TileType.UTILITY:
            assets.utilities += 1
        elif tile.type == TileType.ROUTE:
            assets.routes += 1
        assets.total_value += tile.mortgage_amount if ps.mortgaged else tile.cost
        assets.total_value += ps.level * tile.house_cost
    return assets


def refresh_assets(state: GameState) -> None:
    for player in state.players.values():
        player.assets = compute_assets(state, player)


def net_worth(state: GameState, player: PlayerState) -> int:
    return player.money + compute_assets(state, player).total_value


def needs_money(player: PlayerState) -> bool:
    """True while a player owes more than they hold or is below zero."""
    if player.money < 0:
        return True
    return bool(player.debt_amount) and player.money < (player.debt_amount or 0)


def has_debt(player: PlayerState) -> bool:
    return bool(player.debt_amount) or player.money < 0


def send_to_jail(state: GameState, player: PlayerState) -> None:
    player.position = state.rules.jail_tile
    player.in_jail = True
    player.jail_turns = 0
    player.last_roll_was_double = False
    player.consecutive_doubles = 0


def release_from_jail(player: PlayerState) -> None:
    player.in_jail = False
    player.jail_turns = 0
