"""Consistency checks over a whole game state.

Run after every committed action of simulation games; a non-empty result
means the engine produced a state it should never reach.
"""

from app.schemas.game_engine import GameState, GameStatus
from app.services.game.board import BOARD_SIZE, find_tile

from .rules import owns_group


def check_invariants(state: GameState) -> list[str]:
    """Return a description of every violated invariant (empty when healthy)."""
    problems: list[str] = []

    for tile_id, ps in state.property_states.items():
        tile = find_tile(tile_id)
        if tile is None or not tile.is_purchasable:
            problems.append(f"tile {tile_id} has a property state but cannot be owned")
            continue
        if ps.mortgaged and ps.level > 0:
            problems.append(f"tile {tile_id} is mortgaged with {ps.level} houses")
        if ps.owner is None:
            if ps.level or ps.mortgaged:
                problems.append(f"unowned tile {tile_id} carries houses or a mortgage")
            continue
        owner = state.players.get(ps.owner)
        if owner is None:
            problems.append(f"tile {tile_id} owned by unknown player {ps.owner}")
        elif tile_id not in owner.properties:
            problems.append(f"tile {tile_id} owner {ps.owner} does not list it")
        elif ps.level > 0 and not owns_group(state, ps.owner, tile.group):
            problems.append(f"tile {tile_id} has houses without a monopoly")

    seen: dict[int, str] = {}
    for player in state.players.values():
        if not 1 <= player.position <= BOARD_SIZE:
            problems.append(f"player {player.id} is off the board at {player.position}")
        for tile_id in player.properties:
            if tile_id in seen:
                problems.append(f"tile {tile_id} listed by {seen[tile_id]} and {player.id}")
            seen[tile_id] = player.id
            ps = state.property_states.get(tile_id)
            if ps is None or ps.owner != player.id:
                problems.append(f"player {player.id} lists tile {tile_id} they do not own")
        if not player.is_active:
            if player.properties:
                problems.append(f"eliminated player {player.id} still owns property")
            if player.id in state.order:
                problems.append(f"eliminated player {player.id} is still in the turn order")
        elif player.is_bot and player.money < 0:
            problems.append(f"bot {player.id} has negative money {player.money}")

    if state.status == GameStatus.ACTIVE and state.turn not in state.order:
        problems.append(f"turn holder {state.turn} is not in the turn order")
    if state.auction is not None and state.auction.tile_id in seen:
        problems.append(f"auctioned tile {state.auction.tile_id} is already owned")

    return problems
