"""Property and jail transactions.

Each ``process_*`` handler receives the private working copy created by
``process_action`` and mutates it in place. The ``apply_*`` primitives skip
validation and are shared with the debt resolver's liquidation loop.
"""

import logging

from app.schemas.game_engine import (
    GamePhase,
    GameState,
    PlayerState,
)
from app.services.game.board import TileType, find_tile, get_tile

from .events import (
    AnyGameEvent,
    BailPaid,
    HouseBuilt,
    HouseSold,
    JailFreeCardUsed,
    PropertyBought,
    PropertyMortgaged,
    PropertySoldToBank,
    PropertyUnmortgaged,
)
from .rules import (
    needs_money,
    owns_group,
    property_state,
    release_from_jail,
    unmortgage_cost,
)
from .validation import ProcessResult, ValidationResult

logger = logging.getLogger(__name__)

MAX_LEVEL = 5


def _rejected(validation: ValidationResult) -> ProcessResult:
    logger.warning(
        "Transaction rejected: code=%s, message=%s",
        validation.error_code,
        validation.error_message,
    )
    return ProcessResult.from_validation(validation)


def _check_owned(state: GameState, player: PlayerState, tile_id: int) -> ValidationResult:
    tile = find_tile(tile_id)
    if tile is None or not tile.is_purchasable:
        return ValidationResult.error("INVALID_TILE", f"Tile {tile_id} cannot be owned")
    ps = state.property_states.get(tile_id)
    if ps is None or ps.owner != player.id:
        return ValidationResult.error("NOT_OWNER", f"You do not own tile {tile_id}")
    return ValidationResult.ok()


def _clear_debt_warning(state: GameState, player: PlayerState) -> None:
    """Leave bankruptcy_imminent once the player has raised enough money."""
    if (
        state.phase == GamePhase.BANKRUPTCY_IMMINENT
        and state.turn == player.id
        and not needs_money(player)
    ):
        state.phase = GamePhase.AFTER_ROLL


# --- Primitives ---


def apply_sell_house(state: GameState, player: PlayerState, tile_id: int) -> HouseSold:
    tile = get_tile(tile_id)
    ps = property_state(state, tile_id)
    refund = tile.house_cost // 2
    ps.level -= 1
    player.money += refund
    return HouseSold(player_id=player.id, tile_id=tile_id, level=ps.level, refund=refund)


def apply_mortgage(state: GameState, player: PlayerState, tile_id: int) -> PropertyMortgaged:
    amount = get_tile(tile_id).mortgage_amount
    property_state(state, tile_id).mortgaged = True
    player.money += amount
    return PropertyMortgaged(player_id=player.id, tile_id=tile_id, amount=amount)


def apply_sell_to_bank(state: GameState, player: PlayerState, tile_id: int) -> PropertySoldToBank:
    amount = get_tile(tile_id).cost // 2
    ps = property_state(state, tile_id)
    ps.owner = None
    ps.level = 0
    ps.mortgaged = False
    if tile_id in player.properties:
        player.properties.remove(tile_id)
    player.money += amount
    return PropertySoldToBank(player_id=player.id, tile_id=tile_id, amount=amount)


def grant_property(state: GameState, player: PlayerState, tile_id: int) -> None:
    ps = property_state(state, tile_id)
    ps.owner = player.id
    ps.level = 0
    ps.mortgaged = False
    if tile_id not in player.properties:
        player.properties.append(tile_id)


# --- Handlers ---


def process_buy_property(state: GameState, player_id: str, tile_id: int) -> ProcessResult:
    player = state.players[player_id]
    tile = find_tile(tile_id)
    if tile is None or not tile.is_purchasable:
        return _rejected(ValidationResult.error("INVALID_TILE", f"Tile {tile_id} is not for sale"))
    if player.position != tile_id:
        return _rejected(
            ValidationResult.error("NOT_ON_TILE", "You can only buy the tile you are standing on")
        )
    ps = state.property_states.get(tile_id)
    if ps is not None and ps.owner is not None:
        return _rejected(
            ValidationResult.error("PROPERTY_ALREADY_OWNED", f"{tile.name} is already owned")
        )
    if player.money < tile.cost:
        return _rejected(
            ValidationResult.error("INSUFFICIENT_FUNDS", f"{tile.name} costs {tile.cost}")
        )

    player.money -= tile.cost
    grant_property(state, player, tile_id)
    logger.info("Property bought: player=%s, tile=%d, price=%d", player_id, tile_id, tile.cost)
    return ProcessResult.ok(
        state, [PropertyBought(player_id=player_id, tile_id=tile_id, price=tile.cost)]
    )


def process_build_house(state: GameState, player_id: str, tile_id: int) -> ProcessResult:
    player = state.players[player_id]
    owned = _check_owned(state, player, tile_id)
    if not owned.is_valid:
        return _rejected(owned)
    tile = get_tile(tile_id)
    ps = property_state(state, tile_id)
    if tile.type != TileType.PROPERTY or not tile.house_cost:
        return _rejected(ValidationResult.error("INVALID_TILE", f"Cannot build on {tile.name}"))
    if not owns_group(state, player_id, tile.group):
        return _rejected(
            ValidationResult.error("NO_MONOPOLY", f"You need every {tile.group} property first")
        )
    if ps.mortgaged:
        return _rejected(ValidationResult.error("PROPERTY_MORTGAGED", f"{tile.name} is mortgaged"))
    if ps.level >= MAX_LEVEL:
        return _rejected(
            ValidationResult.error("MAX_DEVELOPMENT", f"{tile.name} is fully developed")
        )
    if player.money < tile.house_cost:
        return _rejected(
            ValidationResult.error("INSUFFICIENT_FUNDS", f"A house costs {tile.house_cost}")
        )

    player.money -= tile.house_cost
    ps.level += 1
    logger.info("House built: player=%s, tile=%d, level=%d", player_id, tile_id, ps.level)
    return ProcessResult.ok(
        state,
        [HouseBuilt(player_id=player_id, tile_id=tile_id, level=ps.level, cost=tile.house_cost)],
    )


def process_sell_house(state: GameState, player_id: str, tile_id: int) -> ProcessResult:
    player = state.players[player_id]
    owned = _check_owned(state, player, tile_id)
    if not owned.is_valid:
        return _rejected(owned)
    if property_state(state, tile_id).level <= 0:
        return _rejected(ValidationResult.error("NO_HOUSES", "There is nothing to sell"))

    event = apply_sell_house(state, player, tile_id)
    _clear_debt_warning(state, player)
    return ProcessResult.ok(state, [event])


def process_mortgage(state: GameState, player_id: str, tile_id: int) -> ProcessResult:
    player = state.players[player_id]
    owned = _check_owned(state, player, tile_id)
    if not owned.is_valid:
        return _rejected(owned)
    ps = property_state(state, tile_id)
    if ps.mortgaged:
        return _rejected(ValidationResult.error("PROPERTY_MORTGAGED", "Already mortgaged"))
    if ps.level > 0:
        return _rejected(
            ValidationResult.error("PROPERTY_DEVELOPED", "Sell the houses before mortgaging")
        )

    event = apply_mortgage(state, player, tile_id)
    _clear_debt_warning(state, player)
    return ProcessResult.ok(state, [event])


def process_unmortgage(state: GameState, player_id: str, tile_id: int) -> ProcessResult:
    player = state.players[player_id]
    owned = _check_owned(state, player, tile_id)
    if not owned.is_valid:
        return _rejected(owned)
    ps = property_state(state, tile_id)
    if not ps.mortgaged:
        return _rejected(ValidationResult.error("PROPERTY_NOT_MORTGAGED", "Not mortgaged"))
    cost = unmortgage_cost(state, tile_id)
    if player.money < cost:
        return _rejected(
            ValidationResult.error("INSUFFICIENT_FUNDS", f"Unmortgaging costs {cost}")
        )

    player.money -= cost
    ps.mortgaged = False
    return ProcessResult.ok(
        state, [PropertyUnmortgaged(player_id=player_id, tile_id=tile_id, amount=cost)]
    )


def process_sell_to_bank(state: GameState, player_id: str, tile_id: int) -> ProcessResult:
    player = state.players[player_id]
    owned = _check_owned(state, player, tile_id)
    if not owned.is_valid:
        return _rejected(owned)
    ps = property_state(state, tile_id)
    if ps.level > 0:
        return _rejected(
            ValidationResult.error("PROPERTY_DEVELOPED", "Sell the houses first")
        )
    if ps.mortgaged:
        return _rejected(
            ValidationResult.error("PROPERTY_MORTGAGED", "Mortgaged property cannot be sold")
        )

    event = apply_sell_to_bank(state, player, tile_id)
    _clear_debt_warning(state, player)
    logger.info("Property sold to bank: player=%s, tile=%d", player_id, tile_id)
    return ProcessResult.ok(state, [event])


def process_pay_bail(state: GameState, player_id: str) -> ProcessResult:
    player = state.players[player_id]
    bail = state.rules.bail_amount
    if not player.in_jail:
        return _rejected(ValidationResult.error("NOT_IN_JAIL", "You are not in jail"))
    if player.money < bail:
        return _rejected(ValidationResult.error("INSUFFICIENT_FUNDS", f"Bail is {bail}"))

    player.money -= bail
    release_from_jail(player)
    return ProcessResult.ok(state, [BailPaid(player_id=player_id, amount=bail)])


def process_use_jail_free_card(state: GameState, player_id: str) -> ProcessResult:
    player = state.players[player_id]
    if not player.in_jail:
        return _rejected(ValidationResult.error("NOT_IN_JAIL", "You are not in jail"))
    if player.get_out_of_jail_free_cards <= 0:
        return _rejected(
            ValidationResult.error("NO_JAIL_FREE_CARD", "You have no get-out-of-jail-free card")
        )

    player.get_out_of_jail_free_cards -= 1
    release_from_jail(player)
    return ProcessResult.ok(state, [JailFreeCardUsed(player_id=player_id)])


def force_out_of_jail(state: GameState, player: PlayerState) -> list[AnyGameEvent]:
    """Release after the last failed jail roll: card first, else bail even into debt."""
    release_from_jail(player)
    if player.get_out_of_jail_free_cards > 0:
        player.get_out_of_jail_free_cards -= 1
        return [JailFreeCardUsed(player_id=player.id, forced=True)]
    bail = state.rules.bail_amount
    player.money -= bail
    return [BailPaid(player_id=player.id, amount=bail, forced=True)]
