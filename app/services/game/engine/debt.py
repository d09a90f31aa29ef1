"""Debt settlement, forced liquidation and bankruptcy.

Invariant: after the resolver finishes for a player, that player either has
non-negative money and no outstanding debt, or is bankrupt.
"""

import logging

from app.schemas.game_engine import GameState, PlayerStatus
from app.services.game.board import get_tile

from .events import AnyGameEvent, DebtSettled, PlayerBankrupt
from .rotation import remove_from_rotation
from .rules import has_debt, needs_money, property_state
from .transactions import apply_mortgage, apply_sell_house, apply_sell_to_bank

logger = logging.getLogger(__name__)


def settle_debt(state: GameState, player_id: str) -> list[AnyGameEvent]:
    """Pay as much of an outstanding debt as current money allows.

    A no-op when there is no debt or no money, so calling it twice in a row
    changes nothing the second time.
    """
    player = state.players[player_id]
    if not player.debt_amount or player.money <= 0:
        return []

    creditor_id = player.debt_to_player_id
    payment = min(player.money, player.debt_amount)
    player.money -= payment
    creditor = state.players.get(creditor_id) if creditor_id else None
    if creditor is not None and creditor.is_active:
        creditor.money += payment

    remaining = player.debt_amount - payment
    if remaining <= 0:
        player.debt_amount = None
        player.debt_to_player_id = None
    else:
        player.debt_amount = remaining

    logger.info(
        "Debt settled: player=%s, creditor=%s, paid=%d, remaining=%d",
        player_id,
        creditor_id,
        payment,
        remaining,
    )
    return [
        DebtSettled(
            player_id=player_id,
            creditor_id=creditor_id or "bank",
            amount=payment,
            remaining_debt=max(remaining, 0),
        )
    ]


def liquidate(state: GameState, player_id: str) -> list[AnyGameEvent]:
    """Raise money automatically until the player covers what they owe.

    Each pass takes one step, in priority order: sell a house, mortgage an
    undeveloped tile (only when the rules enable mortgaging), sell the
    cheapest undeveloped unmortgaged tile to the bank. Stops when a pass finds
    nothing left to do.
    """
    player = state.players[player_id]
    events: list[AnyGameEvent] = []

    while needs_money(player):
        developed = [t for t in player.properties if property_state(state, t).level > 0]
        if developed:
            tile_id = max(developed, key=lambda t: property_state(state, t).level)
            events.append(apply_sell_house(state, player, tile_id))
            continue

        bare = [
            t
            for t in player.properties
            if property_state(state, t).level == 0 and not property_state(state, t).mortgaged
        ]
        if not bare:
            break

        if state.rules.mortgage_enabled:
            tile_id = min(bare, key=lambda t: get_tile(t).mortgage_amount)
            events.append(apply_mortgage(state, player, tile_id))
            continue

        tile_id = min(bare, key=lambda t: get_tile(t).cost)
        events.append(apply_sell_to_bank(state, player, tile_id))

    if events:
        logger.info(
            "Liquidation: player=%s, steps=%d, money=%d, debt=%s",
            player_id,
            len(events),
            player.money,
            player.debt_amount,
        )
    return events


def declare_bankruptcy(
    state: GameState,
    player_id: str,
    creditor_id: str | None,
) -> list[AnyGameEvent]:
    """Eliminate a player, passing their estate to the creditor or the bank.

    Developments are stripped and mortgages cleared on every transferred tile.
    """
    player = state.players[player_id]
    creditor = state.players.get(creditor_id) if creditor_id else None
    if creditor is not None and (not creditor.is_active or creditor.id == player_id):
        creditor = None

    if creditor is not None:
        creditor.money += max(player.money, 0)
        creditor.get_out_of_jail_free_cards += player.get_out_of_jail_free_cards

    for tile_id in list(player.properties):
        ps = property_state(state, tile_id)
        ps.level = 0
        ps.mortgaged = False
        if creditor is not None:
            ps.owner = creditor.id
            creditor.properties.append(tile_id)
        else:
            ps.owner = None

    player.properties = []
    player.money = 0
    player.get_out_of_jail_free_cards = 0
    player.debt_amount = None
    player.debt_to_player_id = None
    player.in_jail = False
    player.jail_turns = 0
    player.last_roll_was_double = False
    player.consecutive_doubles = 0
    player.status = PlayerStatus.BANKRUPT

    logger.info(
        "Player bankrupt: game=%s, player=%s, creditor=%s",
        state.game_id,
        player_id,
        creditor.id if creditor else "bank",
    )
    events: list[AnyGameEvent] = [
        PlayerBankrupt(player_id=player_id, creditor_id=creditor.id if creditor else None)
    ]
    events.extend(remove_from_rotation(state, player_id))
    return events


def resolve_shortfall(state: GameState, player_id: str) -> list[AnyGameEvent]:
    """Liquidate, settle, and bankrupt the player if they still cannot pay."""
    player = state.players[player_id]
    events = liquidate(state, player_id)
    events.extend(settle_debt(state, player_id))
    if has_debt(player):
        events.extend(declare_bankruptcy(state, player_id, player.debt_to_player_id))
    return events


def check_solvency(state: GameState, player_id: str) -> list[AnyGameEvent]:
    """Run the resolver immediately for bots that can no longer cover what they owe.

    Humans keep their shortfall until they raise money or end the turn.
    """
    player = state.players[player_id]
    if not player.is_bot or not player.is_active or not needs_money(player):
        return []
    logger.debug(
        "Solvency check triggered: player=%s, money=%d, debt=%s",
        player_id,
        player.money,
        player.debt_amount,
    )
    return resolve_shortfall(state, player_id)
