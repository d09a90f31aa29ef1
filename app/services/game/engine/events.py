"""Game event types - emitted during state transitions for WebSocket broadcasts.

Events describe what happened during a game action, enabling:
- Efficient WebSocket updates (only send what changed)
- Bot reactions (offers, unowned properties, turn changes)
- Timer scheduling (trade expiry, turn expiry, stats snapshots)
- A persisted tail of recent history in the game document
"""

from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

from app.schemas.game_engine import StatsSnapshot, Trade


class GameEvent(BaseModel):
    """Base class for all game events."""

    event_type: str
    seq: int = 0  # Sequence number assigned during processing
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# --- Lobby and turn flow ---


class PlayerJoined(GameEvent):
    event_type: Literal["player_joined"] = "player_joined"
    player_id: str
    name: str
    is_bot: bool = False
    color: str | None = None


class GameStarted(GameEvent):
    """Game has moved from lobby to active."""

    event_type: Literal["game_started"] = "game_started"
    player_order: list[str] = Field(..., description="Player IDs in turn order")
    first_player_id: str


class TurnStarted(GameEvent):
    """A new turn has begun."""

    event_type: Literal["turn_started"] = "turn_started"
    player_id: str
    turn_number: int


class TurnEnded(GameEvent):
    """A player's turn has ended."""

    event_type: Literal["turn_ended"] = "turn_ended"
    player_id: str
    reason: str = Field(
        ...,
        description="Why turn ended: 'end_turn', 'jailed', 'three_doubles', 'timeout'",
    )
    next_player_id: str


class AnotherTurn(GameEvent):
    """Player rolled doubles and rolls again."""

    event_type: Literal["another_turn"] = "another_turn"
    player_id: str
    consecutive_doubles: int


# --- Movement ---


class DiceRolled(GameEvent):
    event_type: Literal["dice_rolled"] = "dice_rolled"
    player_id: str
    dice: tuple[int, int]
    is_double: bool
    from_position: int
    to_position: int


class PassedGo(GameEvent):
    event_type: Literal["passed_go"] = "passed_go"
    player_id: str
    amount: int
    landed_on_start: bool = False


class WentToJail(GameEvent):
    event_type: Literal["went_to_jail"] = "went_to_jail"
    player_id: str
    reason: Literal["tile", "card", "three_doubles"]


class TaxPaid(GameEvent):
    event_type: Literal["tax_paid"] = "tax_paid"
    player_id: str
    tile_id: int
    amount: int


# --- Cards ---


class CardDrawn(GameEvent):
    event_type: Literal["card_drawn"] = "card_drawn"
    player_id: str
    deck: Literal["chance", "community"]
    card_id: int
    description: str


class CardMoneyEffect(GameEvent):
    event_type: Literal["card_money_effect"] = "card_money_effect"
    player_id: str
    amount: int = Field(..., description="Net change to the drawing player's money")
    per_player_amount: int | None = Field(
        None, description="Change applied to each other player for 'all players' cards"
    )
    other_player_ids: list[str] = []


class CardMoveEffect(GameEvent):
    event_type: Literal["card_move_effect"] = "card_move_effect"
    player_id: str
    from_position: int
    to_position: int


class JailFreeCardReceived(GameEvent):
    event_type: Literal["jail_free_card_received"] = "jail_free_card_received"
    player_id: str
    cards_held: int


class RepairsCharged(GameEvent):
    event_type: Literal["repairs_charged"] = "repairs_charged"
    player_id: str
    amount: int


# --- Landing and rent ---


class PropertyUnowned(GameEvent):
    """Player landed on a tile nobody owns; buying is a separate action."""

    event_type: Literal["property_unowned"] = "property_unowned"
    player_id: str
    tile_id: int
    cost: int


class PropertyOwnedBySelf(GameEvent):
    event_type: Literal["property_owned_by_self"] = "property_owned_by_self"
    player_id: str
    tile_id: int


class RentPaid(GameEvent):
    event_type: Literal["rent_paid"] = "rent_paid"
    player_id: str
    owner_id: str
    tile_id: int
    amount: int


class RentUnaffordable(GameEvent):
    """Rent exceeded cash: everything available was paid, the rest became debt."""

    event_type: Literal["rent_unaffordable"] = "rent_unaffordable"
    player_id: str
    owner_id: str
    tile_id: int
    amount: int
    amount_paid: int
    remaining_debt: int


class DebtSettled(GameEvent):
    event_type: Literal["debt_settled"] = "debt_settled"
    player_id: str
    creditor_id: str
    amount: int
    remaining_debt: int


# --- Jail ---


class JailRollSucceeded(GameEvent):
    event_type: Literal["jail_roll_succeeded"] = "jail_roll_succeeded"
    player_id: str
    dice: tuple[int, int]


class JailRollFailed(GameEvent):
    event_type: Literal["jail_roll_failed"] = "jail_roll_failed"
    player_id: str
    dice: tuple[int, int]
    jail_turns: int


class BailPaid(GameEvent):
    event_type: Literal["bail_paid"] = "bail_paid"
    player_id: str
    amount: int
    forced: bool = False


class JailFreeCardUsed(GameEvent):
    event_type: Literal["jail_free_card_used"] = "jail_free_card_used"
    player_id: str
    forced: bool = False


# --- Property transactions ---


class PropertyBought(GameEvent):
    event_type: Literal["property_bought"] = "property_bought"
    player_id: str
    tile_id: int
    price: int


class HouseBuilt(GameEvent):
    event_type: Literal["house_built"] = "house_built"
    player_id: str
    tile_id: int
    level: int
    cost: int


class HouseSold(GameEvent):
    event_type: Literal["house_sold"] = "house_sold"
    player_id: str
    tile_id: int
    level: int
    refund: int


class PropertyMortgaged(GameEvent):
    event_type: Literal["property_mortgaged"] = "property_mortgaged"
    player_id: str
    tile_id: int
    amount: int


class PropertyUnmortgaged(GameEvent):
    event_type: Literal["property_unmortgaged"] = "property_unmortgaged"
    player_id: str
    tile_id: int
    amount: int


class PropertySoldToBank(GameEvent):
    event_type: Literal["property_sold_to_bank"] = "property_sold_to_bank"
    player_id: str
    tile_id: int
    amount: int


# --- Trades ---


class TradeOffered(GameEvent):
    event_type: Literal["trade_offered"] = "trade_offered"
    trade: Trade


class TradeAccepted(GameEvent):
    event_type: Literal["trade_accepted"] = "trade_accepted"
    trade_id: str
    proposer_id: str
    responder_id: str


class TradeDeclined(GameEvent):
    event_type: Literal["trade_declined"] = "trade_declined"
    trade_id: str
    proposer_id: str
    responder_id: str
    requested_properties: list[int] = []


class TradeCancelled(GameEvent):
    event_type: Literal["trade_cancelled"] = "trade_cancelled"
    trade_id: str
    proposer_id: str
    responder_id: str
    expired: bool = False


# --- Auctions ---


class AuctionStarted(GameEvent):
    event_type: Literal["auction_started"] = "auction_started"
    tile_id: int
    bidders: list[str]


class AuctionBid(GameEvent):
    event_type: Literal["auction_bid"] = "auction_bid"
    player_id: str
    tile_id: int
    amount: int


class AuctionPassed(GameEvent):
    event_type: Literal["auction_passed"] = "auction_passed"
    player_id: str
    tile_id: int


class AuctionWon(GameEvent):
    event_type: Literal["auction_won"] = "auction_won"
    player_id: str
    tile_id: int
    amount: int


class AuctionFailed(GameEvent):
    event_type: Literal["auction_failed"] = "auction_failed"
    tile_id: int


# --- Elimination and game end ---


class PlayerBankrupt(GameEvent):
    event_type: Literal["player_bankrupt"] = "player_bankrupt"
    player_id: str
    creditor_id: str | None = Field(None, description="None when assets return to the bank")


class PlayerLeft(GameEvent):
    event_type: Literal["player_left"] = "player_left"
    player_id: str


class PlayerConnectionChanged(GameEvent):
    event_type: Literal["player_connection_changed"] = "player_connection_changed"
    player_id: str
    is_connected: bool


class GameOver(GameEvent):
    event_type: Literal["game_over"] = "game_over"
    winner_id: str | None


class GameStats(GameEvent):
    event_type: Literal["game_stats"] = "game_stats"
    stats: dict[str, list[StatsSnapshot]]


# --- Private notices (sent to one player, never logged) ---


class TurnReminder(GameEvent):
    event_type: Literal["turn_reminder"] = "turn_reminder"
    player_id: str
    turn_number: int


class JailNotice(GameEvent):
    event_type: Literal["jail_notice"] = "jail_notice"
    player_id: str
    can_use_card: bool
    can_pay_bail: bool


# Union of all event types for type checking
AnyGameEvent = Annotated[
    PlayerJoined
    | GameStarted
    | TurnStarted
    | TurnEnded
    | AnotherTurn
    | DiceRolled
    | PassedGo
    | WentToJail
    | TaxPaid
    | CardDrawn
    | CardMoneyEffect
    | CardMoveEffect
    | JailFreeCardReceived
    | RepairsCharged
    | PropertyUnowned
    | PropertyOwnedBySelf
    | RentPaid
    | RentUnaffordable
    | DebtSettled
    | JailRollSucceeded
    | JailRollFailed
    | BailPaid
    | JailFreeCardUsed
    | PropertyBought
    | HouseBuilt
    | HouseSold
    | PropertyMortgaged
    | PropertyUnmortgaged
    | PropertySoldToBank
    | TradeOffered
    | TradeAccepted
    | TradeDeclined
    | TradeCancelled
    | AuctionStarted
    | AuctionBid
    | AuctionPassed
    | AuctionWon
    | AuctionFailed
    | PlayerBankrupt
    | PlayerLeft
    | PlayerConnectionChanged
    | GameOver
    | GameStats
    | TurnReminder
    | JailNotice,
    Field(discriminator="event_type"),
]

_event_adapter: TypeAdapter[AnyGameEvent] = TypeAdapter(AnyGameEvent)


def parse_event(data: dict) -> AnyGameEvent:
    """Rebuild a typed event from its serialized form (e.g. an event_log entry)."""
    return _event_adapter.validate_python(data)
