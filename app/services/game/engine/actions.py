"""Game action types - explicit player inputs separated from game state."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from app.schemas.game_engine import BotDifficulty, TradeOffer

DieValue = Annotated[int, Field(ge=1, le=6)]


# --- Lobby ---


class JoinGameAction(BaseModel):
    """Player takes a seat in the lobby."""

    action_type: Literal["join_game"] = "join_game"
    name: str = Field(..., min_length=1, max_length=32)
    user_id: str | None = None


class AddBotAction(BaseModel):
    """Host adds a bot player to the lobby."""

    action_type: Literal["add_bot"] = "add_bot"
    difficulty: BotDifficulty | None = None


class StartGameAction(BaseModel):
    """Host starts the game from lobby."""

    action_type: Literal["start_game"] = "start_game"


class LeaveGameAction(BaseModel):
    action_type: Literal["leave_game"] = "leave_game"


class SetConnectedAction(BaseModel):
    """Connection tracking; issued by the server, never by clients."""

    action_type: Literal["set_connected"] = "set_connected"
    connected: bool


# --- Turn flow ---


class RollAction(BaseModel):
    """Player rolls the dice.

    ``dice`` is only honoured for simulations and tests; live rolls are drawn
    from the service's random source.
    """

    action_type: Literal["roll"] = "roll"
    dice: tuple[DieValue, DieValue] | None = None


class EndTurnAction(BaseModel):
    action_type: Literal["end_turn"] = "end_turn"


class DeclareBankruptcyAction(BaseModel):
    action_type: Literal["declare_bankruptcy"] = "declare_bankruptcy"


# --- Property transactions ---


class BuyPropertyAction(BaseModel):
    action_type: Literal["buy_property"] = "buy_property"
    tile_id: int = Field(..., ge=1, le=40)


class BuildHouseAction(BaseModel):
    action_type: Literal["build_house"] = "build_house"
    tile_id: int = Field(..., ge=1, le=40)


class SellHouseAction(BaseModel):
    action_type: Literal["sell_house"] = "sell_house"
    tile_id: int = Field(..., ge=1, le=40)


class MortgagePropertyAction(BaseModel):
    action_type: Literal["mortgage_property"] = "mortgage_property"
    tile_id: int = Field(..., ge=1, le=40)


class UnmortgagePropertyAction(BaseModel):
    action_type: Literal["unmortgage_property"] = "unmortgage_property"
    tile_id: int = Field(..., ge=1, le=40)


class SellPropertyAction(BaseModel):
    """Sell an undeveloped property back to the bank for half its cost."""

    action_type: Literal["sell_property"] = "sell_property"
    tile_id: int = Field(..., ge=1, le=40)


# --- Jail ---


class PayBailAction(BaseModel):
    action_type: Literal["pay_bail"] = "pay_bail"


class UseJailFreeCardAction(BaseModel):
    action_type: Literal["use_jail_free_card"] = "use_jail_free_card"


# --- Auctions ---


class StartAuctionAction(BaseModel):
    action_type: Literal["start_auction"] = "start_auction"
    tile_id: int = Field(..., ge=1, le=40)


class PlaceBidAction(BaseModel):
    action_type: Literal["place_bid"] = "place_bid"
    amount: int = Field(..., gt=0)


class PassBidAction(BaseModel):
    action_type: Literal["pass_bid"] = "pass_bid"


class EndAuctionAction(BaseModel):
    action_type: Literal["end_auction"] = "end_auction"


# --- Trades ---


class ProposeTradeAction(BaseModel):
    action_type: Literal["propose_trade"] = "propose_trade"
    responder_id: str
    offer: TradeOffer = Field(default_factory=TradeOffer)
    request: TradeOffer = Field(default_factory=TradeOffer)


class AcceptTradeAction(BaseModel):
    action_type: Literal["accept_trade"] = "accept_trade"
    trade_id: str


class DeclineTradeAction(BaseModel):
    action_type: Literal["decline_trade"] = "decline_trade"
    trade_id: str


class CancelTradeAction(BaseModel):
    action_type: Literal["cancel_trade"] = "cancel_trade"
    trade_id: str
    expired: bool = False


# Union type for all game actions
GameAction = Annotated[
    JoinGameAction
    | AddBotAction
    | StartGameAction
    | LeaveGameAction
    | SetConnectedAction
    | RollAction
    | EndTurnAction
    | DeclareBankruptcyAction
    | BuyPropertyAction
    | BuildHouseAction
    | SellHouseAction
    | MortgagePropertyAction
    | UnmortgagePropertyAction
    | SellPropertyAction
    | PayBailAction
    | UseJailFreeCardAction
    | StartAuctionAction
    | PlaceBidAction
    | PassBidAction
    | EndAuctionAction
    | ProposeTradeAction
    | AcceptTradeAction
    | DeclineTradeAction
    | CancelTradeAction,
    Field(discriminator="action_type"),
]

# Actions that operate on an existing trade document
TRADE_RESPONSE_ACTIONS = (AcceptTradeAction, DeclineTradeAction, CancelTradeAction)

# Actions only the server may issue on a player's behalf
SERVER_ONLY_ACTIONS = frozenset({"set_connected"})

_action_adapter: TypeAdapter[GameAction] = TypeAdapter(GameAction)


def build_action_from_payload(payload: dict) -> GameAction:
    """Build a typed action from a raw client payload dict.

    Args:
        payload: Dict with 'action_type' key and action-specific fields.

    Returns:
        The appropriate GameAction subtype.

    Raises:
        ValueError: If action_type is missing, unknown, server-only, or the
            fields do not match the action's schema.
    """
    action_type = payload.get("action_type")
    if not action_type:
        raise ValueError("Missing action_type")
    if action_type in SERVER_ONLY_ACTIONS:
        raise ValueError(f"Unknown action type: {action_type}")

    data = dict(payload)
    if action_type == "cancel_trade":
        # Expiry is decided by the trade timer, not by clients
        data.pop("expired", None)
    if action_type == "roll":
        data.pop("dice", None)

    try:
        return _action_adapter.validate_python(data)
    except ValidationError as e:
        raise ValueError(f"Invalid {action_type} action: {e}") from e
