from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# Game phases
class GamePhase(str, Enum):
    BEFORE_ROLL = "before_roll"
    ROLLING = "rolling"
    AFTER_ROLL = "after_roll"
    AUCTION = "auction"
    BANKRUPTCY_IMMINENT = "bankruptcy_imminent"
    GAME_OVER = "game_over"


# Lifecycle of the whole game document
class GameStatus(str, Enum):
    LOBBY = "lobby"
    ACTIVE = "active"
    END = "end"


class PlayerStatus(str, Enum):
    ACTIVE = "active"
    LEFT = "left"
    KICKED = "kicked"
    BANKRUPT = "bankrupt"
    DISCONNECTED = "disconnected"


# Statuses a player never returns from
TERMINAL_PLAYER_STATUSES = frozenset(
    {PlayerStatus.LEFT, PlayerStatus.KICKED, PlayerStatus.BANKRUPT}
)


class BotDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TradeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class GameRules(BaseModel):
    """Economic constants for one game."""

    initial_money: int = 15000
    bail_amount: int = 500
    pass_go_amount: int = 2000
    on_go_bonus: int = 1000
    unmortgage_interest_rate: float = 0.05
    mortgage_enabled: bool = False
    double_rent_on_monopoly: bool = True
    bot_difficulty: BotDifficulty = BotDifficulty.HARD
    min_players: int = 2
    max_players: int = 4
    max_jail_turns: int = 3
    jail_tile: int = 11
    trade_expiry_seconds: float = 60


class PropertyState(BaseModel):
    owner: str | None = None
    level: int = Field(0, ge=0, le=5)
    mortgaged: bool = False


# Derived from property_states; recomputed after every action
class PlayerAssets(BaseModel):
    properties: int = 0
    houses: int = 0
    utilities: int = 0
    routes: int = 0
    total_value: int = 0


class PlayerState(BaseModel):
    id: str
    user_id: str | None = None
    name: str
    is_bot: bool = False
    bot_difficulty: BotDifficulty | None = None
    color: str | None = None
    money: int = 0  # may go negative until the debt resolver runs
    properties: list[int] = []
    assets: PlayerAssets = Field(default_factory=PlayerAssets)
    position: int = Field(1, ge=1, le=40)
    in_jail: bool = False
    jail_turns: int = Field(0, ge=0)
    get_out_of_jail_free_cards: int = Field(0, ge=0)
    last_roll_was_double: bool = False
    consecutive_doubles: int = Field(0, ge=0)
    debt_to_player_id: str | None = None
    debt_amount: int | None = None
    status: PlayerStatus = PlayerStatus.ACTIVE
    is_connected: bool = True

    @property
    def is_active(self) -> bool:
        return self.status not in TERMINAL_PLAYER_STATUSES


class TradeOffer(BaseModel):
    """One side of a trade: what a party gives up."""

    money: int = Field(0, ge=0)
    properties: list[int] = []
    get_out_of_jail_free_cards: int = Field(0, ge=0)

    @property
    def is_empty(self) -> bool:
        return (
            self.money == 0
            and not self.properties
            and self.get_out_of_jail_free_cards == 0
        )


class Trade(BaseModel):
    id: str
    game_id: str
    proposer_id: str
    responder_id: str
    offer: TradeOffer
    request: TradeOffer
    status: TradeStatus = TradeStatus.PENDING
    created_at: datetime
    expires_at: datetime | None = None


class Auction(BaseModel):
    tile_id: int
    current_bid: int = 0
    current_bidder_id: str | None = None
    bidders: list[str] = []
    # Phase the turn holder returns to; before_roll keeps a pending doubles roll
    resume_phase: GamePhase = GamePhase.AFTER_ROLL


# Card ids in draw order; the front is drawn next
class Deck(BaseModel):
    chance: list[int] = []
    community: list[int] = []


class StatsSnapshot(BaseModel):
    turn_number: int
    money: int
    net_worth: int


# Authoritative per-game document, persisted whole under game:{game_id}
class GameState(BaseModel):
    """Full state of one game.

    ``event_log`` holds serialized events (``event.model_dump(mode="json")``);
    typed events travel in ``ProcessResult.events``. Only the most recent
    entries are persisted.
    """

    game_id: str
    players: dict[str, PlayerState] = {}
    order: list[str] = []
    turn: str | None = None
    phase: GamePhase = GamePhase.BEFORE_ROLL
    property_states: dict[int, PropertyState] = {}
    deck: Deck = Field(default_factory=Deck)
    event_log: list[dict[str, Any]] = []
    auction: Auction | None = None
    status: GameStatus = GameStatus.LOBBY
    turn_number: int = 0
    is_simulation: bool = False
    host_id: str | None = None
    rules: GameRules = Field(default_factory=GameRules)
    event_seq: int = 0  # Next sequence number for events (monotonically increasing)

    def active_players(self) -> list[PlayerState]:
        """Players still in the rotation, in turn order."""
        return [
            self.players[pid]
            for pid in self.order
            if pid in self.players and self.players[pid].is_active
        ]
