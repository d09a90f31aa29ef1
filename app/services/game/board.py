"""Static board layout and card decks.

Tiles are numbered 1-40; tile 1 is Start. Money amounts are in rupees.
"""

from dataclasses import dataclass
from enum import Enum


class TileType(str, Enum):
    START = "start"
    PROPERTY = "property"
    ROUTE = "route"
    UTILITY = "utility"
    CHANCE = "chance"
    COMMUNITY = "community"
    TAX = "tax"
    JAIL = "jail"
    GO_TO_JAIL = "go_to_jail"
    FESTIVAL = "festival"


class DeckType(str, Enum):
    CHANCE = "chance"
    COMMUNITY = "community"


class CardKind(str, Enum):
    MONEY = "money"
    MOVE = "move"
    GET_OUT_OF_JAIL_FREE = "get_out_of_jail_free"
    GO_TO_JAIL = "go_to_jail"
    REPAIRS = "repairs"


PURCHASABLE_TYPES = frozenset({TileType.PROPERTY, TileType.ROUTE, TileType.UTILITY})

BOARD_SIZE = 40
START_TILE = 1
JAIL_TILE = 11


@dataclass(frozen=True)
class Tile:
    id: int
    name: str
    type: TileType
    group: str | None = None
    cost: int = 0  # percentage of cash for tax tiles
    base_rent: int = 0
    rent: tuple[int, ...] = ()
    house_cost: int = 0
    mortgage_value: int = 0

    @property
    def is_purchasable(self) -> bool:
        return self.type in PURCHASABLE_TYPES

    @property
    def mortgage_amount(self) -> int:
        return self.mortgage_value or self.cost // 2


@dataclass(frozen=True)
class Card:
    id: int
    description: str
    kind: CardKind
    amount: int = 0
    all_players: bool = False
    destination: int | None = None
    spaces: int | None = None
    collect_go: bool = False
    house_cost: int = 0
    hotel_cost: int = 0


def _property(
    tile_id: int,
    name: str,
    group: str,
    cost: int,
    base_rent: int,
    rent: tuple[int, ...],
    house_cost: int,
    mortgage_value: int,
) -> Tile:
    return Tile(
        id=tile_id,
        name=name,
        type=TileType.PROPERTY,
        group=group,
        cost=cost,
        base_rent=base_rent,
        rent=rent,
        house_cost=house_cost,
        mortgage_value=mortgage_value,
    )


def _route(tile_id: int, name: str) -> Tile:
    return Tile(
        id=tile_id,
        name=name,
        type=TileType.ROUTE,
        cost=2000,
        base_rent=250,
        mortgage_value=1000,
    )


BOARD: tuple[Tile, ...] = (
    Tile(1, "Start", TileType.START),
    _property(2, "Janakpur", "EAST", 1500, 100, (400, 1200, 2000, 2500, 4000), 550, 750),
    _property(3, "Dharan", "EAST", 1500, 100, (400, 1200, 2000, 2500, 4000), 550, 750),
    Tile(4, "Community Fund", TileType.COMMUNITY),
    _property(5, "Biratnagar", "EAST", 1600, 110, (440, 1320, 2200, 2750, 4400), 600, 800),
    _route(6, "Araniko Highway"),
    _property(7, "Taumadhi Square", "BHK", 2500, 180, (720, 2160, 3600, 4500, 7200), 800, 1250),
    _property(8, "Dattatreya Square", "BHK", 2600, 190, (760, 2280, 3800, 4750, 7600), 850, 1300),
    Tile(9, "Fortune Card", TileType.CHANCE),
    _property(10, "Durbar Square", "BHK", 2700, 200, (800, 2400, 4000, 5000, 8000), 900, 1350),
    Tile(11, "Mama Ghar / Just Visiting", TileType.JAIL),
    _property(12, "Museum", "LAL", 3000, 220, (880, 2640, 4400, 5500, 8800), 1000, 1500),
    _property(13, "Patan", "LAL", 3100, 230, (920, 2760, 4600, 5750, 9200), 1050, 1550),
    Tile(14, "N.E.A", TileType.UTILITY, cost=1500, mortgage_value=550),
    _property(15, "Jhamsikhel", "LAL", 3200, 240, (960, 2880, 4800, 6000, 9600), 1100, 1600),
    _route(16, "TIA Airport"),
    _property(17, "Swayambhu", "KTM", 4000, 300, (1200, 3600, 6000, 7500, 12000), 1400, 2000),
    Tile(18, "Fortune Card", TileType.CHANCE),
    _property(19, "Basantapur", "KTM", 4200, 320, (1280, 3840, 6400, 8000, 12800), 1500, 2100),
    _property(20, "Lazimpat", "KTM", 4500, 350, (1400, 4200, 7000, 8750, 14000), 1600, 2250),
    Tile(21, "Festival", TileType.FESTIVAL),
    _property(22, "Bharatpur", "CTN", 2600, 200, (800, 2400, 4000, 5000, 8000), 900, 1300),
    Tile(23, "Community", TileType.COMMUNITY),
    _property(24, "Sauraha", "CTN", 2800, 220, (880, 2640, 4400, 5500, 8800), 1000, 1400),
    Tile(25, "Tourism Tax", TileType.TAX, cost=10),
    _route(26, "PKR Airport"),
    _property(27, "Sarangkot", "PKR", 3500, 280, (1120, 3360, 5600, 7000, 11200), 1200, 1750),
    Tile(28, "Water Corp.", TileType.UTILITY, cost=1500, mortgage_value=2100),
    _property(29, "Begnas", "PKR", 3600, 290, (1160, 3480, 5800, 7250, 11600), 1250, 1800),
    _property(30, "Lakeside", "PKR", 3800, 300, (1200, 3600, 6000, 7500, 12000), 1300, 1900),
    Tile(31, "Go to Mama Ghar", TileType.GO_TO_JAIL),
    _property(32, "Butwal", "WEST", 2000, 125, (500, 1500, 2500, 3125, 5000), 650, 1000),
    _property(33, "Nepalgunj", "WEST", 2100, 130, (520, 1560, 2600, 3250, 5200), 700, 1050),
    Tile(34, "Fortune Card", TileType.CHANCE),
    _property(35, "Rara", "WEST", 2500, 180, (720, 2160, 3600, 4500, 7200), 900, 1250),
    _route(36, "Mahendra Highway"),
    Tile(37, "Community", TileType.COMMUNITY),
    _property(38, "Langtang", "TREK", 4000, 300, (1200, 3600, 6000, 7500, 12000), 1400, 2000),
    Tile(39, "Income Tax (IRD)", TileType.TAX, cost=20),
    _property(40, "Everest Base Camp", "TREK", 4500, 350, (1400, 4200, 7000, 8750, 14000), 1600, 2250),
)

_TILES_BY_ID: dict[int, Tile] = {tile.id: tile for tile in BOARD}

COLOR_GROUPS: dict[str, tuple[int, ...]] = {}
for _tile in BOARD:
    if _tile.group is not None:
        COLOR_GROUPS[_tile.group] = COLOR_GROUPS.get(_tile.group, ()) + (_tile.id,)

PURCHASABLE_TILE_IDS: tuple[int, ...] = tuple(t.id for t in BOARD if t.is_purchasable)


CHANCE_CARDS: tuple[Card, ...] = (
    Card(1, "Advance to Start (Collect Rs 3000)", CardKind.MOVE, destination=1, collect_go=True),
    Card(2, "Advance to TIA. If you pass Start, collect Rs 2000.", CardKind.MOVE, destination=16, collect_go=True),
    Card(3, "Advance to Pokhara Airport. If you pass Start, collect Rs 2000.", CardKind.MOVE, destination=26, collect_go=True),
    Card(4, "Bank pays you dividend of Rs 500.", CardKind.MONEY, amount=500),
    Card(5, "Get Out of Mama Ghar. This card may be kept until needed or traded.", CardKind.GET_OUT_OF_JAIL_FREE),
    Card(6, "Go Back 3 Spaces.", CardKind.MOVE, spaces=-3),
    Card(7, "Go to Mama Ghar.", CardKind.GO_TO_JAIL),
    Card(8, "Make general repairs on all your property. For each house pay Rs 250. For each hotel pay Rs 500.", CardKind.REPAIRS, house_cost=250, hotel_cost=500),
    Card(9, "Pay custom duty of Rs 1500.", CardKind.MONEY, amount=-1500),
    Card(10, "Take a trip to Araniko Highway. If you pass Start, collect Rs 2000.", CardKind.MOVE, destination=6, collect_go=True),
    Card(11, "You have been elected Chairman of the Board. Pay each player Rs 500.", CardKind.MONEY, amount=-500, all_players=True),
    Card(12, "Your building loan matures. Collect Rs 1500.", CardKind.MONEY, amount=1500),
    Card(13, "You have won a lottery. Collect Rs 1000.", CardKind.MONEY, amount=1000),
    Card(14, "Take a trip to Rara. If you pass Start, collect Rs 2000.", CardKind.MOVE, destination=35, collect_go=True),
    Card(15, "Go Back 1 Space.", CardKind.MOVE, spaces=-1),
    Card(16, "Go Forward 3 Spaces.", CardKind.MOVE, spaces=3),
    Card(17, "Visit N.E.A. If you pass Start, collect Rs 2000.", CardKind.MOVE, destination=14, collect_go=True),
    Card(18, "Visit Water Corp. If you pass Start, collect Rs 2000.", CardKind.MOVE, destination=28, collect_go=True),
)

COMMUNITY_CARDS: tuple[Card, ...] = (
    Card(1, "Advance to Start (Collect Rs 3000)", CardKind.MOVE, destination=1, collect_go=True),
    Card(2, "Bank error in your favor. Collect Rs 2000.", CardKind.MONEY, amount=2000),
    Card(3, "Doctor's fee. Pay Rs 500.", CardKind.MONEY, amount=-500),
    Card(4, "Get Out of Mama Ghar. This card may be kept until needed or traded.", CardKind.GET_OUT_OF_JAIL_FREE),
    Card(5, "Go to Mama Ghar.", CardKind.GO_TO_JAIL),
    Card(6, "It is your birthday. Collect Rs 500 from each player.", CardKind.MONEY, amount=500, all_players=True),
    Card(7, "Life insurance matures. Collect Rs 1000.", CardKind.MONEY, amount=1000),
    Card(8, "Pay hospital Rs 1000.", CardKind.MONEY, amount=-1000),
    Card(9, "Pay school tax of Rs 1500.", CardKind.MONEY, amount=-1500),
    Card(10, "Receive Rs 500 consultancy fee.", CardKind.MONEY, amount=500),
    Card(11, "You are assessed for street repairs. Rs 400 per house. Rs 1150 per hotel.", CardKind.REPAIRS, house_cost=400, hotel_cost=1150),
    Card(12, "You have won second prize in an eating contest. Collect Rs 500.", CardKind.MONEY, amount=500),
    Card(13, "Inherit Rs 1000.", CardKind.MONEY, amount=1000),
    Card(14, "From sale of stock you get Rs 500.", CardKind.MONEY, amount=500),
    Card(15, "Holiday fund matures. Receive Rs 1000.", CardKind.MONEY, amount=1000),
)

_CARDS_BY_DECK: dict[DeckType, dict[int, Card]] = {
    DeckType.CHANCE: {card.id: card for card in CHANCE_CARDS},
    DeckType.COMMUNITY: {card.id: card for card in COMMUNITY_CARDS},
}

# Assigned to joining players in order of availability
PLAYER_COLORS: tuple[str, ...] = (
    "#C00000",
    "#0000C0",
    "#006000",
    "#C0C000",
    "#600060",
    "#C08000",
    "#C09090",
    "#006060",
    "#00C0C0",
    "#C000C0",
    "#00C000",
    "#802020",
)

BOT_NAMES: tuple[str, ...] = (
    "Aarav",
    "Bishal",
    "Chandra",
    "Deepa",
    "Gita",
    "Hari",
    "Kiran",
    "Laxmi",
    "Manish",
    "Nabin",
    "Prakash",
    "Rupa",
    "Sagar",
    "Sita",
    "Tashi",
    "Usha",
)


def get_tile(tile_id: int) -> Tile:
    """Look up a tile by id. Raises KeyError for ids outside 1-40."""
    return _TILES_BY_ID[tile_id]


def find_tile(tile_id: int) -> Tile | None:
    return _TILES_BY_ID.get(tile_id)


def group_tiles(group: str) -> tuple[int, ...]:
    return COLOR_GROUPS.get(group, ())


def tiles_of_type(tile_type: TileType) -> tuple[int, ...]:
    return tuple(t.id for t in BOARD if t.type == tile_type)


def get_card(deck: DeckType, card_id: int) -> Card:
    return _CARDS_BY_DECK[deck][card_id]


def deck_card_ids(deck: DeckType) -> list[int]:
    return list(_CARDS_BY_DECK[deck])


def advance(position: int, steps: int) -> int:
    """Move ``steps`` tiles from ``position`` on the 1-based circular board."""
    return (position - 1 + steps) % BOARD_SIZE + 1
