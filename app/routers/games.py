"""REST endpoints for the game lobby and read-only game data.

Play itself happens over the websocket; these routes cover what a client
needs before it is connected (create, join, seat bots, start) plus plain
reads of game and trade documents.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from app.config import get_settings
from app.dependencies.auth import CurrentPlayerId
from app.schemas.game_engine import GameRules, Trade
from app.schemas.games import (
    AddBotRequest,
    BoardConfigResponse,
    CreateGameRequest,
    GameResponse,
    JoinGameRequest,
    TileInfo,
)
from app.services.game.board import BOARD, COLOR_GROUPS
from app.services.game.engine import (
    AddBotAction,
    GameAction,
    JoinGameAction,
    ProcessResult,
    StartGameAction,
)
from app.services.game.service import GameNotFoundError, GameServiceError, get_game_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])

ERROR_STATUS_MAP = {
    "GAME_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "TRADE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PLAYER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NOT_HOST": status.HTTP_403_FORBIDDEN,
    "GAME_FULL": status.HTTP_409_CONFLICT,
    "GAME_ALREADY_STARTED": status.HTTP_409_CONFLICT,
    "NO_BOT_NAMES": status.HTTP_409_CONFLICT,
    "NOT_ENOUGH_PLAYERS": status.HTTP_400_BAD_REQUEST,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
}


def _raise_for_result(result: ProcessResult, default_detail: str) -> None:
    if result.success:
        return
    http_status = ERROR_STATUS_MAP.get(result.error_code or "", status.HTTP_400_BAD_REQUEST)
    raise HTTPException(
        status_code=http_status,
        detail={
            "error_code": result.error_code,
            "message": result.error_message or default_detail,
        },
    )


def _not_found(error: GameNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error_code": error.code, "message": str(error)},
    )


async def _perform(game_id: str, player_id: str, action: GameAction, what: str) -> GameResponse:
    service = get_game_service()
    try:
        result = await service.perform(game_id, player_id, action)
    except GameNotFoundError as e:
        raise _not_found(e) from e

    if not result.success:
        logger.warning(
            "%s failed for player %s in game %s: %s - %s",
            what,
            player_id,
            game_id,
            result.error_code,
            result.error_message,
        )
    _raise_for_result(result, f"{what} failed")
    return GameResponse(game_id=game_id, state=result.state.model_dump(mode="json"))


@router.get("/board", response_model=BoardConfigResponse)
async def get_board_config():
    """Static board layout, colour groups and default game rules."""
    settings = get_settings()
    return BoardConfigResponse(
        tiles=[
            TileInfo(
                id=tile.id,
                name=tile.name,
                type=tile.type.value,
                group=tile.group,
                cost=tile.cost,
                base_rent=tile.base_rent,
                rent=list(tile.rent),
                house_cost=tile.house_cost,
                mortgage_value=tile.mortgage_amount if tile.is_purchasable else 0,
            )
            for tile in BOARD
        ],
        color_groups={group: list(tiles) for group, tiles in COLOR_GROUPS.items()},
        default_rules=GameRules(trade_expiry_seconds=settings.TRADE_EXPIRY_SECONDS),
    )


@router.get("/current", response_model=GameResponse)
async def get_current_game(player_id: CurrentPlayerId):
    """The game the caller is seated in, so a reloaded client can reconnect.

    Raises:
        HTTPException 404: The caller is not in a lobby or running game.
    """
    state = await get_game_service().get_current_game(player_id)
    if state is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error_code": "NO_CURRENT_GAME", "message": "You are not in a game"},
        )
    return GameResponse(game_id=state.game_id, state=state.model_dump(mode="json"))


@router.post("", response_model=GameResponse, status_code=status.HTTP_201_CREATED)
async def create_game(player_id: CurrentPlayerId, request: CreateGameRequest):
    """Create a lobby with the authenticated user seated as host.

    Raises:
        HTTPException 500: If the host could not be seated.
    """
    logger.info("POST /games - player: %s", player_id)

    service = get_game_service()
    try:
        state = await service.create_game(player_id, request.name, rules=request.rules)
    except GameServiceError as e:
        logger.error("Game creation failed for player %s: %s", player_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error_code": e.code, "message": str(e)},
        ) from e

    return GameResponse(game_id=state.game_id, state=state.model_dump(mode="json"))


@router.post("/{game_id}/join", response_model=GameResponse)
async def join_game(game_id: str, player_id: CurrentPlayerId, request: JoinGameRequest):
    """Take a seat in a lobby. Joining twice returns the current state.

    Raises:
        HTTPException 404: Game not found.
        HTTPException 409: Game full or already started.
    """
    logger.info("POST /games/%s/join - player: %s", game_id, player_id)
    return await _perform(
        game_id, player_id, JoinGameAction(name=request.name, user_id=player_id), "Join"
    )


@router.post("/{game_id}/bots", response_model=GameResponse)
async def add_bot(game_id: str, player_id: CurrentPlayerId, request: AddBotRequest):
    """Seat a bot (host only, lobby only)."""
    logger.info("POST /games/%s/bots - player: %s", game_id, player_id)
    return await _perform(game_id, player_id, AddBotAction(difficulty=request.difficulty), "Add bot")


@router.post("/{game_id}/start", response_model=GameResponse)
async def start_game(game_id: str, player_id: CurrentPlayerId):
    """Start the game (host only, enough players seated)."""
    logger.info("POST /games/%s/start - player: %s", game_id, player_id)
    return await _perform(game_id, player_id, StartGameAction(), "Start")


@router.get("/{game_id}", response_model=GameResponse)
async def get_game(game_id: str, player_id: CurrentPlayerId):
    service = get_game_service()
    try:
        state = await service.get_game(game_id)
    except GameNotFoundError as e:
        raise _not_found(e) from e
    return GameResponse(game_id=game_id, state=state.model_dump(mode="json"))


@router.get("/{game_id}/trades/{trade_id}", response_model=Trade)
async def get_trade(game_id: str, trade_id: str, player_id: CurrentPlayerId):
    """A trade document; only its two parties may read it."""
    trade = await get_game_service().get_trade(game_id, trade_id)
    if trade is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error_code": "TRADE_NOT_FOUND", "message": f"Trade {trade_id} not found"},
        )
    if player_id not in (trade.proposer_id, trade.responder_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error_code": "NOT_TRADE_PARTY", "message": "Not a party to this trade"},
        )
    return trade
