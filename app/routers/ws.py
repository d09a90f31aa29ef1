"""The game websocket: ``/ws?token=<jwt>&game_id=<id>``.

A socket is bound to one game for its whole life. Only seated human players
get in. After CONNECTED the client receives the current GAME_STATE, then
every GAME_EVENTS / GAME_STATE broadcast of the game and its own private
GAME_NOTICE frames.
"""

import json
import logging
import time
from collections import defaultdict, deque

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.schemas.ws import (
    ErrorPayload,
    GameStatePayload,
    MessageType,
    WSClientMessage,
    WSCloseCode,
    WSServerMessage,
)
from app.services.game.service import GameNotFoundError, get_game_service
from app.services.websocket.auth import get_authenticator
from app.services.websocket.handlers import HandlerContext, dispatch
from app.services.websocket.manager import Connection, ConnectionManager, get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

MAX_FRAME_BYTES = 64 * 1024
MAX_FRAMES_PER_WINDOW = 10
WINDOW_SECONDS = 1.0


class RateLimiter:
    """Sliding window of frame timestamps per connection."""

    def __init__(self, limit: int = MAX_FRAMES_PER_WINDOW, window: float = WINDOW_SECONDS):
        self.limit = limit
        self.window = window
        self._seen: dict[str, deque[float]] = defaultdict(deque)

    def is_allowed(self, connection_id: str) -> bool:
        now = time.monotonic()
        seen = self._seen[connection_id]
        while seen and seen[0] <= now - self.window:
            seen.popleft()
        if len(seen) >= self.limit:
            return False
        seen.append(now)
        return True

    def remove(self, connection_id: str) -> None:
        self._seen.pop(connection_id, None)


_rate_limiter = RateLimiter()


class FrameError(Exception):
    """An inbound frame that cannot be dispatched."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


def parse_frame(raw: str) -> WSClientMessage:
    """Decode one text frame.

    Raises:
        FrameError: Oversized, not JSON, or not a client envelope.
    """
    if len(raw.encode("utf-8")) > MAX_FRAME_BYTES:
        raise FrameError("MESSAGE_TOO_LARGE", f"Frames are limited to {MAX_FRAME_BYTES} bytes")
    try:
        return WSClientMessage.model_validate(json.loads(raw))
    except json.JSONDecodeError as e:
        raise FrameError("INVALID_JSON", "Invalid JSON format") from e
    except ValidationError as e:
        raise FrameError("INVALID_MESSAGE", "Invalid message format") from e


async def _send_error(manager: ConnectionManager, connection_id: str, code: str, message: str) -> None:
    await manager.send_to_connection(
        connection_id,
        WSServerMessage(
            type=MessageType.ERROR,
            payload=ErrorPayload(error_code=code, message=message).model_dump(),
        ),
    )


async def _serve(websocket: WebSocket, connection: Connection, manager: ConnectionManager) -> None:
    connection_id = connection.connection_id
    while True:
        frame = await websocket.receive()
        if frame["type"] == "websocket.disconnect":
            return

        raw = frame.get("text")
        if raw is None:
            await _send_error(manager, connection_id, "UNSUPPORTED_DATA", "Only text frames are accepted")
            continue

        if not _rate_limiter.is_allowed(connection_id):
            logger.warning("Rate limit hit on connection %s", connection_id)
            await _send_error(manager, connection_id, "RATE_LIMITED", "Too many messages, please slow down")
            continue

        try:
            message = parse_frame(raw)
        except FrameError as e:
            logger.warning("Bad frame on connection %s: %s", connection_id, e.code)
            await _send_error(manager, connection_id, e.code, str(e))
            continue

        result = await dispatch(
            HandlerContext(
                connection_id=connection_id,
                player_id=connection.player_id,
                game_id=connection.game_id,
                message=message,
                manager=manager,
            )
        )
        if result.response:
            await manager.send_to_connection(connection_id, result.response)


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(..., description="JWT access token"),
    game_id: str = Query(..., min_length=1, description="Game to follow"),
):
    auth_result = await get_authenticator().validate_token(token)
    if not auth_result.success:
        logger.warning("WS refused: %s", auth_result.error)
        await websocket.close(
            code=WSCloseCode.AUTH_EXPIRED if auth_result.expired else WSCloseCode.AUTH_FAILED
        )
        return
    player_id = auth_result.player_id

    service = get_game_service()
    try:
        state = await service.get_game(game_id)
    except GameNotFoundError:
        logger.warning("WS refused for %s: game %s not found", player_id, game_id)
        await websocket.close(code=WSCloseCode.GAME_NOT_FOUND)
        return

    player = state.players.get(player_id)
    if player is None or player.is_bot:
        logger.warning("WS refused for %s: not seated in game %s", player_id, game_id)
        await websocket.close(code=WSCloseCode.NOT_SEATED)
        return

    await websocket.accept()
    manager = get_connection_manager()
    connection = await manager.connect(websocket, player_id, game_id)
    await manager.send_to_connection(
        connection.connection_id,
        WSServerMessage(
            type=MessageType.GAME_STATE,
            payload=GameStatePayload(state=state.model_dump(mode="json")).model_dump(),
        ),
    )
    if not player.is_connected:
        await service.set_player_connected(game_id, player_id, True)

    try:
        await _serve(websocket, connection, manager)
    except WebSocketDisconnect as e:
        logger.info("WS %s disconnected with code %s", connection.connection_id, e.code)
    except Exception:
        logger.exception("WS %s failed", connection.connection_id)
    finally:
        _rate_limiter.remove(connection.connection_id)
        await manager.disconnect(connection.connection_id)

        # Other tabs, possibly on other servers, keep the player connected
        if await manager.presence(game_id, player_id) == 0:
            try:
                await service.set_player_connected(game_id, player_id, False)
            except GameNotFoundError:
                logger.debug("Game %s ended before player %s left", game_id, player_id)
