"""Wire schemas for the game websocket.

Every frame is an envelope ``{type, request_id, payload}``. Clients only
send ``ping`` and ``game_action``; everything else flows from the server.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageType(str, Enum):
    # Connection
    PING = "ping"
    PONG = "pong"
    CONNECTED = "connected"
    ERROR = "error"

    # Game
    GAME_ACTION = "game_action"
    GAME_EVENTS = "game_events"
    GAME_STATE = "game_state"
    GAME_NOTICE = "game_notice"
    GAME_ERROR = "game_error"


class WSCloseCode:
    """Close codes sent when a connection is refused or torn down."""

    GOING_AWAY = 1001

    # 4000-4999 are application codes
    AUTH_FAILED = 4001
    AUTH_EXPIRED = 4002
    GAME_NOT_FOUND = 4003
    NOT_SEATED = 4004


class _Envelope(BaseModel):
    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


class WSClientMessage(_Envelope):
    """Frame received from a client."""


class WSServerMessage(_Envelope):
    """Frame sent to a client. ``request_id`` echoes the request it answers."""


# --- Connection payloads ---


class ConnectedPayload(BaseModel):
    """First frame on every accepted connection."""

    connection_id: str
    player_id: str
    game_id: str
    server_id: str


class PongPayload(BaseModel):
    server_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorPayload(BaseModel):
    """Payload of ERROR (transport problems) and GAME_ERROR (rejected actions)."""

    error_code: str
    message: str


# --- Game payloads ---


class GameActionPayload(BaseModel):
    """Payload for GAME_ACTION messages from client.

    Carries ``action_type`` plus the action-specific fields (``tile_id``,
    ``amount``, ``trade_id``, ``responder_id``, ``offer``, ``request``...).
    The fields are validated against the engine's action union.
    """

    model_config = ConfigDict(extra="allow")

    action_type: str = Field(..., description="Action type, e.g. 'roll', 'buy_property'")


class GameEventsPayload(BaseModel):
    """Events appended by one action, in seq order, for every game member."""

    game_id: str
    events: list[dict[str, Any]] = Field(..., description="Serialized events, ascending seq")


class GameStatePayload(BaseModel):
    """The whole game document; sent after every action and on connect."""

    state: dict[str, Any]


class GameNoticePayload(BaseModel):
    """Payload for GAME_NOTICE messages sent privately to one player."""

    game_id: str
    notice: dict[str, Any] = Field(..., description="Serialized private event")
