"""Context, result and reply helpers shared by the websocket handlers."""

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from app.schemas.ws import ErrorPayload, MessageType, WSClientMessage, WSServerMessage

if TYPE_CHECKING:
    from app.services.websocket.manager import ConnectionManager

T = TypeVar("T", bound=BaseModel)


@dataclass
class HandlerContext:
    """One inbound frame on a connection bound to ``game_id`` for ``player_id``."""

    connection_id: str
    player_id: str
    game_id: str
    message: WSClientMessage
    manager: "ConnectionManager"

    @property
    def request_id(self) -> str | None:
        return self.message.request_id


@dataclass
class HandlerResult:
    """What goes back to the requesting connection, if anything.

    Game updates never travel here: they reach every member of the game
    through the broadcaster.
    """

    success: bool
    response: WSServerMessage | None = None

    @classmethod
    def reply(
        cls, ctx: HandlerContext, message_type: MessageType, payload: BaseModel
    ) -> "HandlerResult":
        return cls(
            success=True,
            response=WSServerMessage(
                type=message_type,
                request_id=ctx.request_id,
                payload=payload.model_dump(mode="json"),
            ),
        )


def error_result(
    ctx: HandlerContext,
    error_code: str,
    message: str,
    error_type: MessageType = MessageType.GAME_ERROR,
) -> HandlerResult:
    return HandlerResult(
        success=False,
        response=WSServerMessage(
            type=error_type,
            request_id=ctx.request_id,
            payload=ErrorPayload(error_code=error_code, message=message).model_dump(),
        ),
    )


def check_request_id(
    ctx: HandlerContext, error_type: MessageType = MessageType.GAME_ERROR
) -> HandlerResult | None:
    """Requests must carry a UUID ``request_id`` so the client can match replies.

    Returns:
        An error result, or None when the id is usable.
    """
    if not ctx.request_id:
        return error_result(ctx, "VALIDATION_ERROR", "request_id is required", error_type)
    try:
        uuid.UUID(ctx.request_id)
    except ValueError:
        return error_result(ctx, "VALIDATION_ERROR", "request_id must be a valid UUID", error_type)
    return None


def parse_payload(
    ctx: HandlerContext,
    schema: type[T],
    error_type: MessageType = MessageType.GAME_ERROR,
) -> tuple[T | None, HandlerResult | None]:
    """Validate the frame's payload against ``schema``; exactly one of the pair is set."""
    try:
        return schema.model_validate(ctx.message.payload or {}), None
    except ValidationError as e:
        return None, error_result(ctx, "VALIDATION_ERROR", str(e), error_type)
