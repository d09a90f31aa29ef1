"""Routing of inbound websocket frames to their handlers.

Handlers register per message type with ``@handler``. A frame whose type has
no handler (a client echoing ``pong``, say) is answered with ERROR.
"""

import logging
from collections.abc import Awaitable, Callable

from app.schemas.ws import MessageType

from .base import HandlerContext, HandlerResult, error_result

logger = logging.getLogger(__name__)

Handler = Callable[[HandlerContext], Awaitable[HandlerResult]]

_registry: dict[MessageType, Handler] = {}


def handler(message_type: MessageType) -> Callable[[Handler], Handler]:
    def register(func: Handler) -> Handler:
        if message_type in _registry:
            raise ValueError(f"A handler for {message_type.value} is already registered")
        _registry[message_type] = func
        return func

    return register


async def dispatch(ctx: HandlerContext) -> HandlerResult:
    func = _registry.get(ctx.message.type)
    if func is None:
        logger.debug(
            "No handler for %s from connection %s", ctx.message.type.value, ctx.connection_id
        )
        return error_result(
            ctx,
            "UNSUPPORTED_MESSAGE",
            f"Clients cannot send {ctx.message.type.value}",
            MessageType.ERROR,
        )
    return await func(ctx)


# Registration happens on import
from . import game, ping  # noqa: E402, F401

__all__ = [
    "HandlerContext",
    "HandlerResult",
    "dispatch",
    "handler",
]
