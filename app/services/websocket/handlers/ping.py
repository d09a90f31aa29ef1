"""Keep-alive: PING refreshes the connection's heartbeat and is answered with PONG."""

from app.schemas.ws import MessageType, PongPayload

from . import handler
from .base import HandlerContext, HandlerResult


@handler(MessageType.PING)
async def handle_ping(ctx: HandlerContext) -> HandlerResult:
    await ctx.manager.heartbeat(ctx.connection_id)
    return HandlerResult.reply(ctx, MessageType.PONG, PongPayload())
