"""GAME_ACTION: one player action, applied through GameService.perform."""

import logging

from app.schemas.ws import GameActionPayload, MessageType
from app.services.game.engine import build_action_from_payload
from app.services.game.service import GameNotFoundError, get_game_service

from . import handler
from .base import HandlerContext, HandlerResult, check_request_id, error_result, parse_payload

logger = logging.getLogger(__name__)


@handler(MessageType.GAME_ACTION)
async def handle_game_action(ctx: HandlerContext) -> HandlerResult:
    """Parse the action and run it for the connection's player.

    A successful action gets no direct reply: its events and the new state
    reach every member of the game, the requester included, through the
    game broadcast. Rejections are answered with GAME_ERROR to the requester
    only.
    """
    request_error = check_request_id(ctx)
    if request_error:
        return request_error

    payload, payload_error = parse_payload(ctx, GameActionPayload)
    if payload_error:
        return payload_error

    try:
        action = build_action_from_payload(payload.model_dump())
    except ValueError as e:
        return error_result(ctx, "VALIDATION_ERROR", str(e))

    try:
        result = await get_game_service().perform(ctx.game_id, ctx.player_id, action)
    except GameNotFoundError as e:
        return error_result(ctx, e.code, str(e))

    if not result.success:
        logger.info(
            "Action %s rejected for player %s in game %s: %s",
            action.action_type,
            ctx.player_id,
            ctx.game_id,
            result.error_code,
        )
        return error_result(
            ctx,
            result.error_code or "PROCESSING_ERROR",
            result.error_message or "Failed to process action",
        )

    logger.debug(
        "Action %s applied for player %s in game %s: %d events",
        action.action_type,
        ctx.player_id,
        ctx.game_id,
        len(result.events),
    )
    return HandlerResult(success=True)
