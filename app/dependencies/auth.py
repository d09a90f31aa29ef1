"""HTTP authentication: a bearer JWT resolves to the caller's player id."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.services.websocket.auth import get_authenticator

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_player_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> str:
    """The verified ``sub`` of the request's bearer token.

    Raises:
        HTTPException 401: Missing, invalid or expired token.
    """
    if credentials is None:
        raise _unauthorized("Missing authorization header")

    result = await get_authenticator().validate_token(credentials.credentials)
    if not result.success:
        logger.warning("HTTP auth failed: %s", result.error)
        raise _unauthorized(result.error or "Invalid token")
    return result.player_id


CurrentPlayerId = Annotated[str, Depends(get_current_player_id)]
