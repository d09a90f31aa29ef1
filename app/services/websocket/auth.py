"""Player identity from Supabase-issued JWTs.

Tokens are verified against the project's JWKS; the ``sub`` claim is the
player id used throughout game state. One TokenAuthenticator serves both the
websocket endpoint and the HTTP routes.
"""

import logging
from dataclasses import dataclass
from time import monotonic

import httpx
import jwt
from jwt.exceptions import PyJWKSetError

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Outcome of a token check; failures carry a reason instead of raising."""

    success: bool
    payload: dict | None = None
    error: str | None = None
    expired: bool = False

    @property
    def player_id(self) -> str | None:
        return self.payload.get("sub") if self.payload else None


class SigningKeys:
    """The provider's JWKS, refetched after ``ttl`` seconds or when a kid is unknown."""

    def __init__(self, url: str, ttl: float = 300):
        self.url = url
        self.ttl = ttl
        self._keys: jwt.PyJWKSet | None = None
        self._loaded_at = 0.0
        self._http: httpx.AsyncClient | None = None

    def load(self, jwks: dict) -> None:
        self._keys = jwt.PyJWKSet.from_dict(jwks)
        self._loaded_at = monotonic()

    async def _refresh(self) -> None:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=10.0)
        response = await self._http.get(self.url)
        response.raise_for_status()
        self.load(response.json())
        logger.debug("JWKS refreshed from %s", self.url)

    async def key_for(self, kid: str | None) -> jwt.PyJWK:
        """Signing key with id ``kid``.

        Raises:
            LookupError: The key is missing even after a refetch.
            httpx.HTTPError: The JWKS endpoint could not be read.
        """
        if self._keys is None or monotonic() - self._loaded_at >= self.ttl:
            await self._refresh()
        try:
            return self._keys[kid]
        except KeyError:
            # Keys rotate; one refetch before giving up
            await self._refresh()
        try:
            return self._keys[kid]
        except KeyError as e:
            raise LookupError(f"Key {kid} not found in JWKS") from e

    async def close(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
        self._http = None


class TokenAuthenticator:
    """Checks bearer tokens: asymmetric signature, expiry, audience, subject."""

    ALLOWED_ALGORITHMS = ("RS256", "RS384", "RS512", "ES256", "ES384", "ES512", "EdDSA")

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._keys: SigningKeys | None = None

    def signing_keys(self) -> SigningKeys:
        if self._keys is None:
            self._keys = SigningKeys(
                self._settings.supabase_jwks_url,
                ttl=self._settings.JWKS_CACHE_TTL_SECONDS,
            )
        return self._keys

    async def validate_token(self, token: str) -> AuthResult:
        if not token:
            return AuthResult(success=False, error="Missing token")

        try:
            header = jwt.get_unverified_header(token)
            algorithm = header.get("alg")
            if algorithm not in self.ALLOWED_ALGORITHMS:
                logger.warning("Token rejected: algorithm %s not allowed", algorithm)
                return AuthResult(success=False, error=f"Algorithm {algorithm} not allowed")

            signing_key = await self.signing_keys().key_for(header.get("kid"))
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=[algorithm],
                audience=self._settings.JWT_AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            return AuthResult(success=False, error="Token has expired", expired=True)
        except jwt.InvalidTokenError as e:
            logger.warning("Token rejected: %s", e)
            return AuthResult(success=False, error=f"Invalid token: {e}")
        except (LookupError, PyJWKSetError, httpx.HTTPError) as e:
            logger.error("Signing key unavailable: %s", e)
            return AuthResult(success=False, error="Authentication failed")

        if not payload.get("sub"):
            return AuthResult(success=False, error="Token has no subject")
        return AuthResult(success=True, payload=payload)

    async def close(self) -> None:
        if self._keys is not None:
            await self._keys.close()
            self._keys = None


_authenticator: TokenAuthenticator | None = None


def get_authenticator() -> TokenAuthenticator:
    global _authenticator
    if _authenticator is None:
        _authenticator = TokenAuthenticator()
    return _authenticator


async def close_authenticator() -> None:
    global _authenticator
    if _authenticator is not None:
        await _authenticator.close()
        _authenticator = None
