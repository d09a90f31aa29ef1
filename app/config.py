import logging
import sys
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase (identity provider, JWKS source)
    SUPABASE_URL: str
    JWT_AUDIENCE: str = "authenticated"
    JWKS_CACHE_TTL_SECONDS: int = 300

    # App config
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    DEBUG: bool = False

    # Upstash Redis
    UPSTASH_REDIS_REST_URL: str
    UPSTASH_REDIS_REST_TOKEN: str

    # WebSocket config
    WS_HEARTBEAT_INTERVAL: int = 30
    WS_CONNECTION_TIMEOUT: int = 120

    # Game lock
    GAME_LOCK_TTL_MS: int = 5000
    GAME_LOCK_RETRY_MS: int = 100

    # Persistence
    EVENT_LOG_RETENTION: int = 10
    STATS_TTL_SECONDS: int = 3600

    # Timers
    TRADE_EXPIRY_SECONDS: float = 60
    TRADE_KEY_TTL_SECONDS: int = 70
    TRADE_COOLDOWN_SECONDS: float = 27
    TRADE_COOLDOWN_KEY_TTL_SECONDS: int = 300
    TURN_TIME_LIMIT_SECONDS: float = 30
    STATS_JOB_DELAY_SECONDS: float = 0.1

    # Thinking time (skipped for simulation games)
    BOT_MIN_DELAY_MS: int = 500
    BOT_MAX_DELAY_MS: int = 1500
    CARD_DELAY_MAX_MS: int = 510

    @field_validator("UPSTASH_REDIS_REST_URL")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("UPSTASH_REDIS_REST_URL must be a valid HTTPS URL")
        return v

    @field_validator("UPSTASH_REDIS_REST_TOKEN")
    @classmethod
    def validate_redis_token(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("UPSTASH_REDIS_REST_TOKEN cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_game_timing(self) -> "Settings":
        if not 0 <= self.BOT_MIN_DELAY_MS <= self.BOT_MAX_DELAY_MS:
            raise ValueError("Bot delays must satisfy 0 <= BOT_MIN_DELAY_MS <= BOT_MAX_DELAY_MS")
        # The trade document must still exist when its expiry job runs
        if self.TRADE_KEY_TTL_SECONDS <= self.TRADE_EXPIRY_SECONDS:
            raise ValueError("TRADE_KEY_TTL_SECONDS must exceed TRADE_EXPIRY_SECONDS")
        return self

    @property
    def supabase_jwks_url(self) -> str:
        return f"{self.SUPABASE_URL}/auth/v1/.well-known/jwks.json"


def configure_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    configure_logging(settings.DEBUG)
    logger.info("Settings loaded successfully")
    logger.debug("JWKS URL: %s", settings.supabase_jwks_url)
    logger.debug(
        "Game lock: ttl=%dms retry=%dms",
        settings.GAME_LOCK_TTL_MS,
        settings.GAME_LOCK_RETRY_MS,
    )
    return settings
