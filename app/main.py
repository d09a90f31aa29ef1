import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.dependencies.redis import close_redis_client, get_redis_client
from app.routers import games, ws
from app.services.bot.supervisor import BotSupervisor
from app.services.game.jobs import register_jobs
from app.services.game.lock import GameLock
from app.services.game.service import GameService, set_game_service
from app.services.game.store import GameStore
from app.services.game.timers import TimerCoordinator
from app.services.websocket.auth import close_authenticator
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Monopoly API")
    logger.debug("Debug mode: %s", settings.DEBUG)

    redis_client = get_redis_client(settings)
    store = GameStore(redis_client, event_log_retention=settings.EVENT_LOG_RETENTION)
    lock = GameLock(
        redis_client,
        ttl_ms=settings.GAME_LOCK_TTL_MS,
        retry_ms=settings.GAME_LOCK_RETRY_MS,
    )
    timers = TimerCoordinator()
    bots = BotSupervisor(store)

    # WebSocket connection manager doubles as the game broadcaster
    connection_manager = get_connection_manager()
    await connection_manager.start_cleanup_task()
    logger.info("WebSocket connection manager initialized")

    service = GameService(store, lock, connection_manager, timers, bots=bots, settings=settings)
    register_jobs(timers, service)
    set_game_service(service)

    await bots.load_from_store()
    logger.info("Game service initialized")

    yield

    logger.info("Shutting down Monopoly API")
    await bots.shutdown()
    await timers.shutdown()
    set_game_service(None)
    await connection_manager.stop_cleanup_task()
    await connection_manager.close_all_connections()
    await close_authenticator()
    await close_redis_client()
    logger.info("Bots, timers, WebSocket, and Redis cleanup complete")


app = FastAPI(
    title="Monopoly API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.debug("CORS configured with origins: %s", settings.CORS_ORIGINS)

app.include_router(games.router, prefix="/api/v1")
app.include_router(ws.router, prefix="/api/v1")
logger.debug("Routers registered: /api/v1/games, /api/v1/ws")


@app.get("/")
def root():
    return {"message": "Monopoly API"}


@app.get("/health")
def health():
    return {"status": "healthy"}
