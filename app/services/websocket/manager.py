import asyncio
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import WebSocket
from upstash_redis.asyncio import Redis

from app.config import get_settings
from app.dependencies.redis import get_redis_client
from app.schemas.ws import ConnectedPayload, MessageType, WSCloseCode, WSServerMessage

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Connection:
    """A player's socket following one game."""

    connection_id: str
    websocket: WebSocket
    player_id: str
    game_id: str
    connected_at: datetime = field(default_factory=_now)
    last_heartbeat: datetime = field(default_factory=_now)


class ConnectionManager:
    """Sockets of this process, indexed by game and by player.

    It is also the game broadcaster: ``send_to_room`` reaches every socket
    following a game, ``send_to_user`` every socket of one player.

    Presence spans processes: ``ws:presence:{game_id}:{player_id}`` counts a
    player's open sockets for a game on every server, so a player is only
    reported gone when the last one closes anywhere.
    """

    def __init__(self, redis_client: Redis | None = None, server_id: str | None = None):
        self._redis = redis_client or get_redis_client()
        self._server_id = server_id or os.getenv("HOSTNAME", uuid.uuid4().hex[:8])
        self._settings = get_settings()

        self._connections: dict[str, Connection] = {}
        self._by_game: dict[str, set[str]] = {}
        self._by_player: dict[str, set[str]] = {}

        self._cleanup_task: asyncio.Task | None = None

    @staticmethod
    def presence_key(game_id: str, player_id: str) -> str:
        return f"ws:presence:{game_id}:{player_id}"

    async def connect(self, websocket: WebSocket, player_id: str, game_id: str) -> Connection:
        """Track an accepted socket and greet it with CONNECTED."""
        connection = Connection(
            connection_id=str(uuid.uuid4()),
            websocket=websocket,
            player_id=player_id,
            game_id=game_id,
        )
        self._connections[connection.connection_id] = connection
        self._by_game.setdefault(game_id, set()).add(connection.connection_id)
        self._by_player.setdefault(player_id, set()).add(connection.connection_id)

        try:
            await self._redis.incr(self.presence_key(game_id, player_id))
        except Exception as e:
            logger.error("Presence increment failed for %s in game %s: %s", player_id, game_id, e)

        logger.info(
            "Connection %s opened: player=%s, game=%s, server=%s",
            connection.connection_id,
            player_id,
            game_id,
            self._server_id,
        )
        await self.send_to_connection(
            connection.connection_id,
            WSServerMessage(
                type=MessageType.CONNECTED,
                payload=ConnectedPayload(
                    connection_id=connection.connection_id,
                    player_id=player_id,
                    game_id=game_id,
                    server_id=self._server_id,
                ).model_dump(),
            ),
        )
        return connection

    async def disconnect(self, connection_id: str) -> None:
        """Forget a socket and release its presence count. Unknown ids are ignored."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return

        _discard(self._by_game, connection.game_id, connection_id)
        _discard(self._by_player, connection.player_id, connection_id)

        key = self.presence_key(connection.game_id, connection.player_id)
        try:
            remaining = int(await self._redis.decr(key))
            if remaining <= 0:
                await self._redis.delete(key)
                remaining = 0
        except Exception as e:
            logger.error("Presence decrement failed for %s: %s", key, e)
            remaining = self._local_presence(connection.game_id, connection.player_id)

        logger.info(
            "Connection %s closed: player=%s, game=%s, %d left",
            connection_id,
            connection.player_id,
            connection.game_id,
            remaining,
        )

    async def presence(self, game_id: str, player_id: str) -> int:
        """Open sockets of ``player_id`` on ``game_id`` across all servers.

        Falls back to this server's count when Redis is unreachable.
        """
        try:
            count = await self._redis.get(self.presence_key(game_id, player_id))
        except Exception as e:
            logger.error("Presence read failed for %s in game %s: %s", player_id, game_id, e)
            return self._local_presence(game_id, player_id)
        return max(int(count), 0) if count else 0

    def _local_presence(self, game_id: str, player_id: str) -> int:
        return sum(
            1
            for conn_id in self._by_game.get(game_id, ())
            if self._connections[conn_id].player_id == player_id
        )

    async def heartbeat(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection:
            connection.last_heartbeat = _now()

    async def _close(self, connection: Connection) -> None:
        try:
            await connection.websocket.close(code=WSCloseCode.GOING_AWAY)
        except Exception as e:
            logger.debug("Closing socket %s failed: %s", connection.connection_id, e)
        await self.disconnect(connection.connection_id)

    async def cleanup_stale_connections(self) -> int:
        """Close sockets silent for longer than WS_CONNECTION_TIMEOUT."""
        timeout = self._settings.WS_CONNECTION_TIMEOUT
        now = _now()
        stale = [
            c for c in self._connections.values()
            if (now - c.last_heartbeat).total_seconds() > timeout
        ]
        for connection in stale:
            logger.warning(
                "Dropping silent connection %s (player %s, game %s)",
                connection.connection_id,
                connection.player_id,
                connection.game_id,
            )
            await self._close(connection)
        return len(stale)

    async def start_cleanup_task(self) -> None:
        if self._cleanup_task is not None:
            return

        async def sweep() -> None:
            interval = self._settings.WS_HEARTBEAT_INTERVAL
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.cleanup_stale_connections()
                except Exception:
                    logger.exception("Stale connection sweep failed")

        self._cleanup_task = asyncio.create_task(sweep())
        logger.info("Connection sweep started on server %s", self._server_id)

    async def stop_cleanup_task(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        try:
            await self._cleanup_task
        except asyncio.CancelledError:
            pass
        self._cleanup_task = None

    async def close_all_connections(self) -> None:
        logger.info("Closing %d connections", len(self._connections))
        for connection in list(self._connections.values()):
            await self._close(connection)

    async def send_to_connection(self, connection_id: str, message: WSServerMessage) -> bool:
        """Send one frame; a socket that fails to take it is dropped."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        try:
            await connection.websocket.send_json(message.model_dump(mode="json", exclude_none=True))
        except Exception as e:
            logger.warning("Send to connection %s failed: %s", connection_id, e)
            await self.disconnect(connection_id)
            return False
        return True

    async def _send_all(self, connection_ids: set[str], message: WSServerMessage) -> int:
        sent = 0
        for conn_id in list(connection_ids):
            if await self.send_to_connection(conn_id, message):
                sent += 1
        return sent

    async def send_to_room(self, game_id: str, message: WSServerMessage) -> int:
        """Broadcast to every socket following ``game_id`` on this server."""
        return await self._send_all(self._by_game.get(game_id, set()), message)

    async def send_to_user(self, player_id: str, message: WSServerMessage) -> int:
        """Send privately to every socket of ``player_id`` on this server."""
        return await self._send_all(self._by_player.get(player_id, set()), message)

    def get_connection(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def game_connection_count(self, game_id: str) -> int:
        return len(self._by_game.get(game_id, ()))


def _discard(index: dict[str, set[str]], key: str, connection_id: str) -> None:
    members = index.get(key)
    if members is None:
        return
    members.discard(connection_id)
    if not members:
        del index[key]


_connection_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager
