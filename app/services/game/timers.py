"""Deferred jobs: trade expiry, turn expiry and stats snapshots.

Jobs run as asyncio tasks on the serving process. A job scheduled with a
dedupe key replaces any pending job holding the same key, and jobs can be
cancelled by key. Handler failures are logged and swallowed so one broken
job never takes the scheduler down.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class JobKind(str, Enum):
    TRADE_EXPIRY = "trade_expiry"
    TURN_EXPIRY = "turn_expiry"
    STATS_SNAPSHOT = "stats_snapshot"


JobHandler = Callable[[dict[str, Any]], Awaitable[None]]


def turn_timer_key(game_id: str, player_id: str) -> str:
    return f"turn-timer-{game_id}-{player_id}"


def trade_timer_key(game_id: str, trade_id: str) -> str:
    return f"trade-timer-{game_id}-{trade_id}"


class TimerCoordinator:
    def __init__(self) -> None:
        self._handlers: dict[JobKind, JobHandler] = {}
        self._jobs: dict[str, asyncio.Task] = {}
        self._anonymous: set[asyncio.Task] = set()

    def register(self, kind: JobKind, handler: JobHandler) -> None:
        self._handlers[kind] = handler
        logger.debug("Registered timer handler for %s", kind.value)

    def is_scheduled(self, dedupe_key: str) -> bool:
        task = self._jobs.get(dedupe_key)
        return task is not None and not task.done()

    def schedule(
        self,
        kind: JobKind,
        payload: dict[str, Any],
        delay: float,
        dedupe_key: str | None = None,
    ) -> None:
        """Run the handler for ``kind`` with ``payload`` after ``delay`` seconds."""
        if kind not in self._handlers:
            raise KeyError(f"No handler registered for {kind.value}")

        if dedupe_key is not None:
            self.cancel(dedupe_key)

        task = asyncio.create_task(self._run(kind, payload, delay, dedupe_key))
        if dedupe_key is not None:
            self._jobs[dedupe_key] = task
        else:
            self._anonymous.add(task)
            task.add_done_callback(self._anonymous.discard)
        logger.debug(
            "Scheduled %s job: key=%s, delay=%.2fs, payload=%s",
            kind.value,
            dedupe_key,
            delay,
            payload,
        )

    def cancel(self, dedupe_key: str) -> bool:
        task = self._jobs.pop(dedupe_key, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug("Cancelled job %s", dedupe_key)
        return True

    def cancel_prefix(self, prefix: str) -> int:
        """Cancel every keyed job whose key starts with ``prefix``."""
        return sum(1 for key in list(self._jobs) if key.startswith(prefix) and self.cancel(key))

    async def _run(
        self,
        kind: JobKind,
        payload: dict[str, Any],
        delay: float,
        dedupe_key: str | None,
    ) -> None:
        try:
            await asyncio.sleep(delay)
            # A job firing must not cancel itself through a reschedule of its own key
            if dedupe_key is not None and self._jobs.get(dedupe_key) is asyncio.current_task():
                del self._jobs[dedupe_key]
            await self._handlers[kind](payload)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Timer job %s failed: key=%s, payload=%s", kind.value, dedupe_key, payload)

    async def shutdown(self) -> None:
        tasks = [*self._jobs.values(), *self._anonymous]
        self._jobs.clear()
        self._anonymous.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Timer coordinator stopped, %d pending jobs cancelled", len(tasks))
