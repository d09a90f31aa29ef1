"""Game service module.

Provides:
- Board and card tables (board.py)
- Game engine processing (engine/)
- Locked, persisted game operations (service.py, store.py, lock.py)
- Deferred jobs (timers.py, jobs.py)
"""

# Re-export from engine for convenience
from .engine import (
    GameAction,
    ProcessResult,
    RollAction,
    StartGameAction,
    build_action_from_payload,
    process_action,
)

__all__ = [
    # Engine
    "GameAction",
    "ProcessResult",
    "RollAction",
    "StartGameAction",
    "process_action",
    "build_action_from_payload",
]
