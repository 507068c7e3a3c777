# src/timed_worker/core/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class WorkerPhase(StrEnum):
    """
    Worker lifecycle phase.

    IDLE is both the initial phase and the one every stopping transition settles back into.
    COMPLETED and EXPIRED are only observable while that transition emits its event;
    TimedWorker.last_outcome keeps how the last countdown ended.
    """

    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"
    COMPLETED = "completed"


class WorkerEvent(StrEnum):
    STARTED = "worker_started"
    PROGRESS = "worker_progress"
    CANCELLED = "worker_cancelled"
    COMPLETED = "worker_completed"
    EXPIRED = "worker_expired"


@dataclass(slots=True, frozen=True)
class PersistedState:
    """Durable snapshot: remaining_ms == 0 means nothing is pending resumption."""

    remaining_ms: int = 0
    task_id: str | None = None

    @property
    def pending(self) -> bool:
        return bool(self.task_id) and self.remaining_ms > 0


@dataclass(slots=True, frozen=True)
class WorkerStatus:
    is_running: bool
    task_id: str | None
    remaining_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "isRunning": self.is_running,
            "taskId": self.task_id,
            "remainingMs": self.remaining_ms,
        }
