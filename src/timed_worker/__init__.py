"""
timed_worker: one cancellable, resumable countdown per process.

Components:
- core/: state machine (TimedWorker), ports, models, errors, grant ownership
- storage/: SQLite-backed persistence of remainingMs / taskId
- host/: local host adapters (execution grant, tick thread, resume scheduling)
- connectors/: method channel, event sinks, console connector
- cli/: composition root and console entrypoint
"""

from .core.errors import ArgumentError, GrantDenied, TimedWorkerError
from .core.models import WorkerEvent, WorkerStatus
from .core.worker import TimedWorker

__all__ = [
    "ArgumentError",
    "GrantDenied",
    "TimedWorker",
    "TimedWorkerError",
    "WorkerEvent",
    "WorkerStatus",
]

__version__ = "0.1.0"
