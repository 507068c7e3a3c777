# src/timed_worker/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..connectors.channel import MethodChannel
    from ..host.resume import LocalHostScheduler, ResumeCoordinator
    from .ports import StateStore
    from .worker import TimedWorker


@dataclass
class AppState:
    """
    Everything a connector needs, built once by the composition root (cli.bootstrap).

    There is exactly one worker per process; pass this object around instead of
    reaching for a module-level singleton.
    """

    settings: Any
    worker: TimedWorker
    channel: MethodChannel
    store: StateStore
    coordinator: ResumeCoordinator
    scheduler: LocalHostScheduler

    # Closables owned by the process (event dispatcher thread etc.).
    sink: Any = None
