# src/timed_worker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete adapters (SQLite store, local host, thread ticks, event sinks) into one
  TimedWorker,
- registers the resume coordinator with the host scheduler under PROCESSING_ID.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.channel import MethodChannel
from ..connectors.event_sinks import Deliver, FanOutEventSink, LoggingEventSink, QueueEventSink
from ..core.state import AppState
from ..core.worker import TimedWorker
from ..host.grant import LocalExecutionHost
from ..host.resume import LocalHostScheduler, ResumeCoordinator, ResumePolicy, register_resume_handler
from ..host.tick import ThreadTickSource
from ..storage.state_store import SqliteStateStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.state_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, deliver: Deliver | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().

    `deliver` receives (event, payload) on a dedicated dispatcher thread, in emission order.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    queue_sink: QueueEventSink | None = None
    if deliver is not None:
        queue_sink = QueueEventSink(deliver)
        sink = FanOutEventSink(LoggingEventSink(), queue_sink)
    else:
        sink = LoggingEventSink()

    store = SqliteStateStore(settings.state_db_path)
    worker = TimedWorker(
        store=store,
        host=LocalExecutionHost(budget_seconds=settings.grant_budget_seconds),
        ticks=ThreadTickSource(settings.tick_interval_seconds),
        sink=sink,
    )

    window_seconds = settings.resume_window_seconds or None
    coordinator = ResumeCoordinator(
        worker,
        ResumePolicy(min_window_ms=settings.min_resume_window_ms, window_seconds=window_seconds),
    )
    scheduler = LocalHostScheduler(window_seconds=window_seconds)
    register_resume_handler(scheduler, coordinator)

    return AppState(
        settings=settings,
        worker=worker,
        channel=MethodChannel.default(worker),
        store=store,
        coordinator=coordinator,
        scheduler=scheduler,
        sink=queue_sink,
    )


def shutdown_state(state: AppState) -> None:
    """
    Best-effort shutdown (no exceptions should escape).

    A running countdown is suspended, not cancelled: its remainingMs stays persisted
    and the next launch resumes it.
    """
    try:
        state.scheduler.shutdown()
    except Exception:
        logger.exception("Scheduler shutdown failed.")

    try:
        state.worker.suspend()
    except Exception:
        logger.exception("Worker suspend failed.")

    sink = state.sink
    if sink is not None and hasattr(sink, "close"):
        try:
            sink.close()
        except Exception:
            logger.debug("Event sink close failed.", exc_info=True)
