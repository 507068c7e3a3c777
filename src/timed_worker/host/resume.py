# src/timed_worker/host/resume.py

from __future__ import annotations

"""
Resume coordination.

After a relaunch the host gives us a bounded background window (ResumeWindow).
The coordinator wires the window's expiration to TimedWorker.expire, lets the worker
continue a persisted countdown, and reports back whether it finished.

Policy for short windows (min_window_ms):
- 0 (default): always attempt; if the host closes the window first, the worker expires
  and the countdown stays persisted for the next opportunity
- > 0: skip the attempt when the host reports less time than that
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from ..core.worker import TimedWorker

logger = logging.getLogger(__name__)

PROCESSING_ID = "timed.worker.processing"


class ResumeWindow(Protocol):
    """Host-granted background processing task."""

    def set_expiration_handler(self, handler: Callable[[], None]) -> None: ...
    def set_task_completed(self, success: bool) -> None: ...
    def remaining_seconds(self) -> float | None: ...


LaunchHandler = Callable[[ResumeWindow], object]


class HostScheduler(Protocol):
    def register(self, identifier: str, handler: LaunchHandler) -> None: ...
    def submit(self, identifier: str, earliest_seconds: float = 60.0) -> object: ...


@dataclass(slots=True, frozen=True)
class ResumePolicy:
    min_window_ms: int = 0
    window_seconds: float | None = None


def _min_timeout(*values: float | None) -> float | None:
    present = [max(0.0, v) for v in values if v is not None]
    return min(present) if present else None


class ResumeCoordinator:
    def __init__(self, worker: TimedWorker, policy: ResumePolicy | None = None) -> None:
        self._worker = worker
        self._policy = policy or ResumePolicy()

    @property
    def policy(self) -> ResumePolicy:
        return self._policy

    def handle(self, window: ResumeWindow) -> bool:
        window.set_expiration_handler(self._worker.expire)

        remaining = window.remaining_seconds()
        min_ms = self._policy.min_window_ms
        if min_ms > 0 and remaining is not None and remaining * 1000.0 < min_ms:
            logger.info(
                "Resume skipped: window %.0fms shorter than min %sms; state stays persisted",
                remaining * 1000.0,
                min_ms,
            )
            window.set_task_completed(False)
            return False

        timeout = _min_timeout(remaining, self._policy.window_seconds)
        try:
            finished = self._worker.resume_if_pending(timeout=timeout)
        except Exception:
            logger.exception("resume_if_pending failed")
            finished = False

        window.set_task_completed(finished)
        return finished


class LocalResumeWindow:
    """
    In-process ResumeWindow.

    The clock starts at open(); once duration_seconds pass without set_task_completed,
    the expiration handler is called once.
    """

    def __init__(self, duration_seconds: float | None = None, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._duration = duration_seconds if duration_seconds and duration_seconds > 0 else None
        self._clock = clock
        self._lock = threading.Lock()
        self._ends_at: float | None = None
        self._handler: Callable[[], None] | None = None
        self._timer: threading.Timer | None = None
        self._completed = threading.Event()
        self.success: bool | None = None

    def open(self) -> None:
        with self._lock:
            if self._duration is None or self._ends_at is not None:
                return
            self._ends_at = self._clock() + self._duration
            self._timer = threading.Timer(self._duration, self._expire)
            self._timer.daemon = True
        self._timer.start()

    def set_expiration_handler(self, handler: Callable[[], None]) -> None:
        with self._lock:
            self._handler = handler

    def remaining_seconds(self) -> float | None:
        with self._lock:
            if self._ends_at is None:
                return self._duration
            return max(0.0, self._ends_at - self._clock())

    def set_task_completed(self, success: bool) -> None:
        with self._lock:
            if self._completed.is_set():
                return
            self.success = bool(success)
            self._completed.set()
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def wait(self, timeout: float | None = None) -> bool:
        return self._completed.wait(timeout)

    def _expire(self) -> None:
        with self._lock:
            handler = None if self._completed.is_set() else self._handler
        if handler is None:
            return
        logger.info("Resume window expired")
        try:
            handler()
        except Exception:
            logger.exception("Resume window expiration handler failed")


class LocalHostScheduler:
    """
    Process-local stand-in for a host background-task scheduler.

    register() once per identifier, then submit() launches the handler on a timer
    thread after earliest_seconds with a fresh LocalResumeWindow.
    """

    def __init__(self, *, window_seconds: float | None = 30.0) -> None:
        self._window_seconds = window_seconds
        self._lock = threading.Lock()
        self._handlers: dict[str, LaunchHandler] = {}
        self._pending: dict[LocalResumeWindow, threading.Timer] = {}

    def register(self, identifier: str, handler: LaunchHandler) -> None:
        with self._lock:
            if identifier in self._handlers:
                raise ValueError(f"Handler already registered for {identifier!r}")
            self._handlers[identifier] = handler
        logger.debug("Registered launch handler id=%s", identifier)

    def submit(self, identifier: str, earliest_seconds: float = 60.0) -> LocalResumeWindow:
        with self._lock:
            handler = self._handlers.get(identifier)
            if handler is None:
                raise KeyError(f"No handler registered for {identifier!r}")

            window = LocalResumeWindow(self._window_seconds)
            timer = threading.Timer(
                max(0.0, float(earliest_seconds)),
                self._launch,
                args=(identifier, handler, window),
            )
            timer.daemon = True
            self._pending[window] = timer

        timer.start()
        logger.info("Submitted %s earliest=%ss", identifier, earliest_seconds)
        return window

    def shutdown(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, {}
        for timer in pending.values():
            timer.cancel()

    def _launch(
        self,
        identifier: str,
        handler: LaunchHandler,
        window: LocalResumeWindow,
    ) -> None:
        with self._lock:
            self._pending.pop(window, None)

        logger.info("Launching %s", identifier)
        window.open()
        try:
            handler(window)
        except Exception:
            logger.exception("Launch handler failed id=%s", identifier)
            window.set_task_completed(False)


def register_resume_handler(scheduler: HostScheduler, coordinator: ResumeCoordinator) -> None:
    scheduler.register(PROCESSING_ID, coordinator.handle)


def schedule_resume(scheduler: HostScheduler, earliest_seconds: float = 60.0) -> object | None:
    """Ask the host for a deferred resume. Failing to schedule is logged, not raised."""
    try:
        return scheduler.submit(PROCESSING_ID, earliest_seconds=earliest_seconds)
    except Exception:
        logger.warning("Failed to schedule resume id=%s", PROCESSING_ID, exc_info=True)
        return None
