# src/timed_worker/core/worker.py

from __future__ import annotations

"""
Timed worker core.

One countdown per process. The worker:
- keeps a live deadline (monotonic clock) in sync with a persisted remainingMs,
- holds a host execution grant while running and releases it on every exit,
- ticks every interval, persisting and reporting the remaining time,
- resumes a persisted countdown after a cold restart.

Every transition (caller operations, ticks, grant expiry) runs under one re-entrant lock,
and events are handed to the sink while that lock is held so they keep transition order.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from functools import partial

from .errors import ArgumentError
from .grant import ExecutionGrant
from .models import WorkerEvent, WorkerPhase, WorkerStatus
from .ports import Clock, EventPayload, EventSink, ExecutionHost, StateStore, TickSource

logger = logging.getLogger(__name__)
tick_logger = logging.getLogger(__name__ + ".ticks")


@dataclass(slots=True)
class _Run:
    """One armed countdown; resume_if_pending waits on it outside the lock."""

    task_id: str
    done: threading.Event = field(default_factory=threading.Event)
    outcome: WorkerEvent | None = None

    def finish(self, outcome: WorkerEvent | None) -> None:
        self.outcome = outcome
        self.done.set()


def validate_start_args(task_id: object, duration_ms: object) -> tuple[str, int]:
    if not isinstance(task_id, str) or not task_id.strip():
        raise ArgumentError("taskId must be a non-empty string", details={"taskId": task_id})
    if isinstance(duration_ms, bool) or not isinstance(duration_ms, int) or duration_ms <= 0:
        raise ArgumentError("durationMs must be a positive integer", details={"durationMs": duration_ms})
    return task_id, duration_ms


class TimedWorker:
    def __init__(
        self,
        *,
        store: StateStore,
        host: ExecutionHost,
        ticks: TickSource,
        sink: EventSink,
        clock: Clock = time.monotonic,
        grant_name: str = "TimedWorker",
    ) -> None:
        self._store = store
        self._grant = ExecutionGrant(host, name=grant_name)
        self._ticks = ticks
        self._sink = sink
        self._clock = clock

        self._lock = threading.RLock()
        self._task_id: str | None = None
        self._running = False
        self._deadline = 0.0
        self._phase = WorkerPhase.IDLE
        self._last_outcome: WorkerEvent | None = None
        # Bumped on every arming; stale ticks / grant expirations compare against it.
        self._generation = 0
        self._run: _Run | None = None

    # ---- read-only views ----

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def task_id(self) -> str | None:
        with self._lock:
            return self._task_id

    @property
    def phase(self) -> WorkerPhase:
        with self._lock:
            return self._phase

    @property
    def last_outcome(self) -> WorkerEvent | None:
        """How the most recent countdown ended (cancelled, completed or expired)."""
        with self._lock:
            return self._last_outcome

    def status(self) -> WorkerStatus:
        with self._lock:
            if self._running:
                return WorkerStatus(True, self._task_id, self._remaining_ms())
            persisted = self._store.load()
            return WorkerStatus(
                False,
                persisted.task_id if persisted.pending else None,
                persisted.remaining_ms,
            )

    # ---- caller operations ----

    def start(self, task_id: str, duration_ms: int) -> None:
        task_id, duration_ms = validate_start_args(task_id, duration_ms)

        with self._lock:
            # The new task is made durable before the old one is torn down; a failed
            # write leaves the previous countdown untouched.
            self._store.save(duration_ms, task_id)

            if self._running:
                logger.info("Task %s superseded by %s", self._task_id, task_id)
                self._stop()
                self._end_run(WorkerEvent.CANCELLED)

            self._task_id = task_id
            self._deadline = self._clock() + duration_ms / 1000.0
            self._arm(task_id)

            logger.info("Task %s started duration_ms=%s", task_id, duration_ms)
            self._emit(WorkerEvent.STARTED, {"taskId": task_id, "remainingMs": duration_ms})

    def cancel(self, from_ui: bool = False) -> None:
        with self._lock:
            if not self._running:
                # An expired countdown may still be pending in the store; drop it quietly.
                persisted = self._store.load()
                if persisted.pending:
                    logger.info("Dropping pending task %s (not running)", persisted.task_id)
                    self._store.save(0, None)
                self._task_id = None
                return

            task_id = self._task_id
            self._stop()
            self._clear_store(task_id)
            self._phase = WorkerPhase.IDLE
            logger.info("Task %s cancelled from_ui=%s", task_id, from_ui)
            self._emit(WorkerEvent.CANCELLED, {"taskId": task_id, "fromUi": bool(from_ui)})
            self._end_run(WorkerEvent.CANCELLED)
            self._task_id = None

    def complete(self, from_ui: bool = False) -> None:
        with self._lock:
            if not self._running:
                logger.debug("complete(from_ui=%s) ignored: not running", from_ui)
                return

            task_id = self._task_id
            self._stop()
            self._clear_store(task_id)
            self._phase = WorkerPhase.COMPLETED
            logger.info("Task %s completed from_ui=%s", task_id, from_ui)
            self._emit(WorkerEvent.COMPLETED, {"taskId": task_id, "fromUi": bool(from_ui)})
            self._end_run(WorkerEvent.COMPLETED)
            self._task_id = None

    # ---- host entry points ----

    def expire(self) -> None:
        """
        The host revoked the execution grant before the countdown finished.

        Persisted remainingMs/taskId are left intact for a later resume.
        """
        with self._lock:
            if not self._running:
                logger.debug("expire() ignored: not running")
                return

            task_id = self._task_id
            self._stop()
            self._phase = WorkerPhase.EXPIRED
            logger.warning("Task %s expired (execution grant revoked)", task_id)
            self._emit(WorkerEvent.EXPIRED, {"taskId": task_id})
            self._end_run(WorkerEvent.EXPIRED)

    def resume_if_pending(self, timeout: float | None = None) -> bool:
        """
        Continue a persisted countdown after a relaunch.

        Returns True when there is nothing to resume or the countdown finished
        (completed or cancelled), False when it expired or `timeout` elapsed first.
        In the False case the pending state stays persisted.
        """
        with self._lock:
            persisted = self._store.load()
            if not persisted.pending:
                logger.debug("Nothing to resume (remaining_ms=%s)", persisted.remaining_ms)
                return True

            if self._running:
                logger.info("Task %s already running; waiting on it", self._task_id)
            else:
                task_id = str(persisted.task_id)
                self._task_id = task_id
                self._deadline = self._clock() + persisted.remaining_ms / 1000.0
                self._arm(task_id)
                logger.info("Task %s resumed remaining_ms=%s", task_id, persisted.remaining_ms)

            run = self._run

        if run is None:
            return True

        if not run.done.wait(timeout):
            logger.info("Resume window closed before task %s finished", run.task_id)
            return False

        return run.outcome in (WorkerEvent.COMPLETED, WorkerEvent.CANCELLED)

    def suspend(self) -> None:
        """
        Process is going away: stop ticking and give the grant back, but keep the
        persisted countdown so the next launch can resume it. Emits nothing.
        """
        with self._lock:
            if not self._running:
                return
            task_id = self._task_id
            self._stop()
            self._end_run(None)
            logger.info("Task %s suspended; state kept for resume", task_id)

    # ---- internals (lock held) ----

    def _arm(self, task_id: str) -> None:
        self._generation += 1
        gen = self._generation

        self._running = True
        self._phase = WorkerPhase.RUNNING
        self._run = _Run(task_id=task_id)

        self._grant.acquire(partial(self._on_grant_expired, gen))
        self._ticks.arm(partial(self._on_tick, gen))

    def _stop(self) -> None:
        # Order matters: ticks first, then the grant, then (caller) persistence and events.
        self._ticks.cancel()
        self._grant.release()
        self._running = False

    def _end_run(self, outcome: WorkerEvent | None) -> None:
        self._phase = WorkerPhase.IDLE
        if outcome is not None:
            self._last_outcome = outcome
        if self._run is not None:
            self._run.finish(outcome)
            self._run = None

    def _clear_store(self, task_id: str | None) -> None:
        """Zero the persisted countdown; on failure nothing is reported and the task stays pending."""
        try:
            self._store.save(0, None)
        except Exception:
            logger.error("Task %s: clearing persisted state failed; left pending for resume", task_id)
            self._end_run(None)
            raise

    def _on_tick(self, gen: int) -> None:
        with self._lock:
            if gen != self._generation or not self._running:
                return

            remaining = self._remaining_ms()
            self._persist(remaining, self._task_id)
            tick_logger.debug("Task %s tick remaining_ms=%s", self._task_id, remaining)
            self._emit(WorkerEvent.PROGRESS, {"taskId": self._task_id, "remainingMs": remaining})

            if remaining <= 0:
                self.complete(from_ui=False)

    def _on_grant_expired(self, gen: int) -> None:
        with self._lock:
            if gen != self._generation:
                logger.debug("Stale grant expiration ignored (gen=%s current=%s)", gen, self._generation)
                return
            self.expire()

    def _remaining_ms(self) -> int:
        return max(0, round((self._deadline - self._clock()) * 1000))

    def _persist(self, remaining_ms: int, task_id: str | None) -> None:
        try:
            self._store.save(remaining_ms, task_id)
        except Exception:
            logger.exception("State store write failed remaining_ms=%s task_id=%s", remaining_ms, task_id)

    def _emit(self, event: WorkerEvent, payload: EventPayload) -> None:
        try:
            self._sink.emit(event.value, payload)
        except Exception:
            logger.exception("Event sink failed event=%s", event.value)
