# src/timed_worker/host/tick.py

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ThreadTickSource:
    """
    Repeating timer on a daemon thread.

    - arm(): fire immediately, then every interval until cancelled (replaces any previous arming)
    - cancel(): signal the thread to stop; never joins, so it is safe to call from inside a tick
      or while the tick thread is waiting on the caller's lock
    """

    def __init__(self, interval_seconds: float = 0.5, *, name: str = "timed-worker-tick") -> None:
        self._interval = max(0.01, float(interval_seconds))
        self._name = name
        self._lock = threading.Lock()
        self._stop: threading.Event | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._stop is not None and not self._stop.is_set()

    def arm(self, callback: Callable[[], None]) -> None:
        stop = threading.Event()
        thread = threading.Thread(target=self._loop, args=(callback, stop), name=self._name, daemon=True)
        with self._lock:
            if self._stop is not None:
                self._stop.set()
            self._stop = stop
        thread.start()

    def cancel(self) -> None:
        with self._lock:
            if self._stop is not None:
                self._stop.set()
                self._stop = None

    def _loop(self, callback: Callable[[], None], stop: threading.Event) -> None:
        next_at = time.monotonic()
        while not stop.is_set():
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed")

            # Fixed-rate schedule; a slow tick does not push the following ones back.
            next_at += self._interval
            if stop.wait(max(0.0, next_at - time.monotonic())):
                break
