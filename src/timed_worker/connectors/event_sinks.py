# src/timed_worker/connectors/event_sinks.py

from __future__ import annotations

"""
EventSink adapters.

The worker hands events over while holding its lock; these adapters move delivery onto
the execution context the receiver needs, without reordering.
"""

import asyncio
import logging
import queue
import threading
from collections.abc import Callable
from typing import Any

from ..core.models import WorkerEvent
from ..core.ports import EventPayload

logger = logging.getLogger(__name__)

Deliver = Callable[[str, EventPayload], Any]

_STOP = object()


class QueueEventSink:
    """
    FIFO hand-off to a single dispatcher thread.

    emit() only enqueues, so it never blocks the worker. Delivery failures are logged
    and do not stop the dispatcher.
    """

    def __init__(self, deliver: Deliver, *, name: str = "timed-worker-events") -> None:
        self._deliver = deliver
        self._queue: queue.Queue[Any] = queue.Queue()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def emit(self, event: str, payload: EventPayload) -> None:
        if self._closed:
            logger.debug("Event dropped after close: %s", event)
            return
        self._queue.put((event, dict(payload)))

    def flush(self, timeout: float | None = None) -> None:
        """Block until everything emitted so far was delivered (best-effort with timeout)."""
        if self._closed:
            return
        done = threading.Event()
        self._queue.put(done)
        done.wait(timeout)

    def close(self, timeout: float | None = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            if isinstance(item, threading.Event):
                item.set()
                continue

            event, payload = item
            try:
                self._deliver(event, payload)
            except Exception:
                logger.exception("Event delivery failed event=%s", event)


class AsyncioEventSink:
    """Deliver on an asyncio loop; call_soon_threadsafe keeps FIFO order."""

    def __init__(self, loop: asyncio.AbstractEventLoop, deliver: Deliver) -> None:
        self._loop = loop
        self._deliver = deliver

    def emit(self, event: str, payload: EventPayload) -> None:
        try:
            self._loop.call_soon_threadsafe(self._dispatch, event, dict(payload))
        except RuntimeError:
            # Loop already closed (shutdown race).
            logger.debug("Event dropped, loop closed: %s", event)

    def _dispatch(self, event: str, payload: EventPayload) -> None:
        try:
            self._deliver(event, payload)
        except Exception:
            logger.exception("Event delivery failed event=%s", event)


class LoggingEventSink:
    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, event: str, payload: EventPayload) -> None:
        level = logging.DEBUG if event == WorkerEvent.PROGRESS else logging.INFO
        self._log.log(level, "event %s %s", event, payload)


class FanOutEventSink:
    """Emit to several sinks in order; one failing sink does not starve the others."""

    def __init__(self, *sinks: Any) -> None:
        self._sinks = list(sinks)

    def emit(self, event: str, payload: EventPayload) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event, payload)
            except Exception:
                logger.exception("Event sink %r failed event=%s", sink, event)
