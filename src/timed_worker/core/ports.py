# src/timed_worker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the worker core.

The core depends on Protocols instead of concrete implementations.
This keeps the host environment (grants, timers, storage, transport) swappable
and lets tests drive the state machine with in-memory fakes.
"""

from collections.abc import Callable
from typing import Any, Protocol

from .models import PersistedState

Clock = Callable[[], float]
# Monotonic seconds, e.g. time.monotonic.

EventPayload = dict[str, Any]


class StateStore(Protocol):
    """Durable storage for the two persisted fields (remainingMs, taskId)."""

    def load(self) -> PersistedState: ...
    def save(self, remaining_ms: int, task_id: str | None) -> None: ...
    def clear(self) -> None: ...


class ExecutionHost(Protocol):
    """
    Host-side port: how the worker asks the environment for more runnable time.

    begin_grant returns an opaque handle or raises GrantDenied.
    The host may call on_expire at any time (from any thread) to revoke the grant.
    """

    def begin_grant(self, name: str, on_expire: Callable[[], None]) -> Any: ...
    def end_grant(self, handle: Any) -> None: ...


class TickSource(Protocol):
    """Repeating timer. arm() replaces any previous arming; cancel() must not block."""

    @property
    def armed(self) -> bool: ...

    def arm(self, callback: Callable[[], None]) -> None: ...
    def cancel(self) -> None: ...


class EventSink(Protocol):
    """
    Connector-side port: where lifecycle events go.

    emit() must not block; thread hopping (if any) is the adapter's business
    and must keep FIFO order.
    """

    def emit(self, event: str, payload: EventPayload) -> None: ...
