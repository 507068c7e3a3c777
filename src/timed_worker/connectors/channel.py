# src/timed_worker/connectors/channel.py

from __future__ import annotations

"""
Method-call side of the bridge.

A transport (platform channel, RPC, console) decodes a call into (method, arguments)
and hands it to MethodChannel.handle(). Results are plain JSON-friendly values; failures
are ChannelError subclasses carrying a stable `code` the transport can forward.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..core.errors import ArgumentError, MethodNotImplementedError
from ..core.worker import TimedWorker, validate_start_args

CHANNEL_NAME = "timed_worker/channel"

Arguments = Mapping[str, Any] | None
MethodHandler = Callable[[TimedWorker, Arguments], Any]

logger = logging.getLogger(__name__)


def _from_ui(args: Arguments) -> bool:
    if not args:
        return False
    raw = args.get("fromUi", False)
    if not isinstance(raw, bool):
        raise ArgumentError("fromUi must be a boolean", details={"fromUi": raw})
    return raw


def call_start(worker: TimedWorker, args: Arguments) -> None:
    if not isinstance(args, Mapping):
        raise ArgumentError("Missing args")
    task_id, duration_ms = validate_start_args(args.get("taskId"), args.get("durationMs"))
    worker.start(task_id, duration_ms)


def call_cancel(worker: TimedWorker, args: Arguments) -> None:
    worker.cancel(from_ui=_from_ui(args))


def call_status(worker: TimedWorker, args: Arguments) -> dict[str, Any]:
    return worker.status().to_dict()


def call_completed(worker: TimedWorker, args: Arguments) -> None:
    worker.complete(from_ui=_from_ui(args))


class MethodChannel:
    """Method registry bound to one worker (start / cancel / status / completed)."""

    def __init__(self, worker: TimedWorker, *, name: str = CHANNEL_NAME) -> None:
        self.name = name
        self._worker = worker
        self._handlers: dict[str, MethodHandler] = {}

    @classmethod
    def default(cls, worker: TimedWorker) -> MethodChannel:
        channel = cls(worker)
        channel.register("start", call_start)
        channel.register("cancel", call_cancel)
        channel.register("status", call_status)
        channel.register("completed", call_completed)
        return channel

    @property
    def methods(self) -> list[str]:
        return sorted(self._handlers)

    def register(self, method: str, handler: MethodHandler) -> None:
        self._handlers[method] = handler

    def handle(self, method: str, arguments: Arguments = None) -> Any:
        handler = self._handlers.get(method)
        if handler is None:
            raise MethodNotImplementedError(f"Unknown method: {method}")

        logger.debug("call %s args=%s", method, arguments)
        return handler(self._worker, arguments)
