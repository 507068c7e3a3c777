# src/timed_worker/core/grant.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .errors import GrantDenied
from .ports import ExecutionHost

logger = logging.getLogger(__name__)


class ExecutionGrant:
    """
    Ownership wrapper around a host execution grant.

    - acquire() is idempotent while a handle is held
    - release() is idempotent and tolerates a handle the host already revoked
    - a denied grant is logged and reported as False; the countdown keeps going without it

    Not synchronized on its own: the worker calls it under its lock.
    """

    def __init__(self, host: ExecutionHost, *, name: str = "TimedWorker") -> None:
        self._host = host
        self._name = name
        self._handle: Any = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self, on_expire: Callable[[], None]) -> bool:
        if self._handle is not None:
            return True

        try:
            handle = self._host.begin_grant(self._name, on_expire)
        except GrantDenied as e:
            logger.warning("Execution grant denied (%s); countdown continues without it.", e)
            return False

        if handle is None:
            logger.warning("Execution grant denied (no handle); countdown continues without it.")
            return False

        self._handle = handle
        logger.debug("Execution grant acquired handle=%r", handle)
        return True

    def release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            self._host.end_grant(handle)
            logger.debug("Execution grant released handle=%r", handle)
        except Exception:
            logger.exception("end_grant failed handle=%r", handle)
