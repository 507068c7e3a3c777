# src/timed_worker/host/grant.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _LocalGrant:
    grant_id: int
    name: str
    timer: threading.Timer | None = None


class LocalExecutionHost:
    """
    Process-local ExecutionHost.

    Mimics a mobile OS background-time budget:
    - budget_seconds <= 0: grants never expire
    - otherwise a grant is revoked after budget_seconds and on_expire is called once

    Handles are plain ints; ending an unknown or already revoked handle is a no-op.
    """

    def __init__(self, budget_seconds: float = 30.0) -> None:
        self._budget = float(budget_seconds)
        self._lock = threading.Lock()
        self._next_id = 0
        self._active: dict[int, _LocalGrant] = {}

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    def begin_grant(self, name: str, on_expire: Callable[[], None]) -> int:
        with self._lock:
            self._next_id += 1
            grant = _LocalGrant(grant_id=self._next_id, name=name)
            if self._budget > 0:
                grant.timer = threading.Timer(self._budget, self._revoke, args=(grant, on_expire))
                grant.timer.daemon = True
            self._active[grant.grant_id] = grant

        if grant.timer is not None:
            grant.timer.start()
        logger.debug("Grant %s (%s) begun budget=%ss", grant.grant_id, name, self._budget)
        return grant.grant_id

    def end_grant(self, handle: int) -> None:
        with self._lock:
            grant = self._active.pop(handle, None)
        if grant is None:
            return
        if grant.timer is not None:
            grant.timer.cancel()
        logger.debug("Grant %s (%s) ended", grant.grant_id, grant.name)

    def _revoke(self, grant: _LocalGrant, on_expire: Callable[[], None]) -> None:
        with self._lock:
            if self._active.pop(grant.grant_id, None) is None:
                return

        logger.warning("Grant %s (%s) revoked after %ss", grant.grant_id, grant.name, self._budget)
        try:
            on_expire()
        except Exception:
            logger.exception("Grant expiration handler failed grant=%s", grant.grant_id)
