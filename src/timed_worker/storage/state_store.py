# src/timed_worker/storage/state_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

from ..core.models import PersistedState

logger = logging.getLogger(__name__)

REMAINING_MS_KEY = "tw.remainingMs"
TASK_ID_KEY = "tw.taskId"


class SqliteStateStore:
    """
    SQLite key/value store for the worker's durable fields.

    Layout:
    - tw.remainingMs -> integer as text (0 means nothing pending)
    - tw.taskId      -> string, row absent when there is no task

    Thread-safety:
    - each method opens its own SQLite connection
    - save() writes both keys in one transaction
    """

    def __init__(self, db_path: str | Path = "state.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("StateStore ready db=%s pending=%s", self._db_path, self.load().pending)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS worker_state (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _to_int(raw: str | None) -> int:
        if raw is None:
            return 0
        try:
            return max(0, int(raw))
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed %s value %r", REMAINING_MS_KEY, raw)
            return 0

    # ---- public API ----

    def load(self) -> PersistedState:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT key, value FROM worker_state WHERE key IN (?, ?)",
                (REMAINING_MS_KEY, TASK_ID_KEY),
            ).fetchall()
        finally:
            conn.close()

        values = {row["key"]: row["value"] for row in rows}
        task_id = values.get(TASK_ID_KEY) or None
        return PersistedState(
            remaining_ms=self._to_int(values.get(REMAINING_MS_KEY)),
            task_id=str(task_id) if task_id is not None else None,
        )

    def save(self, remaining_ms: int, task_id: str | None) -> None:
        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO worker_state(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (REMAINING_MS_KEY, str(max(0, int(remaining_ms))), now),
            )
            if task_id is None:
                conn.execute("DELETE FROM worker_state WHERE key = ?", (TASK_ID_KEY,))
            else:
                conn.execute(
                    """
                    INSERT INTO worker_state(key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (TASK_ID_KEY, task_id, now),
                )
            conn.commit()
        finally:
            conn.close()

    def clear(self) -> None:
        self.save(0, None)
