# tests/test_state_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

from timed_worker.storage.state_store import REMAINING_MS_KEY, TASK_ID_KEY, SqliteStateStore


def test_empty_store_has_nothing_pending(tmp_path: Path) -> None:
    store = SqliteStateStore(tmp_path / "state.sqlite3")
    persisted = store.load()
    assert persisted.remaining_ms == 0
    assert persisted.task_id is None
    assert not persisted.pending


def test_save_survives_reopen(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "state.sqlite3"
    SqliteStateStore(db).save(5000, "x")

    reopened = SqliteStateStore(db)
    persisted = reopened.load()
    assert persisted.remaining_ms == 5000
    assert persisted.task_id == "x"
    assert persisted.pending


def test_save_none_task_removes_key(tmp_path: Path) -> None:
    db = tmp_path / "state.sqlite3"
    store = SqliteStateStore(db)
    store.save(1200, "t")
    store.save(800, "t")
    store.clear()

    assert store.load().remaining_ms == 0
    assert store.load().task_id is None

    conn = sqlite3.connect(db)
    try:
        keys = {row[0] for row in conn.execute("SELECT key FROM worker_state")}
    finally:
        conn.close()
    assert keys == {REMAINING_MS_KEY}


def test_malformed_value_reads_as_zero(tmp_path: Path) -> None:
    db = tmp_path / "state.sqlite3"
    store = SqliteStateStore(db)
    store.save(100, "t")

    conn = sqlite3.connect(db)
    try:
        conn.execute("UPDATE worker_state SET value = 'garbage' WHERE key = ?", (REMAINING_MS_KEY,))
        conn.commit()
    finally:
        conn.close()

    persisted = store.load()
    assert persisted.remaining_ms == 0
    assert persisted.task_id == "t"
    assert not persisted.pending


def test_negative_remaining_is_clamped(tmp_path: Path) -> None:
    store = SqliteStateStore(tmp_path / "state.sqlite3")
    store.save(-10, "t")
    assert store.load().remaining_ms == 0


def test_task_id_key_layout(tmp_path: Path) -> None:
    db = tmp_path / "state.sqlite3"
    SqliteStateStore(db).save(42, "abc")

    conn = sqlite3.connect(db)
    try:
        rows = dict(conn.execute("SELECT key, value FROM worker_state").fetchall())
    finally:
        conn.close()
    assert rows == {REMAINING_MS_KEY: "42", TASK_ID_KEY: "abc"}
