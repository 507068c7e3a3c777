# tests/conftest.py

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace

import pytest

from timed_worker.core.worker import TimedWorker

from .fakes import FakeClock, FakeExecutionHost, ManualTickSource, MemoryStateStore, RecordingEventSink


@dataclass
class Harness:
    """A TimedWorker wired to deterministic fakes, plus handles on each fake."""

    worker: TimedWorker
    store: MemoryStateStore
    host: FakeExecutionHost
    ticks: ManualTickSource
    sink: RecordingEventSink
    clock: FakeClock

    def rebuild(self) -> "Harness":
        """Simulate a cold restart: fresh in-memory worker, same durable store."""
        return make_harness(store=self.store)


def make_harness(*, store: MemoryStateStore | None = None, host: FakeExecutionHost | None = None) -> Harness:
    store = store if store is not None else MemoryStateStore()
    host = host if host is not None else FakeExecutionHost()
    ticks = ManualTickSource()
    sink = RecordingEventSink()
    clock = FakeClock()
    worker = TimedWorker(store=store, host=host, ticks=ticks, sink=sink, clock=clock)
    return Harness(worker=worker, store=store, host=host, ticks=ticks, sink=sink, clock=clock)


@pytest.fixture()
def harness() -> Harness:
    return make_harness()


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with cli.bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="timed-worker-test",
        log_level="DEBUG",
        console_enabled=False,
        show_progress=True,
        data_dir=tmp_path,
        state_db_path=tmp_path / "state.sqlite3",
        tick_interval_ms=20,
        tick_interval_seconds=0.02,
        grant_budget_seconds=0.0,
        resume_window_seconds=0.0,
        min_resume_window_ms=0,
        resume_delay_seconds=0.0,
    )
