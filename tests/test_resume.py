# tests/test_resume.py

from __future__ import annotations

import threading

import pytest

from timed_worker.core.models import WorkerEvent
from timed_worker.host.resume import (
    PROCESSING_ID,
    LocalHostScheduler,
    LocalResumeWindow,
    ResumeCoordinator,
    ResumePolicy,
    register_resume_handler,
    schedule_resume,
)

from .conftest import make_harness
from .fakes import FakeResumeWindow, MemoryStateStore


def test_nothing_pending_reports_success() -> None:
    h = make_harness()
    window = FakeResumeWindow(remaining=30.0)

    assert ResumeCoordinator(h.worker).handle(window) is True
    assert window.completed == [True]
    assert window.expiration_handler is not None
    assert h.host.begun == []


def test_attempt_and_let_expire_by_default() -> None:
    h = make_harness(store=MemoryStateStore(remaining_ms=10_000, task_id="x"))
    window = FakeResumeWindow(remaining=0.0)

    # Even a zero-length window gets an attempt; the grant is taken and ticks are armed.
    assert ResumeCoordinator(h.worker).handle(window) is False
    assert window.completed == [False]
    assert h.worker.is_running
    assert h.host.begun == [1]

    # Host closes the window -> worker expires, state stays persisted.
    assert window.expiration_handler is not None
    window.expiration_handler()
    assert h.sink.of(WorkerEvent.EXPIRED) == [{"taskId": "x"}]
    assert h.store.load().pending


def test_skip_if_window_shorter_than_minimum() -> None:
    h = make_harness(store=MemoryStateStore(remaining_ms=10_000, task_id="x"))
    window = FakeResumeWindow(remaining=0.5)
    policy = ResumePolicy(min_window_ms=1000)

    assert ResumeCoordinator(h.worker, policy).handle(window) is False
    assert window.completed == [False]
    assert not h.worker.is_running
    assert h.host.begun == []
    assert h.ticks.arm_count == 0
    assert h.store.load().remaining_ms == 10_000


def test_minimum_window_is_ignored_when_host_reports_no_limit() -> None:
    h = make_harness(store=MemoryStateStore(remaining_ms=1000, task_id="x"))
    window = FakeResumeWindow(remaining=None)
    policy = ResumePolicy(min_window_ms=1000, window_seconds=0.0)

    ResumeCoordinator(h.worker, policy).handle(window)
    assert h.worker.is_running


def test_coordinator_reports_success_when_countdown_finishes() -> None:
    h = make_harness(store=MemoryStateStore(remaining_ms=500, task_id="x"))
    window = FakeResumeWindow(remaining=5.0)
    result: list[bool] = []

    t = threading.Thread(target=lambda: result.append(ResumeCoordinator(h.worker).handle(window)))
    t.start()

    # Drive the countdown from the test thread while the coordinator waits.
    for _ in range(200):
        if h.worker.is_running:
            break
        t.join(0.01)
    h.clock.advance_ms(500)
    h.ticks.fire()

    t.join(5.0)
    assert result == [True]
    assert window.completed == [True]
    assert h.sink.of(WorkerEvent.COMPLETED) == [{"taskId": "x", "fromUi": False}]


def test_local_window_expires_and_calls_handler_once() -> None:
    window = LocalResumeWindow(0.05)
    fired: list[int] = []
    done = threading.Event()
    window.set_expiration_handler(lambda: (fired.append(1), done.set()))

    assert window.remaining_seconds() == 0.05
    window.open()
    assert done.wait(2.0)
    assert fired == [1]
    assert window.remaining_seconds() <= 0.01


def test_local_window_completion_cancels_expiry() -> None:
    window = LocalResumeWindow(0.05)
    fired = threading.Event()
    window.set_expiration_handler(fired.set)
    window.open()
    window.set_task_completed(True)
    window.set_task_completed(False)

    assert window.success is True
    assert window.wait(0)
    assert not fired.wait(0.15)


def test_unbounded_local_window() -> None:
    window = LocalResumeWindow(None)
    window.open()
    assert window.remaining_seconds() is None


def test_scheduler_registers_once_per_identifier() -> None:
    scheduler = LocalHostScheduler()
    scheduler.register(PROCESSING_ID, lambda w: None)
    with pytest.raises(ValueError):
        scheduler.register(PROCESSING_ID, lambda w: None)


def test_scheduler_unknown_identifier() -> None:
    with pytest.raises(KeyError):
        LocalHostScheduler().submit("nope", earliest_seconds=0)


def test_submit_launches_registered_coordinator() -> None:
    h = make_harness()
    scheduler = LocalHostScheduler(window_seconds=None)
    register_resume_handler(scheduler, ResumeCoordinator(h.worker))

    window = schedule_resume(scheduler, earliest_seconds=0)
    assert isinstance(window, LocalResumeWindow)
    assert window.wait(2.0)
    assert window.success is True


def test_shutdown_cancels_pending_launches() -> None:
    launched = threading.Event()
    scheduler = LocalHostScheduler()
    scheduler.register(PROCESSING_ID, lambda w: launched.set())

    schedule_resume(scheduler, earliest_seconds=0.1)
    scheduler.shutdown()
    assert not launched.wait(0.3)


def test_failing_launch_handler_reports_failure() -> None:
    scheduler = LocalHostScheduler()

    def boom(window) -> None:
        raise RuntimeError("boom")

    scheduler.register(PROCESSING_ID, boom)
    window = scheduler.submit(PROCESSING_ID, earliest_seconds=0)
    assert window.wait(2.0)
    assert window.success is False


def test_schedule_resume_without_registration_returns_none() -> None:
    assert schedule_resume(LocalHostScheduler(), earliest_seconds=0) is None
