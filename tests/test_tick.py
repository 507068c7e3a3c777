# tests/test_tick.py

from __future__ import annotations

import threading
import time

from timed_worker.host.tick import ThreadTickSource


def test_fires_immediately_then_repeats() -> None:
    ticks = ThreadTickSource(0.02)
    count = 0
    enough = threading.Event()

    def on_tick() -> None:
        nonlocal count
        count += 1
        if count >= 3:
            enough.set()

    ticks.arm(on_tick)
    assert ticks.armed
    assert enough.wait(2.0)
    ticks.cancel()
    assert not ticks.armed


def test_cancel_stops_firing() -> None:
    ticks = ThreadTickSource(0.02)
    fired: list[float] = []
    ticks.arm(lambda: fired.append(time.monotonic()))
    time.sleep(0.05)
    ticks.cancel()
    time.sleep(0.03)
    n = len(fired)
    time.sleep(0.1)
    assert len(fired) == n


def test_rearm_replaces_previous_callback() -> None:
    ticks = ThreadTickSource(0.02)
    a: list[int] = []
    b: list[int] = []
    ticks.arm(lambda: a.append(1))
    time.sleep(0.05)
    ticks.arm(lambda: b.append(1))
    time.sleep(0.03)
    n_a = len(a)
    time.sleep(0.1)
    ticks.cancel()

    assert len(a) == n_a
    assert b


def test_cancel_from_inside_callback_does_not_deadlock() -> None:
    ticks = ThreadTickSource(0.02)
    done = threading.Event()

    def on_tick() -> None:
        ticks.cancel()
        done.set()

    ticks.arm(on_tick)
    assert done.wait(2.0)
    assert not ticks.armed


def test_callback_exception_keeps_ticking() -> None:
    ticks = ThreadTickSource(0.01)
    calls: list[int] = []
    enough = threading.Event()

    def on_tick() -> None:
        calls.append(1)
        if len(calls) >= 3:
            enough.set()
        raise RuntimeError("boom")

    ticks.arm(on_tick)
    assert enough.wait(2.0)
    ticks.cancel()
