from __future__ import annotations

import threading
import time

from mml_backend.utils.concurrency import map_settled


def test_map_settled_preserves_input_order() -> None:
    def slow_double(value: int) -> int:
        time.sleep(0.01 * (5 - value))
        return value * 2

    results = map_settled(slow_double, [1, 2, 3, 4], concurrency=4)

    assert [r.value for r in results] == [2, 4, 6, 8]
    assert all(r.ok for r in results)


def test_map_settled_captures_failures_per_item() -> None:
    def maybe_fail(value: int) -> int:
        if value == 2:
            raise ValueError("boom")
        return value

    results = map_settled(maybe_fail, [1, 2, 3])

    assert [r.ok for r in results] == [True, False, True]
    assert isinstance(results[1].error, ValueError)


def test_map_settled_limits_in_flight_workers() -> None:
    lock = threading.Lock()
    active = 0
    peak = 0

    def track(_value: int) -> None:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.02)
        with lock:
            active -= 1

    map_settled(track, range(10), concurrency=3)

    assert peak <= 3


def test_map_settled_empty_input() -> None:
    assert map_settled(lambda value: value, []) == []


def test_map_settled_treats_non_positive_concurrency_as_one() -> None:
    lock = threading.Lock()
    active = 0
    peak = 0

    def track(value: int) -> int:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01)
        with lock:
            active -= 1
        return value

    results = map_settled(track, [1, 2, 3], concurrency=0)

    assert [r.value for r in results] == [1, 2, 3]
    assert peak == 1
