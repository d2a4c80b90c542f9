"""Unit tests for the in-memory counter store adapter."""

import threading
from unittest.mock import Mock

import pytest

from webrate.adapters.store.in_memory import InMemoryCounterStore
from webrate.core.errors import NoSuchKeyError


def test_unknown_key_raises_no_such_key() -> None:
    store = InMemoryCounterStore(clock=Mock(return_value=1000.0))

    with pytest.raises(NoSuchKeyError) as exc_info:
        store.incr("k", 60)

    assert exc_info.value.key == "k"


def test_reset_starts_window_at_one() -> None:
    store = InMemoryCounterStore(clock=Mock(return_value=1000.0))

    store.reset("k", 60)
    result = store.incr("k", 60)

    assert result.count == 2
    assert result.seconds_remaining == 60


def test_remaining_counts_down_and_expires() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryCounterStore(clock=clock)
    store.reset("k", 10)

    clock.return_value = 1004.5
    assert store.incr("k", 10).seconds_remaining == 6

    clock.return_value = 1010.0
    assert store.incr("k", 10).seconds_remaining <= 0


def test_reset_discards_previous_state() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryCounterStore(clock=clock)
    store.reset("k", 10)
    for _ in range(5):
        store.incr("k", 10)

    clock.return_value = 1020.0
    store.reset("k", 10)

    assert store.incr("k", 10).count == 2


def test_isolated_by_key() -> None:
    store = InMemoryCounterStore(clock=Mock(return_value=1000.0))
    store.reset("k1", 60)
    store.incr("k1", 60)

    with pytest.raises(NoSuchKeyError):
        store.incr("k2", 60)


def test_max_keys_evicts_least_recently_used() -> None:
    store = InMemoryCounterStore(max_keys=2, clock=Mock(return_value=1000.0))
    store.reset("a", 60)
    store.reset("b", 60)
    store.incr("a", 60)
    store.reset("c", 60)

    assert len(store) == 2
    assert store.evictions == 1
    assert store.incr("a", 60).count == 3
    with pytest.raises(NoSuchKeyError):
        store.incr("b", 60)


def test_purge_expired_removes_elapsed_windows() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryCounterStore(clock=clock)
    store.reset("old", 10)
    clock.return_value = 1005.0
    store.reset("new", 10)

    clock.return_value = 1010.0
    assert store.purge_expired(10) == 1

    with pytest.raises(NoSuchKeyError):
        store.incr("old", 10)
    assert store.incr("new", 10).count == 2


def test_reset_sweeps_elapsed_windows() -> None:
    clock = Mock(return_value=1000.0)
    store = InMemoryCounterStore(clock=clock)
    for i in range(50):
        store.reset(f"10.0.0.{i}", 10)

    clock.return_value = 1005.0
    store.reset("fresh", 10)
    assert len(store) == 51

    clock.return_value = 1012.0
    store.reset("late", 10)

    assert len(store) == 2
    assert store.evictions == 0
    with pytest.raises(NoSuchKeyError):
        store.incr("10.0.0.0", 10)
    assert store.incr("fresh", 10).count == 2


def test_invalid_max_keys() -> None:
    with pytest.raises(ValueError):
        InMemoryCounterStore(max_keys=0)


def test_concurrent_increments_are_not_lost() -> None:
    store = InMemoryCounterStore(clock=Mock(return_value=1000.0))
    store.reset("k", 60)
    counts: list[int] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(100):
            count = store.incr("k", 60).count
            with lock:
                counts.append(count)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(counts) == list(range(2, 802))
