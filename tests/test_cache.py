"""Tests for the TTL response cache and its single-flight behaviour."""

from __future__ import annotations

import threading
from typing import List

import pytest

from route_optimizer.services.cache import ResultCache


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_get_or_compute_reuses_cached_value() -> None:
    cache = ResultCache(ttl_seconds=60, max_entries=8)
    calls: List[int] = []

    def factory() -> dict:
        calls.append(1)
        return {"value": len(calls)}

    first = cache.get_or_compute("k", factory)
    second = cache.get_or_compute("k", factory)

    assert first is second
    assert calls == [1]
    assert len(cache) == 1


def test_values_rejected_by_should_cache_are_recomputed() -> None:
    cache = ResultCache(ttl_seconds=60, max_entries=8)
    calls: List[int] = []

    def factory() -> list:
        calls.append(1)
        return []

    cache.get_or_compute("k", factory, should_cache=bool)
    cache.get_or_compute("k", factory, should_cache=bool)

    assert len(calls) == 2
    assert len(cache) == 0


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache = ResultCache(ttl_seconds=10, max_entries=8, timer=clock)
    cache.set("k", "old")
    clock.now = 5.0
    assert cache.get("k") == "old"
    clock.now = 11.0
    assert cache.get("k") is None
    assert cache.get_or_compute("k", lambda: "new") == "new"


def test_oldest_entries_are_evicted_at_capacity() -> None:
    cache = ResultCache(ttl_seconds=60, max_entries=2)
    for key in ("a", "b", "c"):
        cache.set(key, key.upper())
    assert len(cache) == 2
    assert cache.get("c") == "C"


def test_factory_errors_propagate_and_are_not_cached() -> None:
    cache = ResultCache(ttl_seconds=60, max_entries=8)

    def boom() -> None:
        raise ValueError("upstream broke")

    with pytest.raises(ValueError, match="upstream broke"):
        cache.get_or_compute("k", boom)
    assert cache.get_or_compute("k", lambda: "recovered") == "recovered"


def test_concurrent_requests_share_one_computation() -> None:
    cache = ResultCache(ttl_seconds=60, max_entries=8)
    started = threading.Event()
    release = threading.Event()
    calls: List[int] = []
    results: List[str] = []

    def slow_factory() -> str:
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return "payload"

    def worker() -> None:
        results.append(cache.get_or_compute("k", slow_factory))

    leader = threading.Thread(target=worker)
    leader.start()
    assert started.wait(timeout=5)
    followers = [threading.Thread(target=worker) for _ in range(3)]
    for thread in followers:
        thread.start()
    release.set()
    for thread in [leader, *followers]:
        thread.join(timeout=5)

    assert calls == [1]
    assert results == ["payload"] * 4


def test_clear_drops_everything() -> None:
    cache = ResultCache(ttl_seconds=60, max_entries=8)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.clear()
    assert len(cache) == 0
    assert cache.get("a") is None
