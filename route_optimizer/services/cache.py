"""Short-lived response cache shared by concurrent requests."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional

from cachetools import TTLCache

from ..config import CACHE_MAX_ENTRIES, CACHE_TTL_SECONDS

LOGGER = logging.getLogger(__name__)


@dataclass
class _InFlight:
    event: threading.Event = field(default_factory=threading.Event)
    value: Any = None
    error: Optional[BaseException] = None


class ResultCache:
    """Thread-safe TTL+LRU cache with single-flight computation per key.

    Concurrent ``get_or_compute`` calls for the same key share one factory
    invocation; the others block until it finishes and receive its value (or
    its exception).
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_entries: int = CACHE_MAX_ENTRIES,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store: TTLCache[Hashable, Any] = TTLCache(
            maxsize=max(1, max_entries), ttl=max(0.0, ttl_seconds), timer=timer
        )
        self._lock = threading.RLock()
        self._inflight: Dict[Hashable, _InFlight] = {}

    def get(self, key: Hashable) -> Any:
        with self._lock:
            return self._store.get(key)

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._store[key] = value

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            self._store.expire()
            return len(self._store)

    def get_or_compute(
        self,
        key: Hashable,
        factory: Callable[[], Any],
        *,
        should_cache: Callable[[Any], bool] = lambda _value: True,
    ) -> Any:
        with self._lock:
            if key in self._store:
                LOGGER.debug("Cache hit key=%s", key)
                return self._store[key]
            flight = self._inflight.get(key)
            leader = flight is None
            if leader:
                flight = _InFlight()
                self._inflight[key] = flight

        if not leader:
            LOGGER.debug("Waiting on in-flight computation key=%s", key)
            flight.event.wait()
            if flight.error is not None:
                raise flight.error
            return flight.value

        try:
            value = factory()
        except BaseException as exc:
            flight.error = exc
            with self._lock:
                self._inflight.pop(key, None)
            flight.event.set()
            raise

        flight.value = value
        with self._lock:
            if should_cache(value):
                self._store[key] = value
            self._inflight.pop(key, None)
        flight.event.set()
        return value
