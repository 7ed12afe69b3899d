from __future__ import annotations

import copy
import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Sequence

from .settings import CacheSettings

logger = logging.getLogger(__name__)


def cache_key(namespace: str, limit: int, query_vector: Sequence[float] | None, **extra: Any) -> str:
    """Deterministic fingerprint of a search request.

    `extra` holds any further request options that change the response;
    values must be JSON-serializable.
    """
    payload = {
        "namespace": namespace,
        "limit": limit,
        "vector": [float(value) for value in query_vector] if query_vector is not None else None,
        **extra,
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class QueryResultCache:
    """Bounded, time-expiring cache of search responses.

    Values are deep-copied on write and on read, so an entry never changes
    after it is stored. Expired entries are purged lazily on every read and
    write; when the capacity is exceeded the oldest entry is evicted.
    """

    def __init__(self, settings: CacheSettings | None = None, clock: Callable[[], float] = time.monotonic):
        self.settings = settings or CacheSettings()
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Any | None:
        with self._lock:
            self._purge_expired()
            entry = self._entries.get(key)
            if entry is None:
                return None
            return copy.deepcopy(entry[1])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._purge_expired()
            self._entries.pop(key, None)
            self._entries[key] = (self._clock() + self.settings.ttl_seconds, copy.deepcopy(value))
            while len(self._entries) > self.settings.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted oldest cache entry %s", evicted[:12])

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
