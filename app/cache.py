"""
app/cache.py

In-process TTL cache for expensive aggregate results.

Entries expire at an absolute instant (``now + ttl``). Expired entries are
removed lazily on ``get`` and in bulk by ``purge_expired``, which the
scheduler runs periodically so keys that are never read again do not pile up.
"""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class _CacheEntry:
    value: Any
    expires_at: float


def _canonicalize(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _canonicalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_canonicalize(item) for item in value]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True, default=str))
    return value


def make_cache_key(namespace: str, payload: Mapping[str, Any] | None = None) -> str:
    """
    Build a deterministic cache key.

    Mapping keys are sorted and every sequence is sorted before serialization,
    so the same logical payload always yields the same key regardless of
    insertion or selection order.
    """

    normalized = _canonicalize(payload or {})
    serialized = json.dumps(normalized, sort_keys=True, separators=(",", ":"), default=str)
    return f"{namespace}:{serialized}"


class TTLCache:
    """
    String-keyed cache with per-entry expiry.

    ``None`` is reserved as the miss marker and must not be stored. Each
    operation holds the lock only for the dictionary access itself.
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = max(0.0, default_ttl_seconds)
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now < entry.expires_at:
                return entry.value
            del self._entries[key]
            return None

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        if value is None:
            raise ValueError("None cannot be cached; it marks a miss.")
        ttl = self._default_ttl if ttl_seconds is None else max(0.0, ttl_seconds)
        entry = _CacheEntry(value=value, expires_at=self._clock() + ttl)
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
