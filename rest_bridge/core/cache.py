import copy
import logging
import threading
import time
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: str
    path: str
    value: Any
    expires_at: float


def normalize_path(path: str) -> str:
    """Leading slash, no trailing slash (except for the root)."""
    path = "/" + path.strip().lstrip("/")
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def fingerprint(verb: str, path: str, query: Mapping[str, Any] | None = None) -> str:
    """Cache key for a request: verb, normalized path and sorted query string."""
    key = f"{verb.upper()} {normalize_path(path)}"
    if query:
        params = httpx.QueryParams(query)
        key += "?" + str(httpx.QueryParams(sorted(params.multi_items())))
    return key


def _under(path: str, prefix: str) -> bool:
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


class ResponseCache:
    """In-memory TTL cache for decoded GET responses."""

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        # Recent (generation, prefix) invalidations, newest last
        self._generation = 0
        self._invalidations: deque[tuple[int, str]] = deque(maxlen=256)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Any | None:
        """Return a copy of the cached value, or None on miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return copy.deepcopy(entry.value)

    @property
    def generation(self) -> int:
        """Counter bumped by every invalidation. Read it before sending a request."""
        with self._lock:
            return self._generation

    def put(self, key: str, value: Any, path: str, generation: int | None = None) -> None:
        """Store a value under key.

        When generation is given, the store is skipped if an invalidation
        covering path happened after that generation was read, so a response
        fetched before a write cannot be cached after it.
        """
        if self._ttl <= 0:
            return
        path = normalize_path(path)
        with self._lock:
            if generation is not None and self._invalidated_since(generation, path):
                logger.debug(f"Not caching {key}: {path} was invalidated while in flight")
                return
            self._entries.pop(key, None)
            if self._max_entries and len(self._entries) >= self._max_entries:
                # Fixed TTL, so insertion order is expiry order
                oldest = next(iter(self._entries))
                del self._entries[oldest]
            self._entries[key] = CacheEntry(
                key=key,
                path=path,
                value=copy.deepcopy(value),
                expires_at=self._clock() + self._ttl,
            )

    def invalidate_prefix(self, path_prefix: str) -> int:
        """Drop every entry whose path is the prefix or lies beneath it. Returns count."""
        prefix = normalize_path(path_prefix)
        with self._lock:
            self._record_invalidation(prefix)
            stale = [k for k, e in self._entries.items() if _under(e.path, prefix)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cache entries under {prefix}")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._record_invalidation("/")
            self._entries.clear()

    def _record_invalidation(self, prefix: str) -> None:
        self._generation += 1
        self._invalidations.append((self._generation, prefix))

    def _invalidated_since(self, generation: int, path: str) -> bool:
        if generation >= self._generation:
            return False
        oldest = self._invalidations[0][0]
        if oldest > generation + 1:
            # Log no longer reaches back that far
            return True
        return any(
            gen > generation and _under(path, prefix)
            for gen, prefix in self._invalidations
        )
