"""Process-local response cache with lazy TTL eviction."""

import hashlib
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

DEFAULT_TTL_SECONDS = 12 * 60 * 60


class Cache(Protocol):
    """Cache interface for upstream payloads."""

    def get(self, key: str) -> object | None:
        """Return a cached payload if present and not expired."""

    def put(self, key: str, payload: object) -> None:
        """Store a payload under `key`."""


@dataclass
class CacheEntry:
    key: str
    created_at: float
    payload: object


class ResponseCache(Cache):
    """In-memory cache; entries expire on read once older than the TTL."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        """Return a cached payload if it hasn't expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self.ttl_seconds:
                self._entries.pop(key, None)
                return None
            return entry.payload

    def put(self, key: str, payload: object) -> None:
        """Store a payload stamped with the current time."""
        entry = CacheEntry(key=key, created_at=self._clock(), payload=payload)
        with self._lock:
            self._entries[key] = entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def image_cache_key(image_bytes: bytes) -> str:
    """Key an image by the SHA-256 of its bytes."""
    return f"image:{hashlib.sha256(image_bytes).hexdigest()}"


def external_cache_key(kind: str, identifier: str) -> str:
    """Key an upstream lookup by an external identifier."""
    return f"{kind}:{identifier.strip().lower()}"
