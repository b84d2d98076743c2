"""
Response Cache

In-memory TTL cache for idempotent provider results (text generation,
embeddings, search). Entries are keyed by a SHA256 of the operation type,
use case, input and call-level overrides so that identical requests hit
the same slot.

Expiry is lazy: an entry is dropped the first time it is read after its
TTL elapsed. There is no size bound; call purge_expired() for explicit
housekeeping in long-running hosts.
"""

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """
    Cached value with its insertion time.

    Attributes:
        data: The stored provider response
        timestamp: Unix timestamp (seconds) when the entry was written
        ttl_seconds: Lifetime of the entry in seconds
    """

    data: Any
    timestamp: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        """An entry is still fresh at exactly ttl_seconds of age."""
        return now - self.timestamp > self.ttl_seconds


class ResponseCache:
    """
    Thread-safe keyed TTL store.

    Example:
        cache = ResponseCache()
        key = ResponseCache.make_key("generate", UseCase.RAG_QA, "prompt", {})
        cache.set(key, response, ttl_seconds=300)
        cached = cache.get(key)  # response until 300s have passed
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        Args:
            clock: Source of the current Unix time in seconds.
                   Injectable so tests can advance time deterministically.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        """
        Return the cached value for key, or None on a miss.

        Expired entries are deleted and reported as misses.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.data

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store value under key, replacing any previous entry."""
        with self._lock:
            self._entries[key] = CacheEntry(
                data=value,
                timestamp=self._clock(),
                ttl_seconds=ttl_seconds,
            )

    def delete(self, key: str) -> bool:
        """Remove key; returns True if an entry was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """
        Delete all expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    @staticmethod
    def make_key(
        operation: str,
        use_case: Any,
        payload: Any,
        options: dict[str, Any] | None = None,
    ) -> str:
        """
        Build a deterministic cache key.

        Args:
            operation: Operation type (e.g., "generate", "embed", "search")
            use_case: Use case the call is routed for
            payload: Prompt, text or query
            options: Call-level overrides that change the result

        Returns:
            Hex SHA256 digest of the canonical JSON encoding
        """
        raw = json.dumps(
            {
                "op": operation,
                "use_case": getattr(use_case, "value", use_case),
                "payload": payload,
                "options": options or {},
            },
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(raw.encode()).hexdigest()
