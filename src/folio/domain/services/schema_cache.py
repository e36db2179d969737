"""Schema cache service with TTL support.

Keeps the field definitions of recently used collections in memory so that
each composition request does not have to reload the schema. Entries expire
after a configurable TTL and are invalidated explicitly whenever a
collection or one of its fields changes.
Thread-safe implementation for concurrent access.
"""

import threading
import time
from dataclasses import dataclass

from folio.domain.entities.collection import Field

CacheKey = tuple[str, str]


@dataclass
class CacheEntry:
    """Cache entry with TTL support.

    Attributes:
        fields: Field definitions of one collection.
        expires_at: Monotonic clock time when this entry expires.
    """

    fields: tuple[Field, ...]
    expires_at: float


class SchemaCache:
    """Thread-safe TTL-based cache of collection fields.

    Keys are ``(workspace_id, collection_id)`` pairs.
    """

    def __init__(self, ttl_seconds: float = 60):
        """Initialize the cache.

        Args:
            ttl_seconds: Time-to-live for cache entries in seconds (default: 1 minute).
        """
        self.ttl_seconds = ttl_seconds
        self._cache: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.RLock()

    def get(self, workspace_id: str, collection_id: str) -> tuple[Field, ...] | None:
        """Get cached fields of a collection.

        Returns:
            Cached fields if found and not expired, None otherwise.
        """
        key = (workspace_id, collection_id)

        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if time.monotonic() >= entry.expires_at:
                del self._cache[key]
                return None

            return entry.fields

    def set(self, workspace_id: str, collection_id: str, fields: tuple[Field, ...]) -> None:
        """Store the fields of a collection."""
        expires_at = time.monotonic() + self.ttl_seconds

        with self._lock:
            self._cache[(workspace_id, collection_id)] = CacheEntry(
                fields=tuple(fields), expires_at=expires_at
            )

    def invalidate_collection(self, workspace_id: str, collection_id: str) -> None:
        """Drop the cached schema of one collection."""
        with self._lock:
            self._cache.pop((workspace_id, collection_id), None)

    def invalidate_workspace(self, workspace_id: str) -> None:
        """Drop every cached schema of a workspace."""
        with self._lock:
            keys_to_delete = [key for key in self._cache if key[0] == workspace_id]
            for key in keys_to_delete:
                del self._cache[key]

    def invalidate_all(self) -> None:
        """Clear entire cache."""
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """Remove all expired entries from cache.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = time.monotonic()
            keys_to_delete = [key for key, entry in self._cache.items() if now >= entry.expires_at]
            for key in keys_to_delete:
                del self._cache[key]
            return len(keys_to_delete)

    def size(self) -> int:
        with self._lock:
            return len(self._cache)
