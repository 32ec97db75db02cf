"""
Key-value storage for persisted client state.

This module defines the storage protocol the persisted state synchronizer
writes through and a lightweight in-memory backend. Values are the
serialized JSON documents; backends never interpret them.
"""
from typing import Any, Dict, Optional, Protocol

import structlog

from monitoring.persistence_metrics import track_storage_operation

logger = structlog.get_logger()


class Storage(Protocol):
    """Asynchronous key-value storage of serialized records."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> bool:
        ...

    async def delete(self, key: str) -> bool:
        ...


class MemoryStorage:
    """
    In-memory storage backend.

    Useful for tests and for clients that don't need state to survive a
    restart. Records are kept until deleted or flushed.
    """

    backend = "memory"

    def __init__(self, max_size: int = 1000):
        """
        Initialize the storage.

        Args:
            max_size: Maximum number of records to keep; the oldest record
                is dropped when a new key would exceed it
        """
        self._records: Dict[str, str] = {}
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    @track_storage_operation("get", backend="memory")
    async def get(self, key: str) -> Optional[str]:
        """
        Get a record.

        Args:
            key: Storage key to retrieve

        Returns:
            The stored value or None if not found
        """
        if key not in self._records:
            self._misses += 1
            return None

        self._hits += 1
        return self._records[key]

    @track_storage_operation("set")
    async def set(self, key: str, value: str) -> bool:
        """
        Store a record, replacing any previous value.

        Args:
            key: Storage key
            value: Serialized record

        Returns:
            True if successful
        """
        if len(self._records) >= self._max_size and key not in self._records:
            # dicts keep insertion order so the first key is the oldest
            oldest_key = next(iter(self._records))
            del self._records[oldest_key]
            logger.debug("storage_record_evicted", key=oldest_key)

        self._records.pop(key, None)
        self._records[key] = value
        return True

    @track_storage_operation("delete")
    async def delete(self, key: str) -> bool:
        """
        Delete a record.

        Returns:
            True if deleted, False if key not found
        """
        return self._records.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self._records

    async def flush(self) -> bool:
        """Remove all records and reset statistics."""
        self._records.clear()
        self._hits = 0
        self._misses = 0
        return True

    def get_stats(self) -> Dict[str, Any]:
        """
        Get storage statistics.

        Returns:
            Dictionary with storage statistics
        """
        total_requests = self._hits + self._misses
        hit_ratio = self._hits / total_requests if total_requests > 0 else 0

        return {
            'size': len(self._records),
            'max_size': self._max_size,
            'hits': self._hits,
            'misses': self._misses,
            'hit_ratio': hit_ratio,
            'keys': list(self._records.keys())
        }
