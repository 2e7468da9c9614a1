"""
Memory Asset Store

Thread-safe in-memory storage with the same semantics as DiskStore.
Used by the test-suite and for embedding the resolver without a filesystem.

Features:
- Thread-safe operations with Lock
- Exclusive create (AlreadyExistsError on an existing location)
- Write counters for cache behaviour assertions
"""

from threading import Lock
from typing import Dict, Any

from image_proxy.errors import AlreadyExistsError, StorageError

from .base import AssetStore


class MemoryStore(AssetStore):
    """
    Thread-safe in-memory asset store

    Parent directories are implicit, so ensure_parent_dirs() only records
    that it was asked.
    """

    def __init__(self):
        self._store: Dict[str, bytes] = {}
        self._lock = Lock()
        self.writes = 0
        self.reads = 0

    async def exists(self, location: str) -> bool:
        with self._lock:
            return location in self._store

    async def read_all(self, location: str) -> bytes:
        with self._lock:
            data = self._store.get(location)
            if data is None:
                raise StorageError(f"file not found: {location}")
            self.reads += 1
            return data

    async def ensure_parent_dirs(self, location: str) -> None:
        return None

    async def create_exclusive(self, location: str, data: bytes) -> None:
        with self._lock:
            if location in self._store:
                raise AlreadyExistsError(f"file already exists: {location}")
            self._store[location] = bytes(data)
            self.writes += 1

    def put(self, location: str, data: bytes) -> None:
        """Seed a location directly, replacing whatever is there."""
        with self._lock:
            self._store[location] = bytes(data)

    def locations(self) -> list:
        with self._lock:
            return sorted(self._store)

    def stats(self) -> Dict[str, Any]:
        """
        Get store statistics
        """
        with self._lock:
            total_size = sum(len(v) for v in self._store.values())
            return {
                "total_entries": len(self._store),
                "total_size_bytes": total_size,
                "writes": self.writes,
                "reads": self.reads,
            }
