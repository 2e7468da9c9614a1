"""
Asset Store Interface

Locations are "/"-separated paths relative to the store root, e.g.
"avatar.png" (origin tier) or "200x100/avatar.png" (derived tier).
"""

from abc import ABC, abstractmethod


class AssetStore(ABC):
    """Byte storage used by the cache resolver."""

    @abstractmethod
    async def exists(self, location: str) -> bool:
        ...

    @abstractmethod
    async def read_all(self, location: str) -> bytes:
        """Raises StorageError if missing or unreadable."""

    @abstractmethod
    async def ensure_parent_dirs(self, location: str) -> None:
        ...

    @abstractmethod
    async def create_exclusive(self, location: str, data: bytes) -> None:
        """
        Store data under a location that must not exist yet.

        Raises:
            AlreadyExistsError: the location is already taken
            StorageError: any other failure
        """
