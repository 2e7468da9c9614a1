"""
Disk Asset Store

Filesystem-backed storage for origin and derived images.

Layout:
data_root/
├── avatar.png              (origin tier, original bytes)
└── 200x100/
    └── avatar.png          (derived tier, PNG)

Features:
- Blocking I/O runs in worker threads, never on the event loop
- Exclusive create: write to a temp file, then hard-link into place, so a
  file is visible under its final name only once it is complete
- Every location is confined to the data root
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from image_proxy.errors import AlreadyExistsError, StorageError

from .base import AssetStore

logger = logging.getLogger(__name__)


class DiskStore(AssetStore):
    """
    Asset store rooted at a data directory.

    Usage:
        store = DiskStore("/var/lib/image-proxy")
        if not await store.exists("avatar.png"):
            await store.ensure_parent_dirs("avatar.png")
            await store.create_exclusive("avatar.png", data)
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def path_for(self, location: str) -> Path:
        """Map a location onto the filesystem, refusing escapes from the root."""
        candidate = (self.root / location).resolve()
        if candidate == self.root or self.root not in candidate.parents:
            raise StorageError(f"location {location!r} escapes the data root")
        return candidate

    async def exists(self, location: str) -> bool:
        path = self.path_for(location)
        return await asyncio.to_thread(self._exists_sync, location, path)

    def _exists_sync(self, location: str, path: Path) -> bool:
        # A directory under an asset's name can never become that asset
        if path.is_dir():
            raise StorageError(f"location {location} is a directory")
        return path.exists()

    async def read_all(self, location: str) -> bytes:
        path = self.path_for(location)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise StorageError(f"file not found: {location}") from e
        except OSError as e:
            raise StorageError(f"failed to read file: {location}") from e

    async def ensure_parent_dirs(self, location: str) -> None:
        parent = self.path_for(location).parent
        try:
            await asyncio.to_thread(parent.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"failed to create parent directory for {location}") from e

    async def create_exclusive(self, location: str, data: bytes) -> None:
        path = self.path_for(location)
        await asyncio.to_thread(self._create_exclusive_sync, path, data)
        logger.debug(f"[DiskStore] Wrote {location} ({len(data)} bytes)")

    def _create_exclusive_sync(self, path: Path, data: bytes) -> None:
        if path.exists():
            raise AlreadyExistsError(f"file already exists: {path}")

        try:
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".part")
        except OSError as e:
            raise StorageError(f"failed to open temp file next to {path}") from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            # link() refuses to replace an existing name
            os.link(tmp_name, path)
        except FileExistsError as e:
            raise AlreadyExistsError(f"file already exists: {path}") from e
        except OSError as e:
            raise StorageError(f"failed to write file: {path}") from e
        finally:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
