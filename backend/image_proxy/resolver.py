"""
Cache Resolver

Turns a (size, path) request into PNG bytes using two storage tiers:

data_root/
├── <path>                  origin tier: fetched once per path
└── <width>x<height>/
    └── <path>              derived tier: transformed once per (size, path)

Resolution order:
1. Derived file present -> serve it, the origin is not consulted
2. Origin file missing  -> fetch it from the origin and store it
3. Read origin, resize, store the derivative, serve it

Concurrent cold requests are coalesced per key (InflightRegistry), so N
simultaneous requests for one derivative cost one fetch, one transform
and one write, and none of them fails on the exclusive create.
"""

import asyncio
import logging
from typing import Any, Dict

from cache.base import AssetStore

from .errors import AlreadyExistsError
from .inflight import InflightRegistry
from .models import CacheKey, LogicalPath, Size
from .origin_fetcher import OriginFetcher
from .transformer import ImageTransformer

logger = logging.getLogger(__name__)


class CacheResolver:
    """
    Fetch-once / transform-once image resolver.

    Usage:
        resolver = CacheResolver(DiskStore(data_dir), OriginFetcher(), ImageTransformer())
        png = await resolver.resolve(CacheKey(Size(200, 100), LogicalPath.parse("avatar.png")))
    """

    def __init__(
        self,
        store: AssetStore,
        fetcher: OriginFetcher,
        transformer: ImageTransformer,
    ):
        self.store = store
        self.fetcher = fetcher
        self.transformer = transformer

        # One registry per tier: an origin fetch is shared by every size
        # requested for that path
        self._origin_inflight = InflightRegistry("origin")
        self._derived_inflight = InflightRegistry("derived")

        self._resolutions = 0
        self._derived_hits = 0
        self._origin_fetches = 0

    async def resolve_size_path(self, size: Size, path: LogicalPath) -> bytes:
        return await self.resolve(CacheKey(size, path))

    async def resolve(self, key: CacheKey) -> bytes:
        """
        Return the PNG bytes for key.

        Raises:
            OriginUnavailableError, StorageError, DecodeError, EncodeError
        """
        self._resolutions += 1

        if await self.store.exists(key.derived_location):
            self._derived_hits += 1
            logger.debug(f"[CacheResolver] Derived hit: {key}")
            return await self.store.read_all(key.derived_location)

        return await self._derived_inflight.run(key, lambda: self._produce(key))

    async def _produce(self, key: CacheKey) -> bytes:
        # A sibling may have finished between our check and registering
        if await self.store.exists(key.derived_location):
            self._derived_hits += 1
            return await self.store.read_all(key.derived_location)

        await self._origin_inflight.run(key.path, lambda: self._ensure_origin(key.path))

        source = await self.store.read_all(key.origin_location)
        output = await asyncio.to_thread(self.transformer.transform, source, key.size)

        await self._persist(key.derived_location, output)
        logger.info(f"[CacheResolver] Derived: {key} ({len(output)} bytes)")
        return output

    async def _ensure_origin(self, path: LogicalPath) -> None:
        location = path.value
        if await self.store.exists(location):
            logger.debug(f"[CacheResolver] Origin hit: {location}")
            return

        self._origin_fetches += 1
        data = await self.fetcher.fetch(path)
        await self._persist(location, data)
        logger.info(f"[CacheResolver] Origin stored: {location} ({len(data)} bytes)")

    async def _persist(self, location: str, data: bytes) -> None:
        await self.store.ensure_parent_dirs(location)
        try:
            await self.store.create_exclusive(location, data)
        except AlreadyExistsError:
            # Another process sharing the data root got there first. Both
            # tiers are write-once with the same content, so keep theirs.
            logger.info(f"[CacheResolver] {location} already written by another writer")

    def stats(self) -> Dict[str, Any]:
        """Get resolver statistics."""
        return {
            "resolutions": self._resolutions,
            "derived_hits": self._derived_hits,
            "origin_fetches": self._origin_fetches,
            "transforms": self.transformer.transform_count,
            "inflight_origin": self._origin_inflight.pending(),
            "inflight_derived": self._derived_inflight.pending(),
            "coalesced": self._origin_inflight.coalesced + self._derived_inflight.coalesced,
        }
