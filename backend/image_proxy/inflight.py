"""
In-flight Request Registry

Single-flight coordination: concurrent callers asking for the same key
share one running task instead of repeating the work and racing on the
exclusive create of the cache file.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class InflightRegistry:
    """
    Maps a key to the task currently producing its result.

    Usage:
        registry = InflightRegistry("derived")
        data = await registry.run(key, lambda: produce(key))

    The task is shielded from its callers' cancellation: a client that
    disconnects stops waiting, but the work finishes for everyone else.
    Failed results are not remembered; the next caller starts over.
    """

    def __init__(self, name: str):
        self.name = name
        self._tasks: Dict[Hashable, asyncio.Task] = {}
        self.coalesced = 0

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            self.coalesced += 1
            logger.debug(f"[Inflight:{self.name}] Joining in-flight work for {key}")
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        # Retrieve the exception so a task nobody awaits any more is not
        # reported as "never retrieved"
        if not task.cancelled():
            task.exception()

    def pending(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tasks
