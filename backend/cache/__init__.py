"""
Asset Store Module

Storage backends for the image proxy's two cache tiers:
- DiskStore: files under the configured data directory
- MemoryStore: in-process dictionary (tests, ephemeral runs)
"""

from .base import AssetStore
from .disk_store import DiskStore
from .memory_store import MemoryStore

__all__ = [
    "AssetStore",
    "DiskStore",
    "MemoryStore",
]
