"""
Image Proxy Module

Resizing proxy in front of a remote image host.

Features:
- Origin images fetched once and kept on disk
- Resized PNG derivatives produced once per (size, path) and kept on disk
- Concurrent requests for the same image share one fetch/resize
"""

from .errors import (
    ProxyError,
    InputError,
    OriginUnavailableError,
    StorageError,
    AlreadyExistsError,
    DecodeError,
    EncodeError,
)
from .models import Size, LogicalPath, CacheKey
from .resolver import CacheResolver
from .routes_fastapi import router

__all__ = [
    "router",
    "CacheResolver",
    "Size",
    "LogicalPath",
    "CacheKey",
    "ProxyError",
    "InputError",
    "OriginUnavailableError",
    "StorageError",
    "AlreadyExistsError",
    "DecodeError",
    "EncodeError",
]
