"""
Image Proxy Errors

Every failure raised while resolving a request is a ProxyError subclass.
Each step wraps the underlying exception with a short description of what
it was doing (``raise DecodeError("failed to decode image") from exc``), so
the full chain can be rebuilt for the server log with describe_error().
"""

from typing import List


class ProxyError(Exception):
    """Base class for all resolution failures."""


class InputError(ProxyError):
    """Malformed size token or logical path."""


class OriginUnavailableError(ProxyError):
    """The origin could not be reached (DNS, connect, timeout...)."""


class StorageError(ProxyError):
    """An asset store operation failed."""


class AlreadyExistsError(StorageError):
    """Exclusive create found the target already present."""


class DecodeError(ProxyError):
    """Bytes are not a recognised or readable image."""


class EncodeError(ProxyError):
    """Resizing or PNG encoding failed."""


def describe_error(exc: BaseException) -> str:
    """
    Join the messages of an exception and its causes.

    Example:
        failed to resolve 50x50/a.png: failed to decode image: cannot identify image file
    """
    parts: List[str] = []
    seen = set()
    current = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        message = str(current) or type(current).__name__
        parts.append(message)
        current = current.__cause__
    return ": ".join(parts)
