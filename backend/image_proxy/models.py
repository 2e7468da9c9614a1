"""
Image Proxy Models

Value types describing a proxy request:
- Size: target (width, height) parsed from a "{width}x{height}" token
- LogicalPath: asset path shared by the origin URL and the on-disk layout
- CacheKey: (Size, LogicalPath), mapped onto the two storage tiers
"""

import re
from dataclasses import dataclass

from .errors import InputError

# Largest value of an unsigned 32-bit integer
MAX_DIMENSION = 2**32 - 1

_DIGITS = re.compile(r"[0-9]+")
_SIZE_TOKEN = re.compile(r"[0-9]+x[0-9]+")


@dataclass(frozen=True)
class Size:
    """Target dimensions in pixels."""
    width: int
    height: int

    @classmethod
    def parse(cls, token: str) -> "Size":
        """
        Parse a "{width}x{height}" token.

        Raises:
            InputError: separator missing, a side empty or non-numeric,
                zero, or larger than an unsigned 32-bit integer.
        """
        width_text, sep, height_text = token.partition("x")
        if not sep:
            raise InputError(f"invalid size {token!r}: missing 'x' separator")

        return cls(
            width=_parse_dimension(token, "width", width_text),
            height=_parse_dimension(token, "height", height_text),
        )

    @property
    def token(self) -> str:
        """Directory name of the derived tier for this size."""
        return f"{self.width}x{self.height}"

    def __str__(self) -> str:
        return self.token


def _parse_dimension(token: str, name: str, text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise InputError(f"invalid size {token!r}: {name} must be an unsigned integer")
    value = int(text)
    if value == 0:
        raise InputError(f"invalid size {token!r}: {name} must be positive")
    if value > MAX_DIMENSION:
        raise InputError(f"invalid size {token!r}: {name} is out of range")
    return value


@dataclass(frozen=True)
class LogicalPath:
    """
    Normalised, relative asset path.

    Request paths are untrusted, so anything that could leave the data
    root or alias the derived tier is refused here, before any store or
    origin access.
    """
    value: str

    @classmethod
    def parse(cls, raw: str) -> "LogicalPath":
        path = raw
        if path.startswith("/"):
            path = path[1:]
        if path.endswith("/"):
            path = path[:-1]

        if not path:
            raise InputError("invalid path: empty")
        if "\\" in path or "\x00" in path:
            raise InputError(f"invalid path {raw!r}: illegal character")

        segments = path.split("/")
        for segment in segments:
            if segment in ("", ".", ".."):
                raise InputError(f"invalid path {raw!r}: bad segment {segment!r}")

        # "100x100/a.png" would be stored where the 100x100 derivative of
        # "a.png" lives
        if _SIZE_TOKEN.fullmatch(segments[0]):
            raise InputError(f"invalid path {raw!r}: reserved first segment")

        return cls(path)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CacheKey:
    """Identity of one derivative."""
    size: Size
    path: LogicalPath

    @property
    def origin_location(self) -> str:
        return self.path.value

    @property
    def derived_location(self) -> str:
        return f"{self.size.token}/{self.path.value}"

    def __str__(self) -> str:
        return self.derived_location
