"""
Image Transformer

Decodes source bytes (format sniffed from content), resizes them to an
exact target size with a Lanczos filter and encodes the result as PNG.

Pure functions of their inputs: the same bytes and size always produce
the same output, which is what lets the derived tier act as a cache.
"""

import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, EncodeError
from .models import Size

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "PNG"
OUTPUT_CONTENT_TYPE = "image/png"

# Modes the Lanczos filter and the PNG encoder both handle directly
_PASSTHROUGH_MODES = ("RGB", "RGBA", "L", "LA")


class ImageTransformer:
    """Decode -> resize -> encode, no I/O."""

    def __init__(self):
        self.transform_count = 0

    def decode(self, data: bytes) -> Image.Image:
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except UnidentifiedImageError as e:
            raise DecodeError("failed to guess image format") from e
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
            raise DecodeError("failed to decode image") from e
        return img

    def resize(self, img: Image.Image, size: Size) -> Image.Image:
        try:
            if img.mode not in _PASSTHROUGH_MODES:
                has_alpha = img.mode.endswith(("A", "a")) or "transparency" in img.info
                img = img.convert("RGBA" if has_alpha else "RGB")
            return img.resize((size.width, size.height), Image.Resampling.LANCZOS)
        except (ValueError, OverflowError, MemoryError, OSError) as e:
            raise EncodeError(f"failed to resize image to {size}") from e

    def encode(self, img: Image.Image) -> bytes:
        output = BytesIO()
        try:
            img.save(output, format=OUTPUT_FORMAT)
        except (OSError, ValueError) as e:
            raise EncodeError("failed to write to buffer") from e
        return output.getvalue()

    def transform(self, data: bytes, size: Size) -> bytes:
        """
        Produce the PNG derivative of data at size.

        Raises:
            DecodeError: data is not a decodable image
            EncodeError: resizing or encoding failed
        """
        img = self.decode(data)
        original_width, original_height = img.size
        out = self.encode(self.resize(img, size))
        self.transform_count += 1
        logger.debug(
            f"[ImageTransformer] Resized {original_width}x{original_height} -> {size} "
            f"({len(data)} -> {len(out)} bytes)"
        )
        return out
