# src/analysis/image_optimizer.py — v1
"""Downscale and re-encode images before they are sent for analysis.

Images are fitted inside a ``max_size`` square (never enlarged), flattened to
RGB on a white background and encoded as JPEG. Smaller payloads keep vision
calls fast and cheap without losing the features that identify a product.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, ImageOps

from imagematch.analysis.models import ImageInput

logger = logging.getLogger(__name__)

# Pillow failures on bad input that are not OSError subclasses.
_DECODE_ERRORS = (Image.DecompressionBombError, ValueError, SyntaxError, EOFError)


class ImageOptimizer:
    """Pillow-based resize + JPEG encoder."""

    def __init__(self, max_size: int = 1024, quality: int = 70) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        if not 1 <= quality <= 95:
            raise ValueError("quality must be between 1 and 95")
        self._max_size = max_size
        self._quality = quality

    @property
    def max_size(self) -> int:
        return self._max_size

    def optimize(self, path: Path | str) -> ImageInput:
        """Load, shrink and JPEG-encode one image.

        Blocking; callers on the event loop run it through asyncio.to_thread.

        Raises:
            OSError: File unreadable or not a decodable image. Decoder
                failures that Pillow reports with other exception types
                (oversized images, truncated or malformed data) are re-raised
                as OSError with the original chained.
        """
        path = Path(path)
        try:
            with Image.open(path) as img:
                original_size = img.size
                img = ImageOps.exif_transpose(img)
                img.thumbnail((self._max_size, self._max_size), Image.Resampling.LANCZOS)
                rgb = _to_rgb(img)

            buffer = io.BytesIO()
            rgb.save(buffer, format="JPEG", quality=self._quality, optimize=True)
        except OSError:
            raise
        except _DECODE_ERRORS as e:
            raise OSError(f"Cannot decode image {path.name}: {e}") from e
        data = buffer.getvalue()
        logger.debug(
            "Optimized %s: %sx%s -> %sx%s (%.2f KB)",
            path.name, original_size[0], original_size[1],
            rgb.size[0], rgb.size[1], len(data) / 1024,
        )
        return ImageInput(data=data, media_type="image/jpeg", source_id=path.name)


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten any alpha onto white; JPEG has no transparency."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img
