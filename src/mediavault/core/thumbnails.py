""" Image inspection, thumbnail rendering and the placeholder shown for locked content. """

import io
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger("mediavault.media")

DEFAULT_SIZE = 300
JPEG_QUALITY = 85
PLACEHOLDER_COLOR = (50, 50, 50)


def inspect_image(buffer: bytes) -> Dict[str, Any]:
    """Return width/height/format for an image buffer, or {} if it can't be read."""
    try:
        with Image.open(io.BytesIO(buffer)) as img:
            return {"width": img.width, "height": img.height, "format": img.format}
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("image inspection failed: %s", e)
        return {}


def make_thumbnail(buffer: bytes, mime_type: str, size: int = DEFAULT_SIZE) -> Optional[bytes]:
    """Render a square cover-cropped JPEG thumbnail for images.

    Returns None for non-images and for images Pillow cannot decode; a
    missing thumbnail never fails an upload.
    """
    if not mime_type or not mime_type.startswith("image/"):
        return None
    try:
        with Image.open(io.BytesIO(buffer)) as img:
            img = ImageOps.exif_transpose(img)
            if img.width > size or img.height > size:
                img = ImageOps.fit(img, (size, size), method=Image.Resampling.LANCZOS)
            out = io.BytesIO()
            img.convert("RGB").save(out, format="JPEG", quality=JPEG_QUALITY)
            return out.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("thumbnail generation failed: %s", e)
        return None


@lru_cache(maxsize=4)
def placeholder(size: int = DEFAULT_SIZE) -> bytes:
    """A flat grey JPEG that reveals nothing about the content behind it."""
    out = io.BytesIO()
    Image.new("RGB", (size, size), PLACEHOLDER_COLOR).save(out, format="JPEG")
    return out.getvalue()
