"""
Photo compression for garment photos.

Decodes whatever the camera or upload produced, scales it down so the long
side fits max_dimension (never up), flattens transparency onto white and
re-encodes as JPEG. Uses Pillow.
"""

import logging
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from .config import settings
from .errors import ImageCodecError
from .schemas import PhotoRef

logger = logging.getLogger(__name__)


def compress(
    raw: bytes,
    max_dimension: int = None,
    quality: float = None,
) -> PhotoRef:
    """
    Compress raw image bytes into a bounded JPEG.

    Args:
        raw: encoded image bytes (jpg, png, webp, ...)
        max_dimension: longest side in px (default settings.PHOTO_MAX_DIMENSION)
        quality: JPEG quality 0-1 (default settings.PHOTO_QUALITY)

    Raises:
        ImageCodecError: bytes are empty or not a decodable image.
    """
    max_dimension = max_dimension or settings.PHOTO_MAX_DIMENSION
    quality = settings.PHOTO_QUALITY if quality is None else quality

    if not raw:
        raise ImageCodecError("Empty image.")

    try:
        with Image.open(BytesIO(raw)) as img:
            img = ImageOps.exif_transpose(img)
            width, height = img.size

            scale = min(1.0, max_dimension / max(width, height))
            target_w = max(1, round(width * scale))
            target_h = max(1, round(height * scale))

            img = _flatten(img)
            if (target_w, target_h) != (width, height):
                img = img.resize((target_w, target_h), Image.LANCZOS)

            out = BytesIO()
            img.save(out, format="JPEG", quality=_jpeg_quality(quality), optimize=True)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning("Photo compression failed: %s", e)
        raise ImageCodecError("Could not read this image. Please try another photo.") from e

    return PhotoRef(data=out.getvalue(), mime_type="image/jpeg", width=target_w, height=target_h)


def _flatten(img: Image.Image) -> Image.Image:
    """JPEG has no alpha: paste transparent images onto white."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return img.convert("RGB")


def _jpeg_quality(quality: float) -> int:
    """Map a 0-1 quality to Pillow's 1-95 scale."""
    return max(1, min(95, round(quality * 100)))
