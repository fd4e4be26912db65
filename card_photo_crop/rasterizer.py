"""
Final crop rasterization (Qt-free).

Reads a ``CropTransform`` once, works out which square of the source image is
visible in the viewport, and resamples that square into a fixed-size output
encoded in memory.
"""

import io
import logging

from PIL import Image

from card_photo_crop.config import OUTPUT_FORMAT, OUTPUT_QUALITY, OUTPUT_SIZE
from card_photo_crop.models import CropTransform, SourceRect

logger = logging.getLogger(__name__)


def compute_source_rect(transform: CropTransform) -> SourceRect:
    """Return the source-pixel square currently shown in the viewport."""
    scale = transform.scale
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")
    scaled_w, scaled_h = transform.scaled_size
    v = transform.viewport_size

    # Top-left of the viewport, measured from the scaled image's top-left
    visible_left = (scaled_w - v) / 2 - transform.offset.x
    visible_top = (scaled_h - v) / 2 - transform.offset.y

    return SourceRect(visible_left / scale, visible_top / scale, v / scale)


def clamp_source_rect(rect: SourceRect, source_w: int, source_h: int) -> SourceRect:
    """Pull a rect that overshoots the image by rounding error back inside it."""
    size = min(rect.size, source_w, source_h)
    x = max(0.0, min(rect.x, source_w - size))
    y = max(0.0, min(rect.y, source_h - size))
    return SourceRect(x, y, size)


def encode_image(img: Image.Image, fmt: str = OUTPUT_FORMAT, quality: int = OUTPUT_QUALITY) -> bytes:
    """Encode *img* in memory in a lossy format."""
    if fmt == "JPEG" or img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGB")
    buf = io.BytesIO()
    img.save(buf, fmt, quality=quality)
    return buf.getvalue()


def rasterize(
    image: Image.Image | None,
    transform: CropTransform,
    output_size: int = OUTPUT_SIZE,
    fmt: str = OUTPUT_FORMAT,
    quality: int = OUTPUT_QUALITY,
) -> bytes | None:
    """Render the visible square into an ``output_size`` square image.

    Returns ``None`` when there is nothing to draw from (no source image or a
    transform that was never initialized).
    """
    if image is None or transform.scale <= 0 or transform.viewport_size <= 0:
        logger.warning("Rasterize skipped: source image or viewport unavailable")
        return None

    rect = clamp_source_rect(compute_source_rect(transform), image.width, image.height)
    cropped = image.resize(
        (output_size, output_size),
        Image.Resampling.LANCZOS,
        box=rect.box(),
    )
    data = encode_image(cropped, fmt, quality)
    logger.debug(
        "Rasterized source rect (%.1f, %.1f, %.1f) to %d bytes of %s",
        rect.x, rect.y, rect.size, len(data), fmt,
    )
    return data
