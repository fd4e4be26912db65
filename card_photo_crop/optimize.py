"""
Profile photo and logo optimization (Qt-free).

Card photos are published as JPEG because link-preview crawlers handle it
everywhere; quality is binary-searched until the file lands just under the
size target.  Logos keep PNG when they came in as PNG so transparency
survives.
"""

import base64
import io
import logging
from dataclasses import dataclass

from PIL import Image

from card_photo_crop.config import (
    DATA_URL_MAX_SIZE, DATA_URL_QUALITY,
    JPEG_QUALITY_FALLBACK, JPEG_QUALITY_MAX, JPEG_QUALITY_MIN, JPEG_SEARCH_STEPS,
    LOGO_MAX_H, LOGO_MAX_W, OUTPUT_SIZE, TARGET_LOW_RATIO, TARGET_SIZE_KB,
)
from card_photo_crop.image_io import open_image_bytes
from card_photo_crop.models import FacePosition
from card_photo_crop.rasterizer import encode_image

logger = logging.getLogger(__name__)


@dataclass
class OptimizedResult:
    data: bytes
    width: int
    height: int
    size_kb: int


def _result(data: bytes, width: int, height: int) -> OptimizedResult:
    return OptimizedResult(data, width, height, round(len(data) / 1024))


def _fit_within(w: int, h: int, max_w: int, max_h: int) -> tuple[int, int]:
    """Shrink ``(w, h)`` to fit ``max_w`` x ``max_h``, preserving aspect. Never enlarges."""
    if w <= max_w and h <= max_h:
        return w, h
    ratio = min(max_w / w, max_h / h)
    return max(1, round(w * ratio)), max(1, round(h * ratio))


def compress_to_target_size(img: Image.Image, target_kb: float = TARGET_SIZE_KB) -> bytes:
    """Encode *img* as JPEG, searching quality so the result is close to *target_kb*.

    Stops as soon as the size falls in ``[TARGET_LOW_RATIO * target, target]``;
    otherwise keeps the last attempt after ``JPEG_SEARCH_STEPS`` halvings.
    """
    low, high = JPEG_QUALITY_MIN, JPEG_QUALITY_MAX
    data = None
    for _ in range(JPEG_SEARCH_STEPS):
        quality = (low + high) / 2
        data = encode_image(img, "JPEG", round(quality * 100))
        size_kb = len(data) / 1024
        if size_kb > target_kb:
            high = quality
        elif size_kb < target_kb * TARGET_LOW_RATIO:
            low = quality
        else:
            break

    if data is None:
        data = encode_image(img, "JPEG", round(JPEG_QUALITY_FALLBACK * 100))
    logger.debug("Compressed %dx%d to %.1f KB", img.width, img.height, len(data) / 1024)
    return data


def square_crop_box(w: int, h: int, face: FacePosition | None = None) -> tuple[int, int, int, int]:
    """Largest square in a ``w`` x ``h`` image, centered on *face* when given."""
    side = min(w, h)
    if face is not None:
        cx = face.x / 100 * w
        cy = face.y / 100 * h
        x = max(0.0, min(cx - side / 2, w - side))
        y = max(0.0, min(cy - side / 2, h - side))
    else:
        x = (w - side) / 2
        y = (h - side) / 2
    x, y = round(x), round(y)
    return x, y, x + side, y + side


def optimize_profile_photo(
    image: Image.Image,
    face: FacePosition | None = None,
    output_size: int = OUTPUT_SIZE,
    target_kb: float = TARGET_SIZE_KB,
) -> OptimizedResult:
    """Square-crop *image* (around *face* if known) to ``output_size`` and compress."""
    box = square_crop_box(image.width, image.height, face)
    square = image.resize((output_size, output_size), Image.Resampling.LANCZOS, box=box)
    return _result(compress_to_target_size(square, target_kb), output_size, output_size)


def optimize_cropped_image(data: bytes, target_kb: float = TARGET_SIZE_KB) -> OptimizedResult:
    """Re-encode an editor output blob as size-targeted JPEG."""
    img = open_image_bytes(data)
    return _result(compress_to_target_size(img, target_kb), img.width, img.height)


def optimize_logo(
    image: Image.Image,
    keep_png: bool = False,
    max_w: int = LOGO_MAX_W,
    max_h: int = LOGO_MAX_H,
    target_kb: float = TARGET_SIZE_KB,
) -> OptimizedResult:
    """Fit a logo within ``max_w`` x ``max_h``; PNG if *keep_png*, else size-targeted JPEG."""
    w, h = _fit_within(image.width, image.height, max_w, max_h)
    if (w, h) != image.size:
        image = image.resize((w, h), Image.Resampling.LANCZOS)

    if keep_png:
        buf = io.BytesIO()
        image.save(buf, "PNG", optimize=True)
        data = buf.getvalue()
    else:
        data = compress_to_target_size(image, target_kb)
    return _result(data, w, h)


def to_data_url(image: Image.Image, max_size: int = DATA_URL_MAX_SIZE) -> str:
    """Downscale to fit ``max_size`` and return a JPEG ``data:`` URL for API payloads."""
    w, h = _fit_within(image.width, image.height, max_size, max_size)
    if (w, h) != image.size:
        image = image.resize((w, h), Image.Resampling.LANCZOS)
    data = encode_image(image, "JPEG", DATA_URL_QUALITY)
    return "data:image/jpeg;base64," + base64.b64encode(data).decode("ascii")
