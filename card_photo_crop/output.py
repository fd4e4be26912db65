"""
Writing publishable photo and logo files next to their source (Qt-free).

Editor output is re-encoded through ``optimize`` before it is written, the
same way card photos are prepared for upload; ``raw=True`` keeps the editor's
WEBP bytes untouched.  Output paths never overwrite an existing file.
"""

import logging
from pathlib import Path

from PIL import Image

from card_photo_crop.config import LOGO_SUFFIX, OUTPUT_EXTENSION, OUTPUT_SUFFIX, PHOTO_EXTENSION
from card_photo_crop.face_locator import FaceLocator
from card_photo_crop.image_io import output_path_for
from card_photo_crop.optimize import optimize_cropped_image, optimize_logo, optimize_profile_photo

logger = logging.getLogger(__name__)


def _write(out_path: Path, data: bytes) -> Path:
    out_path.write_bytes(data)
    logger.info("Wrote %s (%d KB)", out_path, round(len(data) / 1024))
    return out_path


def save_cropped_photo(source: Path, data: bytes, raw: bool = False) -> Path:
    """Write the editor's output for *source*, optimized to JPEG unless *raw*."""
    if raw:
        return _write(output_path_for(source, OUTPUT_SUFFIX, OUTPUT_EXTENSION), data)
    result = optimize_cropped_image(data)
    return _write(output_path_for(source, OUTPUT_SUFFIX, PHOTO_EXTENSION), result.data)


def save_auto_photo(source: Path, image: Image.Image, locator: FaceLocator | None = None) -> Path:
    """Square-crop *image* without the editor, centered on a face when one is found."""
    face = locator.detect_face_position(image) if locator is not None else None
    if face is None:
        logger.debug("No face for %s, using a centered square", source.name)
    result = optimize_profile_photo(image, face)
    return _write(output_path_for(source, OUTPUT_SUFFIX, PHOTO_EXTENSION), result.data)


def save_logo(source: Path, image: Image.Image) -> Path:
    """Fit a logo to card bounds; PNG sources stay PNG so transparency survives."""
    keep_png = source.suffix.lower() == ".png"
    result = optimize_logo(image, keep_png=keep_png)
    extension = ".png" if keep_png else PHOTO_EXTENSION
    return _write(output_path_for(source, LOGO_SUFFIX, extension), result.data)
