"""
Application constants and configuration.

All crop-editor behaviour (zoom limits, output encoding, render cadence) and
the photo/logo optimization targets live here as module constants.  The only
runtime override is the log level, read from ``CARD_PHOTO_CROP_LOG_LEVEL``.
"""

import logging
import os

# =============================================================================
# APP IDENTITY
# =============================================================================
APP_NAME = "card-photo-crop"

LOG_LEVEL_ENV = "CARD_PHOTO_CROP_LOG_LEVEL"


def log_level() -> int:
    """Return the configured logging level, falling back to INFO on bad values."""
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO

# =============================================================================
# CROP EDITOR
# =============================================================================
# Side length of the square output image (pixels)
OUTPUT_SIZE = 512

# Upper zoom bound; the lower bound is the per-image coverage scale
MAX_ZOOM = 3.0

# Per-tick wheel multipliers
WHEEL_ZOOM_OUT = 0.9
WHEEL_ZOOM_IN = 1.1

# Extra zoom applied on top of the coverage scale when centering on a face
FACE_ZOOM_BIAS = 1.2

# Output encoding for the editor's saved image
OUTPUT_FORMAT = "WEBP"
OUTPUT_QUALITY = 85
OUTPUT_EXTENSION = ".webp"
OUTPUT_SUFFIX = "-photo"

# Published (optimized) outputs
PHOTO_EXTENSION = ".jpg"
LOGO_SUFFIX = "-logo"

# One animation frame at 60 Hz
FRAME_INTERVAL_MS = 16

# Frames to wait for a non-zero viewport before giving up (~2 s at 60 Hz)
LAYOUT_RETRY_LIMIT = 120

# =============================================================================
# PHOTO / LOGO OPTIMIZATION
# =============================================================================
TARGET_SIZE_KB = 200
JPEG_QUALITY_MAX = 0.92
JPEG_QUALITY_MIN = 0.6
JPEG_QUALITY_FALLBACK = 0.85
JPEG_SEARCH_STEPS = 6
# Accept an encode once it lands within [TARGET_LOW_RATIO * target, target]
TARGET_LOW_RATIO = 0.7

LOGO_MAX_W = 600
LOGO_MAX_H = 300

DATA_URL_MAX_SIZE = 1600
DATA_URL_QUALITY = 85

# Supported source image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".tif", ".webp", ".psd"}
