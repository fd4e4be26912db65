"""
Qt-free image I/O utilities.

Opens source photos (including layered PSD composites), applies the EXIF
orientation so the editor sees the image upright, reads dimensions without a
full decode, and generates non-clobbering output paths.
"""

import io
from pathlib import Path

from PIL import Image, ImageOps
from psd_tools import PSDImage

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None


def _prepare(img: Image.Image) -> Image.Image:
    """Upright, fully decoded, and in a mode Lanczos resampling handles."""
    img = ImageOps.exif_transpose(img)
    if img.mode in ("RGB", "RGBA"):
        img.load()
        return img
    has_alpha = "A" in img.getbands() or (img.mode == "P" and "transparency" in img.info)
    return img.convert("RGBA" if has_alpha else "RGB")


def open_image(path: Path) -> Image.Image:
    """Open an image file, using psd-tools for PSD and Pillow for the rest."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return _prepare(psd.composite())
    with Image.open(path) as img:
        return _prepare(img)


def open_image_bytes(data: bytes) -> Image.Image:
    """Decode an in-memory image (e.g. a blob produced by the editor)."""
    with Image.open(io.BytesIO(data)) as img:
        return _prepare(img)


def get_image_size(path: Path) -> tuple[int, int]:
    """Get upright image dimensions without fully loading/compositing."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.width, psd.height
    with Image.open(path) as img:
        w, h = img.size
        # EXIF orientations 5-8 swap width and height
        if img.getexif().get(0x0112, 1) in (5, 6, 7, 8):
            return h, w
        return w, h


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1


def output_path_for(source: Path, suffix: str, extension: str) -> Path:
    """Sibling output path for *source*, e.g. ``me.jpg`` -> ``me-photo.webp``."""
    return unique_path(source.with_name(f"{source.stem}{suffix}{extension}"))
