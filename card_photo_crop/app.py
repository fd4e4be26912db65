"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m card_photo_crop [IMAGE] [--raw]
    python -m card_photo_crop IMAGE --auto
    python -m card_photo_crop IMAGE --logo
    card-photo-crop ...          (after pip install)

Without a mode switch the crop editor opens on IMAGE (or asks for one) and the
saved crop is written next to it as ``<name>-photo.jpg``, re-encoded to the
upload size target.  ``--raw`` keeps the editor's ``<name>-photo.webp`` as is.
``--auto`` skips the editor and writes a face-centered square photo;
``--logo`` writes ``<name>-logo.png`` (PNG sources) or ``<name>-logo.jpg``.
"""

import argparse
import logging
import sys
from pathlib import Path

from PyQt6.QtWidgets import QApplication, QFileDialog, QMessageBox

from card_photo_crop.config import APP_NAME, IMAGE_EXTENSIONS, log_level
from card_photo_crop.crop_dialog import ImageCropDialog
from card_photo_crop.face_locator import HaarFaceLocator
from card_photo_crop.image_io import open_image
from card_photo_crop.output import save_auto_photo, save_cropped_photo, save_logo

logger = logging.getLogger(__name__)

DARK_STYLESHEET = """
    QDialog { background: #2b2b2b; }
    QWidget { background: #2b2b2b; color: #ddd; font-size: 10pt; }
    QPushButton { background: #3a3a3a; border: 1px solid #555; border-radius: 4px; padding: 6px 12px; }
    QPushButton:hover { background: #4a4a4a; }
    QPushButton:pressed { background: #2a2a2a; }
    QPushButton:default { background: #3a6ea5; border-color: #5a8ec5; }
    QPushButton:disabled { color: #666; }
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Crop a card photo or prepare a logo.")
    parser.add_argument("image", nargs="?", type=Path, help="source image (asked for when omitted)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--auto", action="store_true", help="write a face-centered square photo without the editor")
    mode.add_argument("--logo", action="store_true", help="fit the image to logo bounds without the editor")
    mode.add_argument("--raw", action="store_true", help="keep the editor's WEBP output instead of re-encoding")
    return parser


def _pick_image() -> Path | None:
    patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
    filename, _ = QFileDialog.getOpenFileName(None, "Choose a photo", "", f"Images ({patterns})")
    return Path(filename) if filename else None


def run_headless(path: Path, logo: bool) -> int:
    """Write an auto photo or a logo for *path*; returns the process exit code."""
    try:
        image = open_image(path)
        if logo:
            save_logo(path, image)
        else:
            save_auto_photo(path, image, HaarFaceLocator())
    except OSError as exc:
        logger.error("Could not process %s: %s", path, exc)
        return 1
    return 0


def main(argv: list[str] | None = None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.auto or args.logo:
        if args.image is None:
            logger.error("--auto and --logo need an IMAGE argument")
            sys.exit(2)
        sys.exit(run_headless(args.image, logo=args.logo))

    app = QApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setStyleSheet(DARK_STYLESHEET)

    path = args.image or _pick_image()
    if path is None:
        sys.exit(1)

    try:
        image = open_image(path)
    except OSError as exc:
        logger.error("Could not open %s: %s", path, exc)
        QMessageBox.critical(None, "Open Failed", f"Could not open image:\n{exc}")
        sys.exit(1)

    dialog = ImageCropDialog(image, locator=HaarFaceLocator())
    written: list[Path] = []

    def on_saved(data: bytes):
        try:
            written.append(save_cropped_photo(path, data, raw=args.raw))
        except OSError as exc:
            logger.error("Could not write output for %s: %s", path, exc)
            QMessageBox.warning(dialog, "Save Failed", f"Could not write image:\n{exc}")

    dialog.saved.connect(on_saved)

    try:
        dialog.exec()
    except KeyboardInterrupt:
        pass
    sys.exit(0 if written else 1)


if __name__ == "__main__":
    main()
