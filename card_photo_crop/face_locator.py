"""
Best-effort face position detection (Qt-free).

The editor only depends on the ``FaceLocator`` protocol: given a PIL image,
return the face center as percentages of the image size, or ``None`` when no
face is found.  ``HaarFaceLocator`` implements it with OpenCV's bundled
frontal-face Haar cascade.  Detection runs on a worker thread, so it must
never touch Qt.
"""

import logging
import threading
from typing import Protocol

import cv2
import numpy as np
from PIL import Image

from card_photo_crop.models import FacePosition

logger = logging.getLogger(__name__)

_CASCADE_FILE = "haarcascade_frontalface_default.xml"

# Longest side fed to the detector; larger images are downscaled first
_DETECT_MAX_SIDE = 1024


class FaceLocator(Protocol):
    def detect_face_position(self, image: Image.Image) -> FacePosition | None:
        ...


class HaarFaceLocator:
    """Locate the largest frontal face with an OpenCV Haar cascade."""

    def __init__(self, scale_factor: float = 1.1, min_neighbors: int = 4):
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self._cascade = None
        self._lock = threading.Lock()

    @property
    def cascade(self):
        with self._lock:
            if self._cascade is None:
                classifier = getattr(cv2, "CascadeClassifier", None)
                data = getattr(cv2, "data", None)
                if classifier is None or data is None:
                    raise RuntimeError("This OpenCV build does not ship Haar cascades")
                cascade = classifier(data.haarcascades + _CASCADE_FILE)
                if cascade.empty():
                    raise RuntimeError(f"Could not load face cascade {_CASCADE_FILE}")
                self._cascade = cascade
            return self._cascade

    def detect_face_position(self, image: Image.Image) -> FacePosition | None:
        try:
            return self._detect(image)
        except (cv2.error, RuntimeError, OSError, ValueError) as exc:
            logger.warning("Face detection failed: %s", exc)
            return None

    def _detect(self, image: Image.Image) -> FacePosition | None:
        w, h = image.size
        if w == 0 or h == 0:
            return None

        factor = min(1.0, _DETECT_MAX_SIDE / max(w, h))
        small = image.convert("L")
        if factor < 1.0:
            small = small.resize(
                (max(1, round(w * factor)), max(1, round(h * factor))),
                Image.Resampling.BILINEAR,
            )
        gray = np.asarray(small, dtype=np.uint8)

        faces = self.cascade.detectMultiScale(gray, self.scale_factor, self.min_neighbors)
        if len(faces) == 0:
            logger.debug("No face found in %dx%d image", w, h)
            return None

        fx, fy, fw, fh = max(faces, key=lambda f: f[2] * f[3])
        center_x = (fx + fw / 2) / gray.shape[1]
        center_y = (fy + fh / 2) / gray.shape[0]
        position = FacePosition(round(center_x * 100), round(center_y * 100))
        logger.debug("Face found at %s%% x, %s%% y", position.x, position.y)
        return position
