"""
Crop editor controller (Qt-free).

``CropEditor`` owns one ``CropTransform`` for the lifetime of an editing
session and wires together the gesture interpreter, the per-frame render
scheduler, the optional face locator and the rasterizer.  The host supplies
three primitives:

* ``viewport_size()`` – current laid-out side length of the square preview,
  0 while layout has not happened yet;
* ``call_later(fn)`` – run ``fn`` on the next frame;
* ``dispatch(fn)`` – run ``fn`` on the UI thread (face results arrive on a
  worker thread).

Session lifecycle::

    UNINITIALIZED --initialize()--> READY --save()--> RASTERIZED
                                      |
                                      +--close()--> DISCARDED
"""

import enum
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence

from PIL import Image

from card_photo_crop.config import FACE_ZOOM_BIAS, LAYOUT_RETRY_LIMIT, MAX_ZOOM, OUTPUT_SIZE
from card_photo_crop.face_locator import FaceLocator
from card_photo_crop.gestures import GestureInterpreter, Point
from card_photo_crop.models import (
    CropTransform, FacePosition, clamp_offset, clamp_scale, face_offset,
)
from card_photo_crop.rasterizer import rasterize
from card_photo_crop.scheduler import CallLater, FrameScheduler

logger = logging.getLogger(__name__)


class EditorState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RASTERIZED = "rasterized"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class PreviewTransform:
    """What the preview surface draws: image center shifted from the viewport
    center by ``(translate_x, translate_y)`` and scaled by ``scale``."""
    translate_x: float
    translate_y: float
    scale: float


def _run_now(fn: Callable[[], None]):
    fn()


class CropEditor:
    """Pan/zoom/face-center editor for one source image."""

    def __init__(
        self,
        image: Image.Image,
        viewport_size: Callable[[], float],
        call_later: CallLater,
        render: Callable[[PreviewTransform], None] | None = None,
        locator: FaceLocator | None = None,
        executor: Executor | None = None,
        dispatch: Callable[[Callable[[], None]], None] = _run_now,
        busy_changed: Callable[[bool], None] | None = None,
        on_save: Callable[[bytes], None] | None = None,
        max_zoom: float = MAX_ZOOM,
        output_size: int = OUTPUT_SIZE,
        layout_retry_limit: int = LAYOUT_RETRY_LIMIT,
    ):
        self.image: Image.Image | None = image
        self.transform = CropTransform(image.width, image.height)
        self.gestures = GestureInterpreter(self.transform, max_zoom=max_zoom)
        self.scheduler = FrameScheduler(self.apply_transform, call_later)
        self.state = EditorState.UNINITIALIZED
        self.max_zoom = max_zoom
        self.output_size = output_size

        self._viewport_size = viewport_size
        self._render = render
        self._locator = locator
        self._owns_executor = executor is None and locator is not None
        self._executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="face-locator")
            if self._owns_executor else executor
        )
        self._dispatch = dispatch
        self._busy_changed = busy_changed
        self._on_save = on_save

        self._layout_retry_limit = layout_retry_limit
        self._layout_attempts = 0
        self._face_pending = False
        # Bumped on close/save so late face results are recognised as stale
        self._face_generation = 0

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self):
        """Set up the initial view once the viewport has a real size.

        While layout has not happened the call re-queues itself for the next
        frame, up to ``layout_retry_limit`` times.
        """
        if self.state is not EditorState.UNINITIALIZED:
            return
        size = self._viewport_size()
        if size <= 0:
            self._layout_attempts += 1
            if self._layout_attempts > self._layout_retry_limit:
                logger.warning(
                    "Viewport still has no size after %d frames, giving up",
                    self._layout_retry_limit,
                )
                return
            logger.debug("Viewport not laid out yet (attempt %d)", self._layout_attempts)
            self.scheduler.next_frame(self.initialize)
            return

        self.transform.viewport_size = size
        self.transform.reset()
        self.state = EditorState.READY
        self.apply_transform()
        logger.info(
            "Editor ready: %dx%d source, %.0fpx viewport, min scale %.4f",
            self.transform.source_w, self.transform.source_h, size, self.transform.min_scale,
        )

    @property
    def ready(self) -> bool:
        return self.state is EditorState.READY

    def viewport_resized(self, size: float):
        """Re-fit the bounds after the preview changed size."""
        if not self.ready or size <= 0:
            return
        t = self.transform
        t.viewport_size = size
        t.refresh_min_scale()
        t.scale = clamp_scale(t.scale, t.min_scale, self.max_zoom)
        self.scheduler.schedule()

    # =========================================================================
    # Render loop
    # =========================================================================

    def apply_transform(self):
        """Clamp the offset and push the result to the preview surface."""
        clamp_offset(self.transform)
        preview = self.preview()
        if self._render is not None:
            self._render(preview)

    def preview(self) -> PreviewTransform:
        t = self.transform
        return PreviewTransform(t.offset.x, t.offset.y, t.scale)

    def _changed(self, changed: bool) -> bool:
        if changed:
            self.scheduler.schedule()
        return changed

    # =========================================================================
    # Gestures
    # =========================================================================

    def press(self, x: float, y: float):
        if self.ready:
            self.gestures.press(x, y)

    def move(self, x: float, y: float) -> bool:
        return self.ready and self._changed(self.gestures.move(x, y))

    def release(self):
        self.gestures.release()

    def touch_begin(self, points: Sequence[Point]):
        if self.ready:
            self.gestures.touch_begin(points)

    def touch_move(self, points: Sequence[Point]) -> bool:
        return self.ready and self._changed(self.gestures.touch_move(points))

    def touch_end(self):
        self.gestures.touch_end()

    def wheel(self, delta_y: float) -> bool:
        return self.ready and self._changed(self.gestures.wheel(delta_y))

    def reset(self):
        """Back to coverage zoom, centered."""
        if not self.ready:
            return
        size = self._viewport_size()
        if size > 0:
            self.transform.viewport_size = size
        self.transform.reset()
        self.apply_transform()

    # =========================================================================
    # Face centering
    # =========================================================================

    @property
    def face_pending(self) -> bool:
        return self._face_pending

    def center_on_face(self) -> bool:
        """Start a face lookup and re-center on the result.

        Only one lookup may be in flight; further calls are ignored until it
        resolves.  Returns ``True`` if a lookup was started.
        """
        if not self.ready or self._locator is None or self.image is None:
            return False
        if self._face_pending:
            logger.debug("Face lookup already in flight, ignoring request")
            return False

        self._set_face_pending(True)
        generation = self._face_generation
        future = self._executor.submit(self._locator.detect_face_position, self.image)
        future.add_done_callback(
            lambda f: self._dispatch(lambda: self._face_done(generation, f))
        )
        return True

    def _face_done(self, generation: int, future: Future):
        if generation != self._face_generation:
            logger.debug("Discarding face result from a closed session")
            return
        self._set_face_pending(False)
        try:
            face = future.result()
        except Exception as exc:
            logger.warning("Face lookup failed: %s", exc)
            return
        if face is None:
            logger.debug("No face found, keeping current view")
            return
        if self.ready:
            self.apply_face(face)

    def apply_face(self, face: FacePosition):
        """Zoom in slightly and center the view on *face*."""
        t = self.transform
        t.refresh_min_scale()
        t.scale = clamp_scale(t.min_scale * FACE_ZOOM_BIAS, t.min_scale, self.max_zoom)
        t.offset = face_offset(t, face)
        self.apply_transform()

    def _set_face_pending(self, pending: bool):
        if self._face_pending == pending:
            return
        self._face_pending = pending
        if self._busy_changed is not None:
            self._busy_changed(pending)

    # =========================================================================
    # Save / close
    # =========================================================================

    def save(self) -> bytes | None:
        """Rasterize the current view.

        Returns ``None`` (and skips ``on_save``) when the editor is not ready or
        the source image is gone.
        """
        if not self.ready:
            logger.debug("Save ignored in state %s", self.state.value)
            return None
        self.scheduler.cancel()
        clamp_offset(self.transform)
        data = rasterize(self.image, self.transform, output_size=self.output_size)
        if data is None:
            return None

        self.state = EditorState.RASTERIZED
        self._shutdown()
        logger.info("Saved %dx%d crop (%d bytes)", self.output_size, self.output_size, len(data))
        if self._on_save is not None:
            self._on_save(data)
        return data

    def close(self):
        """Discard the session; pending frames and face results are dropped."""
        if self.state in (EditorState.UNINITIALIZED, EditorState.READY):
            self.state = EditorState.DISCARDED
            logger.debug("Editor discarded")
        self._shutdown()

    def _shutdown(self):
        self.scheduler.cancel()
        self.gestures.release()
        self._face_generation += 1
        self._set_face_pending(False)
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            self._owns_executor = False
