"""
Gesture interpreter: pointer, touch and wheel input to pan/zoom deltas (Qt-free).

The host widget feeds raw positions in viewport pixels; every mutating call
returns ``True`` when the transform changed so the caller can schedule a
render.  Pan tracks the *last* position rather than the press position, and
pinch compares against the previous frame's finger distance, so both stay
incremental.
"""

import math
from typing import Sequence

from card_photo_crop.config import MAX_ZOOM, WHEEL_ZOOM_IN, WHEEL_ZOOM_OUT
from card_photo_crop.models import CropTransform, clamp_offset, clamp_scale

Point = tuple[float, float]


def _distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def _midpoint(a: Point, b: Point) -> Point:
    return (a[0] + b[0]) / 2, (a[1] + b[1]) / 2


class GestureInterpreter:
    """Mutates a ``CropTransform`` in response to drag, pinch and wheel input."""

    def __init__(self, transform: CropTransform, max_zoom: float = MAX_ZOOM):
        self.transform = transform
        self.max_zoom = max_zoom
        self._last_pos: Point | None = None
        self._pinch_distance: float | None = None

    @property
    def dragging(self) -> bool:
        return self._last_pos is not None

    @property
    def pinching(self) -> bool:
        return self._pinch_distance is not None

    # --- Single pointer (mouse or one finger) ---

    def press(self, x: float, y: float):
        self._last_pos = (x, y)

    def move(self, x: float, y: float) -> bool:
        if self._last_pos is None:
            return False
        dx = x - self._last_pos[0]
        dy = y - self._last_pos[1]
        self._last_pos = (x, y)
        return self._pan(dx, dy)

    def release(self):
        self._last_pos = None
        self._pinch_distance = None

    # --- Touch ---

    def touch_begin(self, points: Sequence[Point]):
        """A finger went down; *points* holds every finger currently touching."""
        if len(points) == 1:
            self._last_pos = points[0]
        elif len(points) == 2:
            self._pinch_distance = _distance(points[0], points[1])
            self._last_pos = _midpoint(points[0], points[1])

    def touch_move(self, points: Sequence[Point]) -> bool:
        if len(points) == 1 and self._last_pos is not None:
            return self.move(*points[0])
        if len(points) == 2 and self._pinch_distance is not None:
            distance = _distance(points[0], points[1])
            if self._pinch_distance <= 0:
                # Fingers started on the same spot; re-anchor instead of dividing by zero
                self._pinch_distance = distance
                return False
            factor = distance / self._pinch_distance
            self._pinch_distance = distance
            return self.zoom_by(factor)
        return False

    def touch_end(self):
        self.release()

    # --- Wheel ---

    def wheel(self, delta_y: float) -> bool:
        """Zoom one step; positive *delta_y* (scrolling down) zooms out."""
        factor = WHEEL_ZOOM_OUT if delta_y > 0 else WHEEL_ZOOM_IN
        return self.zoom_by(factor)

    # --- Mutations ---

    def zoom_by(self, factor: float) -> bool:
        t = self.transform
        before = t.snapshot()
        t.refresh_min_scale()
        t.scale = clamp_scale(t.scale * factor, t.min_scale, self.max_zoom)
        clamp_offset(t)
        return t.snapshot() != before

    def _pan(self, dx: float, dy: float) -> bool:
        t = self.transform
        before = t.snapshot()
        t.offset.x += dx
        t.offset.y += dy
        clamp_offset(t)
        return t.snapshot() != before
