"""
Data models and crop-geometry utilities.

``CropTransform`` is the single source of truth for one editing session: the
current zoom, the coverage-guaranteeing minimum zoom, and the pan offset of
the image center away from the viewport center (in scaled pixels).  The
helper functions are pure and shared by the gesture interpreter, the editor
and the rasterizer.
"""

from dataclasses import dataclass, field

from card_photo_crop.config import MAX_ZOOM

# Sub-pixel slack for float comparisons on clamped edges
_EPSILON = 1e-6


# =============================================================================
# Data classes
# =============================================================================
@dataclass
class Offset:
    """Pan offset of the image center from the viewport center, in scaled pixels."""
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class FacePosition:
    """Face center as percentages (0-100) of image width and height."""
    x: float
    y: float


@dataclass(frozen=True)
class SourceRect:
    """Square region of the source image, in source pixels."""
    x: float
    y: float
    size: float

    def box(self) -> tuple[float, float, float, float]:
        """Return the rect as a Pillow ``(left, upper, right, lower)`` box."""
        return (self.x, self.y, self.x + self.size, self.y + self.size)


@dataclass
class CropTransform:
    """Pan/zoom state of the square crop viewport over one source image."""
    source_w: int
    source_h: int
    viewport_size: float = 0.0
    scale: float = 1.0
    min_scale: float = 1.0
    offset: Offset = field(default_factory=Offset)

    @property
    def scaled_size(self) -> tuple[float, float]:
        return self.source_w * self.scale, self.source_h * self.scale

    def refresh_min_scale(self) -> float:
        """Recompute ``min_scale`` from the current viewport and source size."""
        self.min_scale = compute_min_scale(self.viewport_size, self.source_w, self.source_h)
        return self.min_scale

    def reset(self):
        """Return to the initial view: coverage zoom, centered."""
        self.refresh_min_scale()
        self.scale = self.min_scale
        self.offset = Offset()

    def snapshot(self) -> tuple[float, float, float]:
        return self.scale, self.offset.x, self.offset.y


# =============================================================================
# Transform math
# =============================================================================
def compute_min_scale(viewport_size: float, source_w: int, source_h: int) -> float:
    """Smallest scale at which the image still covers the square viewport.

    The relatively smaller dimension exactly fills the viewport and the other
    one overflows, so the preview is never letterboxed.  A zero viewport
    (not laid out yet) yields 0.
    """
    if source_w <= 0 or source_h <= 0:
        raise ValueError(f"Source dimensions must be positive, got {source_w}x{source_h}")
    if viewport_size <= 0:
        return 0.0
    return max(viewport_size / source_w, viewport_size / source_h)


def clamp_scale(scale: float, min_scale: float, max_zoom: float = MAX_ZOOM) -> float:
    """Clamp *scale* into ``[min_scale, max_zoom]``; ``min_scale`` wins if they cross."""
    return max(min_scale, min(max_zoom, scale))


def offset_bounds(transform: CropTransform) -> tuple[float, float]:
    """Return the maximum absolute pan offset ``(x, y)`` at the current scale."""
    scaled_w, scaled_h = transform.scaled_size
    excess_x = max(0.0, scaled_w - transform.viewport_size)
    excess_y = max(0.0, scaled_h - transform.viewport_size)
    return excess_x / 2, excess_y / 2


def clamp_offset(transform: CropTransform):
    """Clamp the pan offset in place so the image keeps covering the viewport."""
    bound_x, bound_y = offset_bounds(transform)
    transform.offset.x = max(-bound_x, min(bound_x, transform.offset.x))
    transform.offset.y = max(-bound_y, min(bound_y, transform.offset.y))


def covers_viewport(transform: CropTransform) -> bool:
    """True if the scaled, translated image leaves no gap inside the viewport."""
    v = transform.viewport_size
    scaled_w, scaled_h = transform.scaled_size
    left = v / 2 + transform.offset.x - scaled_w / 2
    top = v / 2 + transform.offset.y - scaled_h / 2
    return (
        left <= _EPSILON
        and top <= _EPSILON
        and left + scaled_w >= v - _EPSILON
        and top + scaled_h >= v - _EPSILON
    )


def face_offset(transform: CropTransform, face: FacePosition) -> Offset:
    """Offset that puts the face center on the viewport center at the current scale."""
    scaled_w, scaled_h = transform.scaled_size
    face_x = face.x / 100 * scaled_w
    face_y = face.y / 100 * scaled_h
    return Offset(scaled_w / 2 - face_x, scaled_h / 2 - face_y)
