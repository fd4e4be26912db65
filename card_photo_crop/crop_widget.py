"""
Interactive pan/zoom preview widget and Qt helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the Qt frame/dispatch primitives the editor runs on, and
``ImageCropWidget``, which turns mouse, touch and wheel events into editor
calls and paints the transformed preview under a rule-of-thirds grid.
"""

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QEvent, QObject, QPointF, QRectF, QTimer, pyqtSignal
from PyQt6.QtGui import (
    QPainter, QPixmap, QColor, QPen, QImage, QEventPoint,
    QMouseEvent, QPaintEvent, QResizeEvent, QTouchEvent, QWheelEvent,
)

from card_photo_crop.config import FRAME_INTERVAL_MS
from card_photo_crop.editor import CropEditor, PreviewTransform


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, QImage.Format.Format_RGBA8888)
    # QImage borrows *data*; copy before it goes out of scope
    return QPixmap.fromImage(qimg.copy())


def qt_call_later(fn):
    """Run *fn* on the next display frame."""
    QTimer.singleShot(FRAME_INTERVAL_MS, fn)


class UiDispatcher(QObject):
    """Marshals callables from worker threads onto the thread that owns this object."""
    _call = pyqtSignal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._call.connect(self._run, Qt.ConnectionType.QueuedConnection)

    def dispatch(self, fn):
        self._call.emit(fn)

    def _run(self, fn):
        fn()


def route_touch(editor: CropEditor, kind: QEvent.Type,
                points: list[tuple[QEventPoint.State, tuple[float, float]]]):
    """Forward one touch event to *editor*; *points* are ``(state, (x, y))`` pairs."""
    if kind in (QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
        editor.touch_end()
        return

    states = [state for state, _ in points]
    active = [pos for state, pos in points if state != QEventPoint.State.Released]
    if kind == QEvent.Type.TouchBegin or QEventPoint.State.Pressed in states:
        editor.touch_begin(active)
    elif QEventPoint.State.Released in states:
        # A finger lifted mid-gesture: stop tracking until the next touch begins
        editor.touch_end()
    else:
        editor.touch_move(active)


# =============================================================================
# Image Crop Widget: square pan/zoom viewport
# =============================================================================

class ImageCropWidget(QWidget):
    """Square viewport showing the image under the editor's current transform."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(240, 240)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents)
        self.setCursor(Qt.CursorShape.OpenHandCursor)

        self._pixmap: QPixmap | None = None
        self._editor: CropEditor | None = None
        self._preview: PreviewTransform | None = None

    def set_editor(self, editor: CropEditor, pixmap: QPixmap):
        self._editor = editor
        self._pixmap = pixmap
        self._preview = None
        self.update()

    def set_preview(self, preview: PreviewTransform):
        """Render callback: store the latest transform and repaint."""
        self._preview = preview
        self.update()

    def viewport_size(self) -> float:
        """Side length of the square viewport, 0 until the widget is laid out."""
        if not self.isVisible():
            return 0.0
        return float(max(0, min(self.width(), self.height())))

    def viewport_rect(self) -> QRectF:
        side = min(self.width(), self.height())
        return QRectF((self.width() - side) / 2, (self.height() - side) / 2, side, side)

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        vp = self.viewport_rect()
        painter.fillRect(vp, QColor(0, 0, 0))

        if not self._pixmap or self._preview is None:
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._pixmap else "No image loaded"
            painter.drawText(vp, Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        # Draw image: centered on the viewport, shifted, then scaled about its center
        p = self._preview
        painter.save()
        painter.setClipRect(vp)
        painter.translate(vp.center() + QPointF(p.translate_x, p.translate_y))
        painter.scale(p.scale, p.scale)
        painter.drawPixmap(QPointF(-self._pixmap.width() / 2, -self._pixmap.height() / 2), self._pixmap)
        painter.restore()

        # Draw 3×3 grid
        painter.setPen(QPen(QColor(255, 255, 255, 80), 1))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        for i in range(1, 3):
            x = vp.left() + vp.width() * i / 3
            painter.drawLine(QPointF(x, vp.top()), QPointF(x, vp.bottom()))
            y = vp.top() + vp.height() * i / 3
            painter.drawLine(QPointF(vp.left(), y), QPointF(vp.right(), y))
        painter.drawRect(vp)

        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        if self._editor is not None:
            self._editor.viewport_resized(self.viewport_size())
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._editor:
            return
        pos = event.position()
        self._editor.press(pos.x(), pos.y())
        self.setCursor(Qt.CursorShape.ClosedHandCursor)

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self._editor:
            return
        pos = event.position()
        self._editor.move(pos.x(), pos.y())

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._editor:
            self._editor.release()
            self.setCursor(Qt.CursorShape.OpenHandCursor)

    def leaveEvent(self, event: QEvent):
        if self._editor:
            self._editor.release()
            self.setCursor(Qt.CursorShape.OpenHandCursor)
        super().leaveEvent(event)

    def wheelEvent(self, event: QWheelEvent):
        if not self._editor:
            return
        delta = event.angleDelta().y()
        if delta:
            # Qt reports forward rotation as positive; forward zooms in
            self._editor.wheel(-delta)
        event.accept()

    # --- Touch interaction ---

    def event(self, event: QEvent) -> bool:
        kind = event.type()
        if kind in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate,
                    QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self._handle_touch(event)
            event.accept()
            return True
        return super().event(event)

    def _handle_touch(self, event: QTouchEvent):
        if not self._editor:
            return
        points = [(tp.state(), (tp.position().x(), tp.position().y())) for tp in event.points()]
        route_touch(self._editor, event.type(), points)
