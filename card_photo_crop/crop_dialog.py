"""
Profile photo crop dialog.

Hosts an ``ImageCropWidget`` plus the Face / Reset / Cancel / Save controls
and owns the ``CropEditor`` for one image.  ``saved`` fires with the encoded
output exactly once; cancelling or closing the dialog emits nothing.
"""

from PIL import Image
from PyQt6.QtWidgets import QDialog, QVBoxLayout, QHBoxLayout, QPushButton
from PyQt6.QtCore import QTimer, pyqtSignal
from PyQt6.QtGui import QShowEvent

from card_photo_crop.crop_widget import ImageCropWidget, UiDispatcher, pil_to_qpixmap, qt_call_later
from card_photo_crop.editor import CropEditor
from card_photo_crop.face_locator import FaceLocator


class ImageCropDialog(QDialog):
    saved = pyqtSignal(bytes)

    def __init__(self, image: Image.Image, locator: FaceLocator | None = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Adjust Profile Photo")
        self.setMinimumSize(420, 520)

        self._crop_widget = ImageCropWidget()
        self._dispatcher = UiDispatcher(self)
        self._editor = CropEditor(
            image,
            viewport_size=self._crop_widget.viewport_size,
            call_later=qt_call_later,
            render=self._crop_widget.set_preview,
            locator=locator,
            dispatch=self._dispatcher.dispatch,
            busy_changed=self._on_busy_changed,
            on_save=self.saved.emit,
        )
        self._crop_widget.set_editor(self._editor, pil_to_qpixmap(image))
        self._started = False

        self._build_ui(face_enabled=locator is not None)

    def _build_ui(self, face_enabled: bool):
        layout = QVBoxLayout(self)
        layout.addWidget(self._crop_widget, stretch=1)

        tools_row = QHBoxLayout()
        self._btn_face = QPushButton("Face")
        self._btn_face.setToolTip("Zoom in and center on the detected face")
        self._btn_face.setEnabled(face_enabled)
        self._btn_face.clicked.connect(self._editor.center_on_face)
        tools_row.addWidget(self._btn_face)

        btn_reset = QPushButton("Reset")
        btn_reset.setToolTip("Fit the whole crop area and re-center")
        btn_reset.clicked.connect(self._editor.reset)
        tools_row.addWidget(btn_reset)
        tools_row.addStretch()
        layout.addLayout(tools_row)

        action_row = QHBoxLayout()
        action_row.addStretch()
        btn_cancel = QPushButton("Cancel")
        btn_cancel.clicked.connect(self.reject)
        action_row.addWidget(btn_cancel)

        btn_save = QPushButton("Save")
        btn_save.setDefault(True)
        btn_save.clicked.connect(self._save)
        action_row.addWidget(btn_save)
        layout.addLayout(action_row)

    @property
    def editor(self) -> CropEditor:
        return self._editor

    def showEvent(self, event: QShowEvent):
        super().showEvent(event)
        if not self._started:
            self._started = True
            # Let the first layout pass run before measuring the viewport
            QTimer.singleShot(0, self._editor.initialize)

    def _on_busy_changed(self, busy: bool):
        self._btn_face.setEnabled(not busy)
        self._btn_face.setText("Detecting…" if busy else "Face")

    def _save(self):
        if self._editor.save() is not None:
            self.accept()

    def done(self, result: int):
        self._editor.close()
        super().done(result)
