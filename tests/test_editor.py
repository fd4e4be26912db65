"""Tests for the crop editor controller: lifecycle, render loop, face centering, save."""

import io

import pytest
from PIL import Image

from card_photo_crop.config import FACE_ZOOM_BIAS, OUTPUT_SIZE
from card_photo_crop.editor import CropEditor, EditorState
from card_photo_crop.models import FacePosition

from conftest import CountingLocator


class Host:
    """Records what the editor pushes to the preview and busy indicator."""

    def __init__(self, viewport: float = 300.0):
        self.viewport = viewport
        self.renders = []
        self.busy = []
        self.saved = []

    def viewport_size(self) -> float:
        return self.viewport


@pytest.fixture
def host():
    return Host()


@pytest.fixture
def make_editor(wide_image, frames, executor, host):
    def _make(locator=None, image=None, **kwargs):
        return CropEditor(
            image or wide_image,
            viewport_size=host.viewport_size,
            call_later=frames,
            render=host.renders.append,
            locator=locator,
            executor=executor,
            busy_changed=host.busy.append,
            on_save=host.saved.append,
            **kwargs,
        )
    return _make


@pytest.fixture
def editor(make_editor):
    ed = make_editor()
    ed.initialize()
    return ed


class TestInitialize:
    def test_ready_at_coverage_scale(self, editor, host):
        assert editor.state is EditorState.READY
        assert editor.transform.scale == pytest.approx(0.6)
        assert editor.transform.offset.x == 0
        assert editor.transform.offset.y == 0
        assert len(host.renders) == 1

    def test_waits_for_layout(self, make_editor, frames, host):
        host.viewport = 0
        ed = make_editor()
        ed.initialize()
        assert ed.state is EditorState.UNINITIALIZED
        assert host.renders == []
        frames.run_frame()
        assert ed.state is EditorState.UNINITIALIZED
        host.viewport = 300
        frames.run_frame()
        assert ed.state is EditorState.READY
        assert ed.transform.min_scale == pytest.approx(0.6)

    def test_gives_up_after_retry_limit(self, make_editor, frames, host):
        host.viewport = 0
        ed = make_editor(layout_retry_limit=3)
        ed.initialize()
        assert frames.run_until_idle() == 3
        assert ed.state is EditorState.UNINITIALIZED

    def test_initialize_twice_is_noop(self, editor, host):
        editor.transform.scale = 1.5
        editor.initialize()
        assert editor.transform.scale == 1.5
        assert len(host.renders) == 1

    def test_gestures_ignored_before_ready(self, make_editor, host):
        host.viewport = 0
        ed = make_editor()
        ed.initialize()
        ed.press(0, 0)
        assert ed.move(10, 0) is False
        assert ed.wheel(-1) is False


class TestRenderLoop:
    def test_moves_coalesce_into_one_render(self, editor, frames, host):
        editor.press(0, 0)
        for x in (10, 20, 30, 40):
            editor.move(x, 0)
        assert len(host.renders) == 1
        frames.run_frame()
        assert len(host.renders) == 2
        assert host.renders[-1].translate_x == pytest.approx(40)

    def test_render_reflects_zoom(self, editor, frames, host):
        editor.wheel(-1)
        frames.run_frame()
        assert host.renders[-1].scale == pytest.approx(0.66)

    def test_unchanged_gesture_schedules_nothing(self, editor, frames):
        editor.wheel(1)
        assert frames.queue == []

    def test_resize_recomputes_min_scale(self, editor, frames):
        editor.viewport_resized(600)
        assert editor.transform.min_scale == pytest.approx(1.2)
        assert editor.transform.scale == pytest.approx(1.2)
        frames.run_frame()
        assert editor.transform.offset.y == 0


class TestReset:
    def test_reset_restores_initial_view(self, editor, make_editor):
        editor.wheel(-1)
        editor.wheel(-1)
        editor.press(0, 0)
        editor.move(35, -20)
        editor.touch_begin([(0, 0), (100, 0)])
        editor.touch_move([(0, 0), (130, 0)])
        editor.reset()

        fresh = make_editor()
        fresh.initialize()
        assert editor.transform.snapshot() == fresh.transform.snapshot()
        assert editor.transform.snapshot() == (pytest.approx(0.6), 0, 0)


class TestCenterOnFace:
    def test_centers_and_zooms(self, make_editor, executor):
        ed = make_editor(locator=CountingLocator(FacePosition(40, 50)))
        ed.initialize()
        assert ed.center_on_face()
        executor.run_all()
        expected_scale = 0.6 * FACE_ZOOM_BIAS
        assert ed.transform.scale == pytest.approx(expected_scale)
        # 10% of the 720px scaled width, to the right
        assert ed.transform.offset.x == pytest.approx(72)
        assert ed.transform.offset.y == pytest.approx(0)

    def test_offset_is_clamped(self, make_editor, executor):
        ed = make_editor(locator=CountingLocator(FacePosition(0, 100)))
        ed.initialize()
        ed.center_on_face()
        executor.run_all()
        # 720x360 scaled image in a 300 viewport: bounds are 210 and 30
        assert ed.transform.offset.x == pytest.approx(210)
        assert ed.transform.offset.y == pytest.approx(-30)

    def test_no_face_leaves_transform_untouched(self, make_editor, executor):
        ed = make_editor(locator=CountingLocator(None))
        ed.initialize()
        ed.wheel(-1)
        ed.press(0, 0)
        ed.move(17.25, 0)
        before = ed.transform.snapshot()
        ed.center_on_face()
        executor.run_all()
        assert ed.transform.snapshot() == before

    def test_locator_error_leaves_transform_untouched(self, make_editor, executor, host):
        ed = make_editor(locator=CountingLocator(error=RuntimeError("model missing")))
        ed.initialize()
        before = ed.transform.snapshot()
        ed.center_on_face()
        executor.run_all()
        assert ed.transform.snapshot() == before
        assert not ed.face_pending
        assert host.busy == [True, False]

    def test_single_flight(self, make_editor, executor):
        locator = CountingLocator(FacePosition(50, 50))
        ed = make_editor(locator=locator)
        ed.initialize()
        assert ed.center_on_face()
        assert ed.face_pending
        assert not ed.center_on_face()
        assert not ed.center_on_face()
        executor.run_all()
        assert locator.calls == 1
        assert not ed.face_pending
        # Once resolved a new lookup may start
        assert ed.center_on_face()
        executor.run_all()
        assert locator.calls == 2

    def test_result_after_close_is_discarded(self, make_editor, executor, host):
        ed = make_editor(locator=CountingLocator(FacePosition(10, 10)))
        ed.initialize()
        before = ed.transform.snapshot()
        ed.center_on_face()
        ed.close()
        renders = len(host.renders)
        executor.run_all()
        assert ed.transform.snapshot() == before
        assert len(host.renders) == renders
        assert ed.state is EditorState.DISCARDED
        assert host.busy == [True, False]

    def test_without_locator(self, editor):
        assert editor.center_on_face() is False


class TestSave:
    def test_save_produces_output_once(self, editor, host):
        data = editor.save()
        assert data is not None
        assert host.saved == [data]
        assert editor.state is EditorState.RASTERIZED
        with Image.open(io.BytesIO(data)) as img:
            assert img.size == (OUTPUT_SIZE, OUTPUT_SIZE)
            assert img.format == "WEBP"
        assert editor.save() is None
        assert len(host.saved) == 1

    def test_save_before_ready(self, make_editor, host):
        host.viewport = 0
        ed = make_editor()
        ed.initialize()
        assert ed.save() is None
        assert host.saved == []

    def test_save_without_source_image(self, editor, host):
        editor.image = None
        assert editor.save() is None
        assert host.saved == []
        assert editor.state is EditorState.READY

    def test_save_cancels_pending_frame(self, editor, frames, host):
        editor.wheel(-1)
        editor.save()
        renders = len(host.renders)
        frames.run_frame()
        assert len(host.renders) == renders

    def test_save_after_close(self, editor, host):
        editor.close()
        assert editor.save() is None
        assert host.saved == []


class TestClose:
    def test_close_discards_and_drops_pending_frame(self, editor, frames, host):
        editor.wheel(-1)
        editor.close()
        renders = len(host.renders)
        frames.run_frame()
        assert len(host.renders) == renders
        assert editor.state is EditorState.DISCARDED

    def test_close_after_save_keeps_rasterized(self, editor):
        editor.save()
        editor.close()
        assert editor.state is EditorState.RASTERIZED

    def test_close_before_layout_stops_retrying(self, make_editor, frames, host):
        host.viewport = 0
        ed = make_editor()
        ed.initialize()
        ed.close()
        host.viewport = 300
        frames.run_until_idle()
        assert ed.state is EditorState.DISCARDED
