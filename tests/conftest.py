"""Shared fixtures: a hand-cranked frame clock and an executor that runs on demand."""

from concurrent.futures import Future

import pytest
from PIL import Image


class ManualFrames:
    """``call_later`` stand-in; callbacks run only when a test advances a frame."""

    def __init__(self):
        self.queue = []

    def __call__(self, fn):
        self.queue.append(fn)

    def run_frame(self) -> int:
        queued, self.queue = self.queue, []
        for fn in queued:
            fn()
        return len(queued)

    def run_until_idle(self, limit: int = 1000) -> int:
        frames = 0
        while self.queue and frames < limit:
            self.run_frame()
            frames += 1
        return frames


class FakeExecutor:
    """Collects submitted jobs; ``run_all`` resolves them in submission order."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args):
        future = Future()
        self.jobs.append((future, fn, args))
        return future

    def run_all(self):
        jobs, self.jobs = self.jobs, []
        for future, fn, args in jobs:
            try:
                future.set_result(fn(*args))
            except Exception as exc:
                future.set_exception(exc)


class CountingLocator:
    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = 0

    def detect_face_position(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def frames():
    return ManualFrames()


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def wide_image():
    """1000x500 source: at a 300px viewport the coverage scale is 0.6."""
    return Image.new("RGB", (1000, 500), (120, 120, 120))
