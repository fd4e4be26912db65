"""
Render coalescing: at most one transform application per frame (Qt-free).

``FrameScheduler`` wraps a "run this on the next frame" primitive.  Any number
of ``schedule()`` calls between two frames collapse into one ``apply()`` call
that sees the final state.  The Qt host supplies a ``QTimer`` based
``call_later``; tests supply one that just stores the callback.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

CallLater = Callable[[Callable[[], None]], None]


class FrameScheduler:
    def __init__(self, apply: Callable[[], None], call_later: CallLater):
        self._apply = apply
        self._call_later = call_later
        self._pending = False
        # Bumped on cancel so a frame callback queued earlier becomes a no-op
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._pending

    def schedule(self):
        """Request an ``apply()`` on the next frame; absorbed if one is already queued."""
        if self._pending:
            return
        self._pending = True
        generation = self._generation
        self._call_later(lambda: self._run(generation))

    def flush(self):
        """Run the pending frame now (headless hosts and shutdown)."""
        if self._pending:
            self._pending = False
            self._apply()

    def cancel(self):
        """Drop the pending frame, if any."""
        if self._pending:
            logger.debug("Cancelled pending frame")
        self._pending = False
        self._generation += 1

    def next_frame(self, callback: Callable[[], None]):
        """Run *callback* on the next frame without touching the coalescing flag."""
        generation = self._generation

        def _guarded():
            if generation == self._generation:
                callback()

        self._call_later(_guarded)

    def _run(self, generation: int):
        if generation != self._generation or not self._pending:
            return
        self._pending = False
        self._apply()
