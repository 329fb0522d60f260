"""Frame scheduling for the visualizer's render loop."""

from collections.abc import Callable
from itertools import count
from typing import Protocol

FrameCallback = Callable[[], None]


class FrameScheduler(Protocol):
    """Host frame-timing primitive: one callback per request, run once."""

    def request_frame(self, callback: FrameCallback) -> int: ...

    def cancel_frame(self, handle: int) -> None: ...


class PendingFrames:
    """Bookkeeping shared by schedulers: pending callbacks keyed by handle."""

    def __init__(self) -> None:
        self._pending: dict[int, FrameCallback] = {}
        self._ids = count(1)

    def __len__(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def run_pending(self) -> int:
        """Run the callbacks pending right now, in request order.

        Frames requested while these run wait for the next call, so ticks
        never overlap. Returns how many callbacks ran.
        """
        ran = 0
        for handle in sorted(self._pending):
            callback = self._pending.pop(handle, None)
            # cancelled by an earlier callback in this batch
            if callback is None:
                continue
            callback()
            ran += 1
        return ran


class ManualFrameScheduler(PendingFrames):
    """Frames advance only when asked. Used for tests and headless rendering."""

    def advance(self, frames: int = 1) -> int:
        ran = 0
        for _ in range(frames):
            if not self:
                break
            ran += self.run_pending()
        return ran
