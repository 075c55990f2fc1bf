"""Frame schedulers driving the monitoring loop."""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class FrameScheduler(ABC):
    """Runs a callback once on the next frame."""

    @abstractmethod
    def request_frame(self, callback: Callable[[], None]) -> Any:
        """Schedule ``callback`` for the next frame and return a cancellable handle."""
        pass

    @abstractmethod
    def cancel_frame(self, handle: Any) -> None:
        pass


class AsyncioFrameScheduler(FrameScheduler):
    """Frames paced by the running asyncio event loop."""

    def __init__(self, frame_rate: float = 60.0, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.frame_interval = 1.0 / frame_rate
        self.loop = loop

    def request_frame(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self.loop or asyncio.get_running_loop()
        return loop.call_later(self.frame_interval, callback)

    def cancel_frame(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class ManualFrameScheduler(FrameScheduler):
    """Frames advanced explicitly by the host, e.g. a GUI timer or a test."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._pending: Dict[int, Callable[[], None]] = {}

    @property
    def pending(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def run_frame(self) -> int:
        """Run every callback due this frame; returns how many ran."""
        due, self._pending = self._pending, {}
        for callback in due.values():
            callback()
        return len(due)
