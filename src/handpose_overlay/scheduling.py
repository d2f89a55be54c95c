"""Display-frame scheduling primitives for the render loop."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol

from handpose_overlay.exceptions import ConfigurationError

FrameCallback = Callable[[], Awaitable[None]]


class FrameHandle(Protocol):
    """Handle of one scheduled frame; cancelling prevents the frame from starting."""

    def cancel(self) -> None: ...


class FrameScheduler(Protocol):
    """Protocol for requesting the next display frame."""

    def request_frame(self, callback: FrameCallback) -> FrameHandle: ...


class AsyncioFrameHandle:
    """Handle for a frame scheduled on an asyncio event loop."""

    def __init__(self, timer: asyncio.TimerHandle) -> None:
        self._timer = timer
        self.task: asyncio.Task[None] | None = None

    @property
    def started(self) -> bool:
        """Return whether the frame callback has already been started."""
        return self.task is not None

    def cancel(self) -> None:
        """Cancel the frame if it has not started yet.

        A frame that already started is left to finish on its own.
        """
        self._timer.cancel()


class AsyncioFrameScheduler:
    """Schedule frames on the running asyncio loop at a fixed interval.

    This plays the part of a display refresh callback: each request runs the
    callback once, ``frame_interval_s`` seconds later, as a new task.
    """

    def __init__(self, frame_interval_s: float = 1.0 / 60.0) -> None:
        """Create a frame scheduler.

        :param frame_interval_s:
            Delay between a request and the start of the frame.
        :raises ConfigurationError:
            If the interval is negative.
        """
        if frame_interval_s < 0:
            raise ConfigurationError("frame_interval_s must be non-negative.")
        self._frame_interval_s = frame_interval_s
        self._tasks: set[asyncio.Task[None]] = set()

    def request_frame(self, callback: FrameCallback) -> AsyncioFrameHandle:
        """Schedule ``callback`` for the next frame.

        :param callback:
            Coroutine function run once when the frame fires.
        :returns:
            Cancellable frame handle.
        """
        loop = asyncio.get_running_loop()
        handle: AsyncioFrameHandle

        def _fire() -> None:
            task = loop.create_task(callback())
            self._tasks.add(task)
            task.add_done_callback(self._forget)
            handle.task = task

        handle = AsyncioFrameHandle(loop.call_later(self._frame_interval_s, _fire))
        return handle

    def _forget(self, task: asyncio.Task[None]) -> None:
        # Callbacks record their own failures; mark the exception retrieved.
        self._tasks.discard(task)
        if not task.cancelled():
            task.exception()
