"""
Clock and timer abstractions.

Services never read the wall clock or create timers directly; they receive a
``Clock`` and a ``Scheduler`` so that tests can substitute a fake clock and
fire timers on demand.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, Optional, Set, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]
Delay = Union[float, Callable[[], float]]


class Clock:
    """Source of the current time. All engine timestamps are UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


SystemClock = Clock


class ScheduledHandle:
    """Cancellable reference to a scheduled or recurring callback."""

    def __init__(self, cancel_fn: Optional[Callable[[], None]] = None):
        self._cancel_fn = cancel_fn
        self._cancelled = False

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._cancel_fn is not None:
            self._cancel_fn()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class Scheduler(ABC):
    """
    Timer interface used for facilitator reply delays and periodic sweeps.

    Implementations must isolate callback failures: an exception raised by
    one run is logged and never cancels a recurring timer.
    """

    @abstractmethod
    def after(self, delay: Delay, callback: Callback) -> ScheduledHandle:
        """
        Run ``callback`` once after ``delay`` seconds.

        Args:
            delay: Seconds, or a zero-argument function returning seconds
            callback: Coroutine function to run

        Returns:
            Handle that cancels the pending run
        """
        pass

    @abstractmethod
    def every(self, interval: float, callback: Callback) -> ScheduledHandle:
        """Run ``callback`` every ``interval`` seconds until cancelled."""
        pass


async def run_guarded(callback: Callback, label: str = "scheduled callback") -> None:
    """Await a callback, logging instead of propagating its errors."""
    try:
        await callback()
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception(f"Error in {label}")


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self):
        self._handles: Set[ScheduledHandle] = set()
        self._tasks: Set[asyncio.Task] = set()

    def after(self, delay: Delay, callback: Callback) -> ScheduledHandle:
        seconds = delay() if callable(delay) else delay
        loop = asyncio.get_running_loop()
        state = {"task": None}

        def fire() -> None:
            self._handles.discard(handle)
            task = loop.create_task(run_guarded(callback))
            state["task"] = task
            self._track(task)

        timer = loop.call_later(max(0.0, seconds), fire)

        def cancel() -> None:
            timer.cancel()
            if state["task"] is not None:
                state["task"].cancel()
            self._handles.discard(handle)

        handle = ScheduledHandle(cancel)
        self._handles.add(handle)
        return handle

    def every(self, interval: float, callback: Callback) -> ScheduledHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")

        async def repeat() -> None:
            while True:
                await asyncio.sleep(interval)
                await run_guarded(callback, "recurring callback")

        task = asyncio.get_running_loop().create_task(repeat())
        self._track(task)

        def cancel() -> None:
            task.cancel()
            self._handles.discard(handle)

        handle = ScheduledHandle(cancel)
        self._handles.add(handle)
        return handle

    def shutdown(self) -> None:
        """Cancel every outstanding timer and running callback."""
        for handle in list(self._handles):
            handle.cancel()
        for task in list(self._tasks):
            task.cancel()

    @property
    def pending_count(self) -> int:
        return len(self._handles)

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
