"""
Cancellable debounced task for the asyncio event loop.

Each schedule() call cancels the pending timer and arms a new one; the
callback runs once the quiet period elapses without another schedule().
A callback that has already started runs to completion; callers that
need ordering against it serialize inside the callback.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set

from screenconf.core.logging import get_logger

logger = get_logger(__name__)


class DebouncedTask:
    """Debounce an async callback on the running event loop."""

    def __init__(
        self,
        delay: float,
        callback: Callable[..., Awaitable[Any]],
        name: str = "debounced",
    ):
        self.delay = delay
        self.callback = callback
        self.name = name
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True while a timer is armed and its callback has not started."""
        return self._timer is not None and not self._timer.done()

    def schedule(self, *args: Any, **kwargs: Any) -> None:
        """(Re-)arm the timer with the latest arguments."""
        self.cancel()
        task = asyncio.get_running_loop().create_task(
            self._run(args, kwargs), name=self.name
        )
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def cancel(self) -> bool:
        """Drop the pending call without running it."""
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            logger.debug("Debounced call cancelled", task=self.name)
            return True
        return False

    async def _run(self, args: tuple, kwargs: dict) -> None:
        await asyncio.sleep(self.delay)
        # in flight from here on: cancel() no longer reaches this call
        if self._timer is asyncio.current_task():
            self._timer = None
        try:
            await self.callback(*args, **kwargs)
        except Exception as e:
            logger.error("Debounced call failed", task=self.name, error=str(e))

    async def wait_idle(self) -> None:
        """Wait until no timer or running callback remains."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
