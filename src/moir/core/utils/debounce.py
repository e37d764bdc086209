"""Debounced callbacks on the asyncio event loop.

Each ``trigger()`` cancels the pending timer and starts a new one, so only
the last trigger inside a quiet window runs the callback. Used for search
input (300 ms) and entry autosave (2 s).

Usage::

    debouncer = Debouncer(2.0, editor.autosave)
    debouncer.trigger()   # on every keystroke
    ...
    await debouncer.close()
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable

from loguru import logger

Callback = Callable[[], Awaitable[None] | None]


class Debouncer:
    """Run *callback* once *delay* seconds have passed without a new trigger."""

    def __init__(self, delay: float, callback: Callback, *, name: str = "debounce"):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self.name = name
        self._callback = callback
        self._timer: asyncio.Task | None = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """Whether a timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    def trigger(self) -> None:
        """(Re)start the quiet-period timer. Must be called from the event loop."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.create_task(self._wait_then_fire())

    def cancel(self) -> None:
        """Drop the pending timer, if any. An in-flight callback is left alone."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def flush(self) -> None:
        """Fire now if a timer is pending."""
        if not self.pending:
            return
        self.cancel()
        await self._fire()

    async def close(self) -> None:
        """Cancel the timer and wait for any callback already running."""
        self.cancel()
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self.delay)
        # Detach before firing so a trigger during the callback cannot cancel it
        task = asyncio.current_task()
        if task is not None:
            self._running.add(task)
            task.add_done_callback(self._running.discard)
        self._timer = None
        await self._fire()

    async def _fire(self) -> None:
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.warning(f"{self.name} callback failed: {exc}")
