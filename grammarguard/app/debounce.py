"""Coalescing trigger for snapshot persistence."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from grammarguard.observability.logging import get_logger

logger = get_logger(__name__)


class Debouncer:
    """
    Run action once after delay seconds without a further trigger().

    Each trigger restarts the quiet period, so a burst of edits produces a
    single write of the latest state. Without a running event loop the action
    runs immediately.
    """

    def __init__(
        self,
        action: Callable[[], object],
        delay: float,
        sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.action = action
        self.delay = delay
        self._sleep = sleep_fn
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.action()
            return
        self._task = loop.create_task(self._fire_later())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def flush(self) -> None:
        """Run a pending action now instead of waiting out the quiet period."""
        if self.pending:
            self.cancel()
            self.action()

    async def _fire_later(self) -> None:
        await self._sleep(self.delay)
        self._task = None
        self.action()
