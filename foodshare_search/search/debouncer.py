"""
Debouncer - coalesces bursts of query changes into one search dispatch.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


class Debouncer:
    """
    Delays dispatch until query changes go quiet.

    The pending run covers both the quiet-period timer and the search it
    dispatches, so cancelling it cancels the two as a unit.

    Attributes:
        dispatch: Async callable that runs the search for a query text
        delay_seconds: Quiet period before dispatching
    """

    def __init__(
        self,
        dispatch: Callable[[str], Awaitable[None]],
        delay_seconds: float = 0.3
    ):
        self.dispatch = dispatch
        self.delay_seconds = delay_seconds
        self._pending: Optional[asyncio.Task] = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def on_query_changed(self, text: str) -> None:
        """Restart the quiet period for text, dropping any earlier pending run.

        Must be called from within the running event loop.
        """
        self.cancel()
        self._pending = asyncio.create_task(self._run_after_delay(text))
        self._pending.add_done_callback(self._log_failure)

    async def search_now(self, text: str) -> None:
        """Dispatch immediately, bypassing and cancelling any pending run."""
        self.cancel()
        await self.dispatch(text)

    def cancel(self) -> None:
        if self.has_pending:
            self._pending.cancel()
        self._pending = None

    async def wait(self) -> None:
        """Wait for the pending run, if any, to finish or be cancelled."""
        task = self._pending
        if task is None:
            return
        await asyncio.gather(task, return_exceptions=True)

    async def _run_after_delay(self, text: str) -> None:
        await asyncio.sleep(self.delay_seconds)
        await self.dispatch(text)

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Debounced search failed unexpectedly: {type(error).__name__}: {error}")
