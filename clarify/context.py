"""Cooperative cancellation for a single dialog.

One RunContext is shared by every blocking point of a dialog
(capability resolution, each interaction, each generation call).
Cancellation is a one-way latch: once set it stays set.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from clarify.errors import Cancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RunContext:
    """Cancellation signal observed by the dialog loops and their collaborators."""

    def __init__(self) -> None:
        self._cancelled = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "context cancelled") -> None:
        """Cancel the context. Later calls keep the first reason."""
        if self._cancelled.is_set():
            return
        self._reason = reason
        self._cancelled.set()
        logger.debug("Run context cancelled: %s", reason)

    def check(self) -> None:
        """Raise Cancelled if the context has been cancelled."""
        if self._cancelled.is_set():
            raise Cancelled(self._reason or "context cancelled")

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()

    async def race(self, work: Awaitable[T]) -> T:
        """Await work, abandoning it as soon as the context is cancelled.

        The losing side is cancelled and awaited so no task leaks.
        Raises Cancelled if cancellation wins (or was already set).
        """
        self.check()
        work_task = asyncio.ensure_future(work)
        cancel_task = asyncio.create_task(self._cancelled.wait())
        try:
            done, _ = await asyncio.wait(
                {work_task, cancel_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            work_task.cancel()
            cancel_task.cancel()
            raise

        if work_task in done:
            cancel_task.cancel()
            await asyncio.gather(cancel_task, return_exceptions=True)
            return work_task.result()

        work_task.cancel()
        await asyncio.gather(work_task, return_exceptions=True)
        raise Cancelled(self._reason or "context cancelled")
