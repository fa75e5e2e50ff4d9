"""Console Interaction -- asks questions on a terminal.

A daemon thread reads lines from the input stream and hands non-empty
answers to the event loop through an asyncio.Queue. Each ask() races
three things: the run context's cancellation, a fixed timeout, and the
next answer. Whichever resolves first wins; the others are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from collections.abc import Sequence
from typing import IO

from clarify.context import RunContext
from clarify.errors import Cancelled, InteractionClosed, InteractionTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

EMPTY_ANSWER_PROMPT = "Please provide non empty answer"

# Queued by the reader thread when input ends
_EOF = object()

# Empty marker for the held-answer slot
_NOTHING = object()


class TerminalReader:
    """Interaction implementation over line-buffered text streams."""

    def __init__(
        self,
        source: IO[str] | None = None,
        output: IO[str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._source = source if source is not None else sys.stdin
        self._output = output if output is not None else sys.stdout
        self._timeout = timeout
        self._queue: asyncio.Queue[object] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()
        self._closed = False
        # answer that arrived together with a cancellation; served before the queue
        self._held: object = _NOTHING

    def start(self) -> None:
        """Start the background reader. Must be called from a running loop."""
        if self._thread is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._thread = threading.Thread(
            target=self._read_loop, name="terminal-reader", daemon=True
        )
        self._thread.start()
        logger.debug("Terminal reader started")

    def close(self) -> None:
        """Ask the reader thread to exit after its current read."""
        self._stopping.set()

    def _emit(self, item: object) -> None:
        assert self._loop is not None and self._queue is not None
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # event loop already closed; nobody is listening any more
            self._stopping.set()

    def _read_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                line = self._source.readline()
            except (OSError, ValueError) as e:
                self._emit(e)
                return

            if line == "":
                self._emit(_EOF)
                return

            sentence = line.strip()
            if not sentence:
                self._print(EMPTY_ANSWER_PROMPT)
                continue

            self._emit(sentence)

    def _print(self, text: str = "") -> None:
        print(text, file=self._output, flush=True)

    def _show_question(self, question: str, choices: Sequence[str]) -> None:
        self._print(question)
        if choices:
            last = len(choices) - 1
            for i, choice in enumerate(choices):
                self._print(f"{choice}{'' if i == last else ', '}")
            self._print()

    async def ask(self, ctx: RunContext, question: str, choices: Sequence[str]) -> str:
        """Print the question and wait for one non-empty line."""
        ctx.check()
        if self._closed:
            raise InteractionClosed("input stream closed")
        self._show_question(question, choices)
        self.start()
        assert self._queue is not None

        if self._held is not _NOTHING:
            item, self._held = self._held, _NOTHING
            return self._take(item)

        answer_task = asyncio.create_task(self._queue.get())
        cancel_task = asyncio.create_task(ctx.wait_cancelled())
        try:
            done, pending = await asyncio.wait(
                {answer_task, cancel_task},
                timeout=self._timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (answer_task, cancel_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(answer_task, cancel_task, return_exceptions=True)

        if cancel_task in done:
            if answer_task in done and not answer_task.cancelled():
                # keep the answer for the next caller, ahead of queued lines
                self._held = answer_task.result()
            raise Cancelled(ctx.reason or "context cancelled")

        if answer_task not in done:
            logger.warning("No answer within %.0fs", self._timeout)
            raise InteractionTimeout("Response was not provided in time")

        return self._take(answer_task.result())

    def _take(self, item: object) -> str:
        """Turn a reader item into an answer, or raise if input has ended."""
        if item is _EOF:
            self._closed = True
            raise InteractionClosed("input stream closed")
        if isinstance(item, Exception):
            self._closed = True
            raise InteractionClosed(f"failed to read input: {item}") from item
        return str(item)
