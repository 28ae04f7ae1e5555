"""Error sinks for fire-and-forget stanza writers."""

from __future__ import annotations

import asyncio
from typing import Protocol

from loguru import logger

from xmppconn.config import cfg


class ErrorSink(Protocol):
    """Destination for errors raised by writers that do not raise themselves."""

    def report(self, exc: BaseException) -> None:
        """Accept one error. Must not block and must not raise."""
        ...


class NullErrorSink:
    """Installed when the caller provides no sink. Logs and drops."""

    def report(self, exc: BaseException) -> None:
        logger.debug("No error sink installed; dropping {}: {}", type(exc).__name__, exc)


class QueueErrorSink:
    """Bounded asyncio.Queue of errors. Drops (with a warning) when full.

    Any number of coroutines may report concurrently. The sink binds to the
    first event loop that reports to it or waits on it; reports from any
    other thread are handed to that loop with call_soon_threadsafe.
    """

    def __init__(self, maxsize: int | None = None) -> None:
        self._queue: asyncio.Queue[BaseException] = asyncio.Queue(
            maxsize=cfg.error_queue_size if maxsize is None else maxsize
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._bind_running_loop()

    @property
    def queue(self) -> asyncio.Queue[BaseException]:
        return self._queue

    def _bind_running_loop(self) -> asyncio.AbstractEventLoop | None:
        """Cache the loop running in this thread, if none is bound yet."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            return None
        if self._loop is None or self._loop.is_closed():
            self._loop = running
        return running

    def report(self, exc: BaseException) -> None:
        running = self._bind_running_loop()
        if self._loop is not None and running is not self._loop:
            self._loop.call_soon_threadsafe(self._put, exc)
            return
        # On the bound loop, or no loop has touched the sink yet
        self._put(exc)

    def _put(self, exc: BaseException) -> None:
        try:
            self._queue.put_nowait(exc)
        except asyncio.QueueFull:
            logger.warning("Error sink full; dropping {}: {}", type(exc).__name__, exc)

    async def get(self) -> BaseException:
        """Wait for the next reported error."""
        self._bind_running_loop()
        return await self._queue.get()

    def get_nowait(self) -> BaseException:
        return self._queue.get_nowait()

    def empty(self) -> bool:
        return self._queue.empty()

    def qsize(self) -> int:
        return self._queue.qsize()
