"""FIFO serializer for asynchronous storage operations.

:class:`OperationSerializer` guarantees that at most one operation runs at a
time and that operations start in the order they were submitted, no matter
how many coroutines call :meth:`~OperationSerializer.run` concurrently. It
replaces a lock with a chain of futures: every call waits for the *tail*
left by the previous call and installs its own future as the new tail.

A failing operation only fails its own caller. The tail future is always
resolved with ``None``, so the next operation starts regardless of how the
previous one ended.

Once started, an operation runs in its own task and always completes, even
when the caller awaiting it is cancelled. The queue advances only after it
has finished.

Each instance is independent; two serializers impose no ordering on each
other.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class OperationSerializer:
    """Run coroutine factories one at a time, in submission order.

    Example::

        serializer = OperationSerializer()
        results = await asyncio.gather(
            serializer.run(lambda: slow_write("a")),
            serializer.run(lambda: fast_write("b")),
        )
        # slow_write finished before fast_write started
    """

    def __init__(self) -> None:
        self._tail: Optional[asyncio.Future[None]] = None

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Queue *operation* behind everything submitted so far and await its result.

        Args:
            operation: Zero-argument callable returning an awaitable. It is
                not invoked until every previously queued operation has
                finished.

        Returns:
            Whatever *operation* returns.

        Raises:
            Exception: Whatever *operation* raises; the queue is unaffected.
            asyncio.CancelledError: If the caller is cancelled. An operation
                that already started still runs to completion.
        """
        previous = self._tail
        current: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._tail = current
        task: Optional[asyncio.Future[T]] = None
        try:
            if previous is not None and not previous.done():
                await asyncio.shield(previous)
            task = asyncio.ensure_future(operation())
            return await asyncio.shield(task)
        finally:
            self._release(previous, current, task)

    @staticmethod
    def _release(
        previous: Optional[asyncio.Future[None]],
        current: asyncio.Future[None],
        task: Optional[asyncio.Future[Any]],
    ) -> None:
        if task is not None:
            # The caller may have been cancelled while the operation was running.
            if task.done():
                _resolve(current)
            else:
                task.add_done_callback(lambda finished: _settle(finished, current))
        elif previous is not None and not previous.done():
            # Cancelled while still waiting: keep successors behind the
            # operation that is running ahead of this one.
            previous.add_done_callback(lambda _: _resolve(current))
        else:
            _resolve(current)


def _settle(task: asyncio.Future[Any], current: asyncio.Future[None]) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.warning("Operation finished after its caller was cancelled: %s", task.exception())
    _resolve(current)


def _resolve(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)
