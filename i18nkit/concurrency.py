"""Bounded FIFO execution of coroutine factories."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Set, Tuple

TaskFactory = Callable[[], Awaitable[Any]]


class ConcurrencyController:
    """Runs at most ``max_concurrency`` submitted tasks at a time.

    Tasks start in submission order. A task's failure is delivered through
    its future only; the controller never retries and never cancels
    siblings. The controller is bound to the running event loop at the
    first :meth:`add`.
    """

    def __init__(self, max_concurrency: int = 5) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.running = 0
        self._queue: Deque[Tuple[TaskFactory, asyncio.Future]] = deque()
        self._tasks: Set[asyncio.Task] = set()

    def add(self, factory: TaskFactory) -> asyncio.Future:
        """Queue ``factory`` and return a future for its result."""

        future = asyncio.get_running_loop().create_future()
        self._queue.append((factory, future))
        self._drain()
        return future

    def get_status(self) -> Dict[str, int]:
        return {
            "running": self.running,
            "queued": len(self._queue),
            "max_concurrency": self.max_concurrency,
        }

    def _drain(self) -> None:
        while self.running < self.max_concurrency and self._queue:
            factory, future = self._queue.popleft()
            if future.cancelled():
                continue
            self.running += 1
            task = asyncio.ensure_future(self._run(factory, future))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, factory: TaskFactory, future: asyncio.Future) -> None:
        try:
            result = await factory()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            self.running -= 1
            self._drain()
