# src/concurrency/limiter.py — v1
"""FIFO concurrency limiter for calls to rate-limited external services.

At most ``max_concurrent`` tasks run at once. Pending tasks wait in a FIFO
queue; each scheduling pass admits at most one of them. A pass runs when a task
is enqueued and again ``request_delay_s`` after every settlement, which spaces
out request bursts towards the analysis provider.

The limiter is a plain object: the pipeline builds one per run and hands it to
every call site that needs throttling.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[Any]]


class TaskTimeoutError(Exception):
    """An admitted task ran longer than the limiter's task timeout."""


class ConcurrencyLimiter:
    """Bound the number of in-flight tasks, admitting in arrival order.

    Args:
        max_concurrent: Maximum tasks running at once (>= 1).
        request_delay_s: Pause between a settlement and the next admission.
        task_timeout_s: Optional per-task wall clock limit.
    """

    def __init__(
        self,
        max_concurrent: int,
        request_delay_s: float = 0.0,
        task_timeout_s: float | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if request_delay_s < 0:
            raise ValueError("request_delay_s must be >= 0")
        if task_timeout_s is not None and task_timeout_s <= 0:
            raise ValueError("task_timeout_s must be > 0 when set")
        self._max_concurrent = max_concurrent
        self._request_delay_s = request_delay_s
        self._task_timeout_s = task_timeout_s
        self._queue: deque[tuple[TaskFactory, asyncio.Future[Any]]] = deque()
        self._running: set[asyncio.Task[None]] = set()
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def in_flight(self) -> int:
        """Tasks admitted and not yet settled."""
        return self._in_flight

    @property
    def pending(self) -> int:
        """Tasks queued and waiting for a slot."""
        return len(self._queue)

    @property
    def peak_in_flight(self) -> int:
        """Highest in-flight count observed since construction."""
        return self._peak_in_flight

    async def execute(self, task: Callable[[], Awaitable[T]]) -> T:
        """Queue a task and wait for its result.

        Args:
            task: Zero-argument callable returning an awaitable. It is only
                called once the task is admitted.

        Returns:
            Whatever the task's awaitable returns.

        Raises:
            TaskTimeoutError: The task exceeded ``task_timeout_s``.
            Exception: Any error raised by the task, unchanged.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        self._queue.append((task, future))
        self._schedule()
        return await future

    def _schedule(self) -> None:
        """One scheduling pass: admit at most one queued task."""
        # Callers that gave up before admission are dropped here.
        while self._queue and self._queue[0][1].done():
            self._queue.popleft()

        if self._in_flight >= self._max_concurrent or not self._queue:
            return

        task, future = self._queue.popleft()
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        logger.debug(
            "Admitted task (in_flight=%d, pending=%d)",
            self._in_flight, len(self._queue),
        )

        runner = asyncio.get_running_loop().create_task(self._run(task, future))
        self._running.add(runner)
        runner.add_done_callback(self._running.discard)
        future.add_done_callback(
            lambda f: runner.cancel() if f.cancelled() else None
        )

    async def _run(self, task: TaskFactory, future: asyncio.Future[Any]) -> None:
        try:
            if self._task_timeout_s is None:
                result = await task()
            else:
                try:
                    result = await asyncio.wait_for(task(), self._task_timeout_s)
                except asyncio.TimeoutError as e:
                    raise TaskTimeoutError(
                        f"Task exceeded timeout of {self._task_timeout_s}s"
                    ) from e
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            self._in_flight -= 1
            self._on_settled()

    def _on_settled(self) -> None:
        if self._request_delay_s > 0:
            asyncio.get_running_loop().call_later(
                self._request_delay_s, self._schedule
            )
        else:
            self._schedule()
