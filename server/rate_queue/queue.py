"""
Rate-Limited Request Queue

Serializes asynchronous work items and enforces a minimum delay between the
start of consecutive executions. It knows nothing about HTTP or payloads:
callers hand in zero-argument coroutine factories and await the result.

Usage:
    queue = RateLimitedQueue(min_delay_ms=500, name="edsm")

    body = await queue.enqueue(lambda: fetch("system", params))

Guarantees (per queue instance):
  - at most one work item executes at a time
  - items start in enqueue order
  - start(n+1) - start(n) >= min_delay
  - a failing item only fails its own caller; the queue keeps draining
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Work = Callable[[], Awaitable[T]]


class QueueClosedError(Exception):
    """Raised when work is submitted to a closed queue."""


@dataclass
class QueueEntry(Generic[T]):
    """A pending unit of work and the future its caller awaits."""

    work: Work[T]
    future: asyncio.Future[T]


@dataclass
class QueueStats:
    """Counters for one queue instance."""

    enqueued: int = 0
    completed: int = 0
    failed: int = 0
    abandoned: int = 0


class RateLimitedQueue:
    """
    FIFO work queue with a single drain loop and a start-to-start delay floor.

    Args:
        min_delay_ms: Minimum milliseconds between the start of two
                      consecutive executions.
        name:         Label used in log records.
        clock:        Monotonic clock in seconds (injectable for tests).
    """

    def __init__(
        self,
        min_delay_ms: float,
        *,
        name: str = "queue",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_delay_ms < 0:
            raise ValueError("min_delay_ms must be >= 0")
        self._min_delay = min_delay_ms / 1000.0
        self._name = name
        self._clock = clock

        self._pending: deque[QueueEntry[Any]] = deque()
        self._draining = False
        self._drain_task: Optional[asyncio.Task[None]] = None
        self._current: Optional[QueueEntry[Any]] = None
        self._last_start: Optional[float] = None
        self._closed = False
        self._stats = QueueStats()

    @property
    def name(self) -> str:
        return self._name

    @property
    def min_delay_ms(self) -> float:
        return self._min_delay * 1000.0

    @property
    def pending(self) -> int:
        """Entries waiting to start (excludes the one in flight)."""
        return len(self._pending)

    @property
    def draining(self) -> bool:
        return self._draining

    @property
    def stats(self) -> QueueStats:
        return self._stats

    # ── Public API ────────────────────────────────────────────────────────────

    async def enqueue(self, work: Work[T]) -> T:
        """
        Schedule work and wait for its result.

        Raises whatever the work raised. Cancelling the awaiting caller
        before the work has started removes it from the queue.

        Raises:
            QueueClosedError: If close() was called.
        """
        if self._closed:
            raise QueueClosedError(f"Queue '{self._name}' is closed")

        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        self._pending.append(QueueEntry(work=work, future=future))
        self._stats.enqueued += 1

        # Appended before the idle check, so an active loop always sees it
        if not self._draining:
            self._draining = True
            self._drain_task = asyncio.create_task(self._drain())

        return await future

    async def close(self) -> None:
        """Stop draining and cancel every entry that has not completed."""
        self._closed = True

        # The drain loop clears _current on exit, so capture it first
        current = self._current
        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if current is not None and not current.future.done():
            current.future.cancel()
            self._stats.abandoned += 1
        self._current = None

        while self._pending:
            entry = self._pending.popleft()
            if not entry.future.done():
                entry.future.cancel()
                self._stats.abandoned += 1

        self._draining = False
        logger.debug("Queue '%s' closed", self._name)

    # ── Drain loop ────────────────────────────────────────────────────────────

    def _wait_time(self) -> float:
        if self._last_start is None:
            return 0.0
        elapsed = self._clock() - self._last_start
        return max(0.0, self._min_delay - elapsed)

    async def _drain(self) -> None:
        try:
            while self._pending:
                entry = self._pending.popleft()
                if entry.future.done():
                    # Caller gave up before the work started
                    self._stats.abandoned += 1
                    continue

                self._current = entry

                # Timers may fire marginally early; re-check after each sleep
                wait = self._wait_time()
                while wait > 0:
                    await asyncio.sleep(wait)
                    wait = self._wait_time()

                if entry.future.done():
                    self._stats.abandoned += 1
                    continue

                await self._execute(entry)
        finally:
            self._draining = False
            self._current = None
            if self._pending and not self._closed:
                # Interrupted with work left; hand it to a fresh loop
                self._draining = True
                self._drain_task = asyncio.create_task(self._drain())

    async def _execute(self, entry: QueueEntry[Any]) -> None:
        self._current = entry
        self._last_start = self._clock()
        try:
            result = await entry.work()
        except asyncio.CancelledError:
            if not entry.future.done():
                entry.future.cancel()
            raise
        except Exception as exc:
            self._stats.failed += 1
            logger.debug(
                "Queue '%s' work item failed: %s",
                self._name,
                exc,
            )
            if not entry.future.done():
                entry.future.set_exception(exc)
        else:
            self._stats.completed += 1
            if not entry.future.done():
                entry.future.set_result(result)
        finally:
            self._current = None
