"""
Tests for rate_queue.queue

Uses the real event loop clock; delays are kept small.
"""
import asyncio
import time

import pytest

from rate_queue import QueueClosedError, RateLimitedQueue


# ── Helpers ───────────────────────────────────────────────────────────────────

def _recording_work(log: list, value, *, fail: bool = False, duration: float = 0.0):
    async def work():
        log.append(("start", value, time.monotonic()))
        if duration:
            await asyncio.sleep(duration)
        log.append(("end", value, time.monotonic()))
        if fail:
            raise RuntimeError(f"item {value} failed")
        return value

    return work


# ── Construction ──────────────────────────────────────────────────────────────

def test_negative_delay_rejected():
    with pytest.raises(ValueError):
        RateLimitedQueue(min_delay_ms=-1)


def test_properties():
    queue = RateLimitedQueue(min_delay_ms=250, name="edsm")
    assert queue.name == "edsm"
    assert queue.min_delay_ms == 250
    assert queue.pending == 0
    assert not queue.draining


# ── Ordering and spacing ──────────────────────────────────────────────────────

async def test_n_items_respect_delay_and_order():
    queue = RateLimitedQueue(min_delay_ms=100)
    log: list = []
    n = 5

    started = time.monotonic()
    results = await asyncio.gather(
        *(queue.enqueue(_recording_work(log, i)) for i in range(n))
    )
    elapsed = time.monotonic() - started

    assert results == list(range(n))
    assert elapsed >= (n - 1) * 0.1

    starts = [(value, ts) for kind, value, ts in log if kind == "start"]
    assert [value for value, _ in starts] == list(range(n))
    gaps = [b[1] - a[1] for a, b in zip(starts, starts[1:])]
    assert all(gap >= 0.1 for gap in gaps)


async def test_first_item_runs_without_delay():
    queue = RateLimitedQueue(min_delay_ms=500)

    started = time.monotonic()
    assert await queue.enqueue(_recording_work([], "x")) == "x"

    assert time.monotonic() - started < 0.25


async def test_items_never_overlap():
    queue = RateLimitedQueue(min_delay_ms=0)
    log: list = []

    await asyncio.gather(
        *(queue.enqueue(_recording_work(log, i, duration=0.01)) for i in range(4))
    )

    kinds = [kind for kind, _, _ in log]
    assert kinds == ["start", "end"] * 4


async def test_delay_measured_between_starts():
    queue = RateLimitedQueue(min_delay_ms=100)
    log: list = []

    # Each item takes longer than the delay, so no extra waiting is needed
    started = time.monotonic()
    await asyncio.gather(
        *(queue.enqueue(_recording_work(log, i, duration=0.15)) for i in range(3))
    )
    elapsed = time.monotonic() - started

    assert elapsed < 0.15 * 3 + 0.1


async def test_enqueue_while_draining_is_picked_up():
    queue = RateLimitedQueue(min_delay_ms=20)
    log: list = []

    first = asyncio.create_task(queue.enqueue(_recording_work(log, "a", duration=0.02)))
    await asyncio.sleep(0)
    assert queue.draining

    second = await queue.enqueue(_recording_work(log, "b"))

    assert await first == "a"
    assert second == "b"
    assert not queue.draining


async def test_queue_restarts_after_going_idle():
    queue = RateLimitedQueue(min_delay_ms=10)

    assert await queue.enqueue(_recording_work([], 1)) == 1
    await asyncio.sleep(0.02)
    assert not queue.draining
    assert await queue.enqueue(_recording_work([], 2)) == 2


# ── Failure isolation ─────────────────────────────────────────────────────────

async def test_failing_item_does_not_stop_queue():
    queue = RateLimitedQueue(min_delay_ms=10)
    log: list = []

    results = await asyncio.gather(
        *(queue.enqueue(_recording_work(log, i, fail=(i == 2))) for i in range(5)),
        return_exceptions=True,
    )

    assert results[:2] == [0, 1]
    assert isinstance(results[2], RuntimeError)
    assert str(results[2]) == "item 2 failed"
    assert results[3:] == [3, 4]
    assert [value for kind, value, _ in log if kind == "start"] == [0, 1, 2, 3, 4]
    assert queue.stats.failed == 1
    assert queue.stats.completed == 4


async def test_error_reaches_only_its_caller():
    queue = RateLimitedQueue(min_delay_ms=0)

    async def boom():
        raise ValueError("bad request")

    with pytest.raises(ValueError, match="bad request"):
        await queue.enqueue(boom)

    assert await queue.enqueue(_recording_work([], "ok")) == "ok"


# ── Cancellation ──────────────────────────────────────────────────────────────

async def test_abandoned_entry_is_skipped():
    queue = RateLimitedQueue(min_delay_ms=50)
    log: list = []

    first = asyncio.create_task(queue.enqueue(_recording_work(log, 1)))
    second = asyncio.create_task(queue.enqueue(_recording_work(log, 2)))
    third = asyncio.create_task(queue.enqueue(_recording_work(log, 3)))
    await asyncio.sleep(0.01)

    second.cancel()

    assert await first == 1
    assert await third == 3
    with pytest.raises(asyncio.CancelledError):
        await second
    assert [value for kind, value, _ in log if kind == "start"] == [1, 3]
    assert queue.stats.abandoned == 1


async def test_close_cancels_pending_entries():
    queue = RateLimitedQueue(min_delay_ms=1000)

    first = asyncio.create_task(queue.enqueue(_recording_work([], 1)))
    second = asyncio.create_task(queue.enqueue(_recording_work([], 2)))
    await asyncio.sleep(0.01)
    assert await first == 1

    await queue.close()

    with pytest.raises(asyncio.CancelledError):
        await second
    assert not queue.draining


async def test_enqueue_after_close_raises():
    queue = RateLimitedQueue(min_delay_ms=0)
    await queue.close()

    with pytest.raises(QueueClosedError):
        await queue.enqueue(_recording_work([], 1))


async def test_queues_are_independent():
    slow = RateLimitedQueue(min_delay_ms=300, name="slow")
    fast = RateLimitedQueue(min_delay_ms=0, name="fast")

    await slow.enqueue(_recording_work([], "s1"))
    pending_slow = asyncio.create_task(slow.enqueue(_recording_work([], "s2")))

    started = time.monotonic()
    assert await fast.enqueue(_recording_work([], "f1")) == "f1"
    assert time.monotonic() - started < 0.2

    assert await pending_slow == "s2"
