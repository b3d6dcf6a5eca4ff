"""
rate_queue: Generic rate-limited async work queue.

Public API:
    RateLimitedQueue   serialize coroutine factories with a delay floor
    QueueClosedError   raised when enqueuing on a closed queue
"""
from .queue import QueueClosedError, QueueEntry, QueueStats, RateLimitedQueue

__all__ = [
    "QueueClosedError",
    "QueueEntry",
    "QueueStats",
    "RateLimitedQueue",
]
