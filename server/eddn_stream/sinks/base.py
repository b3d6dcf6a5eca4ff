"""
Event Sink Protocol

Sinks are the consumers of the subscriber's output stream. They are passed
to EDDNSubscriber at construction and receive every event in arrival order.
A persistence layer or a broadcast layer plugs in by satisfying this
protocol.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from eddn_stream.models.message import StreamEvent


@runtime_checkable
class EventSink(Protocol):
    """Consumes MessageEvent / RelevantMessageEvent values."""

    async def handle(self, event: StreamEvent) -> None:
        """
        Process one event.

        Called sequentially from the receive loop; a slow sink delays the
        next frame. Exceptions are logged by the subscriber and do not stop
        the stream or the other sinks.
        """
        ...
