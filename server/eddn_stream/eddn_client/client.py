"""
EDDN Relay Subscriber

Long-lived ZeroMQ SUB connection to the EDDN relay. Every frame is decoded,
classified and handed to the configured sinks in arrival order.

State machine:
    DISCONNECTED --connect()--> CONNECTING --socket open--> STREAMING
    STREAMING --error / silent relay--> RECONNECTING --timer--> CONNECTING
    any --disconnect()--> DISCONNECTED

At most one socket, one receive task and one reconnect timer exist at any
time.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Iterable, Optional

import zmq
import zmq.asyncio

from eddn_stream.classifier.classifier import MessageClassifier
from eddn_stream.core.types import ConnectionError, DecodeError, ReconnectionState
from eddn_stream.eddn_client.decoder import decode
from eddn_stream.models.message import (
    ConnectionState,
    ConnectionStatus,
    MessageEvent,
    RelevantMessageEvent,
    StreamEvent,
)
from eddn_stream.sinks.base import EventSink

logger = logging.getLogger(__name__)

DEFAULT_RELAY_URL = "tcp://eddn.edcd.io:9500"


class EDDNSubscriber:
    """
    Subscriber for the EDDN relay with automatic reconnection.

    Args:
        relay_url:       ZeroMQ endpoint of the relay.
        classifier:      Mining relevance classifier.
        sinks:           Consumers of the emitted events.
        reconnection:    Reconnect delay policy (fixed 30s by default).
        receive_timeout: Seconds without a frame before the connection is
                         considered dead. None or 0 disables the check.
        stats_every:     Log throughput every N processed messages.
        context:         ZeroMQ asyncio context; the shared instance if omitted.
    """

    def __init__(
        self,
        relay_url: str,
        classifier: MessageClassifier,
        sinks: Iterable[EventSink] = (),
        *,
        reconnection: Optional[ReconnectionState] = None,
        receive_timeout: Optional[float] = 600.0,
        stats_every: int = 1000,
        context: Optional[zmq.asyncio.Context] = None,
    ) -> None:
        if stats_every < 1:
            raise ValueError("stats_every must be >= 1")

        self._relay_url = relay_url
        self._classifier = classifier
        self._sinks: tuple[EventSink, ...] = tuple(sinks)
        self._reconnection = reconnection or ReconnectionState()
        self._receive_timeout = receive_timeout or None
        self._stats_every = stats_every
        self._context = context

        # Connection state
        self._state = ConnectionState()
        self._started_monotonic = time.monotonic()
        self._running = False
        self._socket: Optional[zmq.asyncio.Socket] = None

        # Task management
        self._receive_task: Optional[asyncio.Task[None]] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._reconnect_task: Optional[asyncio.Task[None]] = None

        # Stats
        self._frames_dropped = 0

    @property
    def relay_url(self) -> str:
        return self._relay_url

    @property
    def state(self) -> ConnectionState:
        """Current connection state. Treat as read-only."""
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def connected(self) -> bool:
        """Check if currently streaming from the relay."""
        return self._state.status is ConnectionStatus.STREAMING and self._socket is not None

    @property
    def reconnect_pending(self) -> bool:
        """True while a reconnect timer is scheduled."""
        return self._reconnect_handle is not None

    @property
    def message_count(self) -> int:
        return self._state.message_count

    @property
    def frames_dropped(self) -> int:
        return self._frames_dropped

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """
        Open the relay subscription and start the receive loop.

        Never raises for transport problems: a failed attempt moves the
        subscriber to RECONNECTING and schedules the next attempt.
        """
        self._running = True
        self._cancel_reconnect_timer()
        await self._teardown()

        self._set_status(ConnectionStatus.CONNECTING)
        logger.info(f"Connecting to EDDN relay {self._relay_url}")

        try:
            socket = self._open_socket()
        except zmq.ZMQError as e:
            logger.error(
                f"Failed to connect to EDDN relay: {e}",
                extra={"url": self._relay_url, "error": str(e)},
            )
            self._handle_connection_error(
                ConnectionError(
                    f"Failed to connect: {e}",
                    service="eddn",
                    retry_count=self._reconnection.attempt_count,
                )
            )
            return

        self._socket = socket
        self._set_status(ConnectionStatus.STREAMING)
        self._receive_task = asyncio.create_task(self._receive_loop(socket))

    async def disconnect(self) -> None:
        """
        Stop streaming, cancel any pending reconnect and release the socket.

        Safe to call repeatedly.
        """
        self._running = False
        self._cancel_reconnect_timer()

        current = asyncio.current_task()
        if (
            self._reconnect_task is not None
            and self._reconnect_task is not current
            and not self._reconnect_task.done()
        ):
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        await self._teardown()

        if self._state.status is not ConnectionStatus.DISCONNECTED:
            self._set_status(ConnectionStatus.DISCONNECTED)
            logger.info(
                "Disconnected from EDDN",
                extra={"messages_received": self._state.message_count},
            )

    async def __aenter__(self) -> EDDNSubscriber:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.disconnect()

    def _open_socket(self) -> zmq.asyncio.Socket:
        context = self._context or zmq.asyncio.Context.instance()
        socket = context.socket(zmq.SUB)
        try:
            socket.setsockopt(zmq.SUBSCRIBE, b"")
            socket.connect(self._relay_url)
        except zmq.ZMQError:
            socket.close(linger=0)
            raise
        return socket

    def _close_socket(self) -> None:
        if self._socket is None:
            return
        try:
            self._socket.close(linger=0)
        except zmq.ZMQError as e:
            logger.warning(
                "Error closing EDDN socket",
                extra={"error": str(e)},
            )
        finally:
            self._socket = None

    async def _teardown(self) -> None:
        """Cancel the receive loop (unless we are inside it) and close the socket."""
        task = self._receive_task
        self._receive_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._close_socket()

    # ── Reconnection ──────────────────────────────────────────────────────────

    def _handle_connection_error(self, error: Exception) -> None:
        self._state.last_error = str(error)
        self._close_socket()

        if not self._running:
            return

        self._set_status(ConnectionStatus.RECONNECTING)
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect_timer()

        delay = self._reconnection.next_delay()
        logger.warning(
            "EDDN connection lost, reconnecting",
            extra={
                "attempt": self._reconnection.attempt_count,
                "delay_seconds": delay,
                "error": self._state.last_error,
            },
        )

        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._on_reconnect_timer)

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if not self._running:
            return
        logger.info("Attempting to reconnect to EDDN")
        self._reconnect_task = asyncio.create_task(self.connect())

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is not self._state.status:
            logger.debug(
                f"EDDN subscriber {self._state.status.value} -> {status.value}",
            )
        self._state.status = status

    # ── Receive loop ──────────────────────────────────────────────────────────

    async def _receive(self, socket: zmq.asyncio.Socket) -> list[bytes]:
        if self._receive_timeout is None:
            return await socket.recv_multipart()
        return await asyncio.wait_for(socket.recv_multipart(), self._receive_timeout)

    async def _receive_loop(self, socket: zmq.asyncio.Socket) -> None:
        """Main receive loop; one frame at a time, in order."""
        try:
            while self._running:
                parts = await self._receive(socket)
                await self._handle_frame(parts[-1] if parts else b"")

        except asyncio.CancelledError:
            raise

        except asyncio.TimeoutError:
            if self._socket is socket:
                self._handle_connection_error(
                    ConnectionError(
                        f"No frames from relay for {self._receive_timeout}s",
                        service="eddn",
                        retry_count=self._reconnection.attempt_count,
                    )
                )

        except Exception as e:
            if self._socket is socket:
                logger.error(
                    "EDDN receive loop failed",
                    extra={"error": str(e)},
                    exc_info=True,
                )
                self._handle_connection_error(
                    ConnectionError(
                        f"Receive failed: {e}",
                        service="eddn",
                        retry_count=self._reconnection.attempt_count,
                    )
                )

    async def _handle_frame(self, raw: bytes) -> None:
        try:
            message = decode(raw)
        except DecodeError as e:
            self._frames_dropped += 1
            logger.warning(
                "Dropping undecodable EDDN frame",
                extra={"error": str(e), "kind": e.kind.value},
            )
            return
        except Exception as e:
            # A bad frame must never reach the reconnect path
            self._frames_dropped += 1
            logger.error(
                "Unexpected error decoding EDDN frame, dropping it",
                extra={"error": str(e), "frame_size": len(raw)},
                exc_info=True,
            )
            return

        self._state.message_count += 1
        if self._reconnection.attempt_count:
            self._reconnection.reset()

        try:
            result = self._classifier.classify(message)
        except Exception as e:
            logger.error(
                "Unexpected error classifying message",
                extra={"error": str(e), "schema_ref": message.schema_ref},
                exc_info=True,
            )
            result = None

        if result is not None and result.is_relevant:
            await self._emit(RelevantMessageEvent(message=message, result=result))
        await self._emit(MessageEvent(message=message))

        if self._state.message_count % self._stats_every == 0:
            stats = self.get_stats()
            logger.info(
                f"EDDN: Processed {stats['message_count']} messages "
                f"({stats['messages_per_second']:.2f} msg/s)",
            )

    async def _emit(self, event: StreamEvent) -> None:
        for sink in self._sinks:
            try:
                await sink.handle(event)
            except Exception as e:
                logger.error(
                    "Sink failed to handle event",
                    extra={
                        "sink": type(sink).__name__,
                        "event": type(event).__name__,
                        "error": str(e),
                    },
                    exc_info=True,
                )

    def get_stats(self) -> dict[str, Any]:
        """Get connection statistics."""
        uptime = max(time.monotonic() - self._started_monotonic, 1e-9)
        return {
            "connected": self.connected,
            "status": self._state.status.value,
            "message_count": self._state.message_count,
            "frames_dropped": self._frames_dropped,
            "started_at": self._state.started_at.isoformat(),
            "uptime_seconds": uptime,
            "messages_per_second": self._state.message_count / uptime,
            "last_error": self._state.last_error,
            "reconnect_attempts": self._reconnection.attempt_count,
        }
