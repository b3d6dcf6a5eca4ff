"""
Logging Sink

Writes a one-line summary of every mining-relevant message to the log.
"""
from __future__ import annotations

import logging

from eddn_stream.models.message import RelevantMessageEvent, StreamEvent

logger = logging.getLogger(__name__)


class LoggingSink:
    """Logs relevant messages at INFO; ignores raw traffic."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self.logged = 0

    async def handle(self, event: StreamEvent) -> None:
        if not isinstance(event, RelevantMessageEvent):
            return

        self.logged += 1
        message = event.message
        self._log.info(
            f"[{event.result.schema_type}] {event.result.matched_reason}",
            extra={
                "schema_type": event.result.schema_type,
                "event": message.event,
                "system": message.system_name,
                "uploader": message.uploader_id,
            },
        )
