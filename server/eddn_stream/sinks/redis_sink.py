"""
Redis Broadcast Sink

Fans decoded EDDN traffic out to Redis pub/sub channels through
FeedPublisher so that any number of downstream services (persistence,
websocket gateways) can consume it.

Channel naming scheme:
  eddn:all               every decoded message
  eddn:schema:{type}     e.g. eddn:schema:commodity
  eddn:mining            mining-relevant messages only
"""
from __future__ import annotations

import logging
from typing import Any

from pub_sub_feed import FeedPublisher, PublisherError, SerializationError

from eddn_stream.classifier.classifier import extract_schema_type
from eddn_stream.models.message import MessageEvent, RelevantMessageEvent, StreamEvent

logger = logging.getLogger(__name__)

ALL = "eddn:all"
MINING = "eddn:mining"
SCHEMA_PREFIX = "eddn:schema:"


def schema_channel(schema_type: str) -> str:
    return f"{SCHEMA_PREFIX}{schema_type}"


def channels_for_event(event: StreamEvent) -> list[str]:
    """
    Return the channels an event should be published to.

    A MessageEvent goes to eddn:all plus its schema channel; a
    RelevantMessageEvent goes to eddn:mining only.
    """
    if isinstance(event, RelevantMessageEvent):
        return [MINING]

    result = [ALL]
    schema_type = extract_schema_type(event.message.schema_ref)
    if schema_type:
        result.append(schema_channel(schema_type))
    return result


def event_to_dict(event: StreamEvent) -> dict[str, Any]:
    data = event.message.to_dict()
    if isinstance(event, RelevantMessageEvent):
        data = {
            "schemaType": event.result.schema_type,
            "reason": event.result.matched_reason,
            "data": data,
        }
    return data


class RedisBroadcastSink:
    """
    Publishes stream events to Redis.

    Publish failures are logged and counted; they never reach the
    subscriber's receive loop.
    """

    def __init__(self, redis_url: str) -> None:
        self._publisher = FeedPublisher(redis_url)
        self.published = 0
        self.failures = 0

    async def connect(self) -> None:
        """Open the Redis connection."""
        await self._publisher.connect()

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._publisher.close()

    async def __aenter__(self) -> RedisBroadcastSink:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def handle(self, event: StreamEvent) -> None:
        if not isinstance(event, (MessageEvent, RelevantMessageEvent)):
            return

        channels = channels_for_event(event)
        try:
            await self._publisher.publish_many(channels, event_to_dict(event))
        except (PublisherError, SerializationError) as e:
            self.failures += 1
            logger.error(
                f"Failed to broadcast EDDN message: {e}",
                extra={"channels": channels, "error": str(e)},
            )
            return

        self.published += 1
