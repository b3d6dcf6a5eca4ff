"""
Feed Serializer

Converts between plain dicts and the JSON strings published to Redis.
pub_sub_feed has no knowledge of EDDN message types; callers convert their
objects to dicts before handing them over.

serialize() is the producer side used by FeedPublisher. deserialize() is the
consumer side of the same contract, for downstream services subscribed to
the eddn:* channels.

Wire format (envelope):
  {
    "channel":      "eddn:mining",
    "published_at": "2026-01-01T12:00:00+00:00",
    "data":         { ...payload... }
  }
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any


class SerializationError(Exception):
    """Raised when serialization or deserialization fails."""


def serialize(channel: str, data: dict[str, Any]) -> str:
    """
    Encode a channel name and payload into a JSON envelope.

    Non-JSON values (datetimes, enums) are coerced with str().

    Raises SerializationError if encoding fails.
    """
    envelope = {
        "channel": channel,
        "published_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }
    try:
        return json.dumps(envelope, default=str, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to serialize feed message: {exc}") from exc


def deserialize(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """
    Decode a JSON envelope into (channel, data).

    Raises SerializationError if decoding fails or the envelope is malformed.
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        envelope = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SerializationError(f"Failed to deserialize feed message: {exc}") from exc

    if not isinstance(envelope, dict) or "channel" not in envelope or "data" not in envelope:
        found = list(envelope.keys()) if isinstance(envelope, dict) else type(envelope).__name__
        raise SerializationError(
            f"Malformed feed envelope, expected {{channel, data}}, got: {found}"
        )

    return envelope["channel"], envelope["data"]
