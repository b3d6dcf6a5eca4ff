"""
Tests for pub_sub_feed.serializer
"""
import json
from datetime import datetime, timezone
from enum import Enum

import pytest

from pub_sub_feed.serializer import SerializationError, deserialize, serialize


class Color(Enum):
    RED = "red"


# ── serialize() ───────────────────────────────────────────────────────────────

def test_serialize_envelope_fields():
    raw = serialize("eddn:all", {"schemaRef": "https://eddn.edcd.io/schemas/commodity/3"})

    envelope = json.loads(raw)
    assert envelope["channel"] == "eddn:all"
    assert envelope["data"] == {"schemaRef": "https://eddn.edcd.io/schemas/commodity/3"}
    published = datetime.fromisoformat(envelope["published_at"])
    assert published.tzinfo is not None


def test_serialize_is_compact():
    raw = serialize("eddn:all", {"a": 1, "b": [1, 2]})

    assert ", " not in raw
    assert ": " not in raw


def test_serialize_coerces_non_json_values():
    when = datetime(2026, 1, 1, tzinfo=timezone.utc)

    envelope = json.loads(serialize("eddn:all", {"when": when, "color": Color.RED}))

    assert envelope["data"]["when"] == str(when)
    assert envelope["data"]["color"] == str(Color.RED)


def test_serialize_circular_raises():
    circular: dict = {}
    circular["self"] = circular

    with pytest.raises(SerializationError):
        serialize("eddn:all", circular)


# ── deserialize() ─────────────────────────────────────────────────────────────

def test_deserialize_str_and_bytes():
    raw = serialize("eddn:mining", {"reason": "MarketSell of Painite"})

    assert deserialize(raw) == ("eddn:mining", {"reason": "MarketSell of Painite"})
    assert deserialize(raw.encode("utf-8")) == ("eddn:mining", {"reason": "MarketSell of Painite"})


def test_deserialize_invalid_json():
    with pytest.raises(SerializationError, match="Failed to deserialize"):
        deserialize("{not json")


def test_deserialize_invalid_utf8():
    with pytest.raises(SerializationError):
        deserialize(b"\xff\xfe")


@pytest.mark.parametrize("raw", [
    '["eddn:all"]',
    '{"channel": "eddn:all"}',
    '{"data": {}}',
])
def test_deserialize_malformed_envelope(raw):
    with pytest.raises(SerializationError, match="Malformed feed envelope"):
        deserialize(raw)
