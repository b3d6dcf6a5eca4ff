"""
EDDN Frame Decoder

Turns one compressed relay frame into a DecodedMessage.

Wire format (per frame):
  zlib( utf-8 JSON {
    "$schemaRef": "https://eddn.edcd.io/schemas/<type>/<version>",
    "header":     { ...uploader, software... },
    "message":    { ...schema specific payload... }
  } )

The relay publishes zlib streams; raw deflate (no zlib header) is accepted
as well. Every failure surfaces as DecodeError so the caller can log the
frame and move on.
"""
from __future__ import annotations

import json
import zlib
from typing import Any, Optional

from eddn_stream.core.types import DecodeError, DecodeErrorKind
from eddn_stream.models.message import DecodedMessage

# Preview length used when a frame fails to parse
PREVIEW_LENGTH = 200


def _decompress(raw: bytes) -> bytes:
    try:
        return zlib.decompress(raw)
    except zlib.error:
        pass

    try:
        return zlib.decompress(raw, -zlib.MAX_WBITS)
    except zlib.error as e:
        raise DecodeError(
            f"Failed to decompress frame: {e}",
            kind=DecodeErrorKind.MALFORMED,
            frame_size=len(raw),
        ) from e


def _optional_object(envelope: dict[str, Any], key: str, frame_size: int) -> dict[str, Any]:
    value = envelope.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError(
            f"Envelope field '{key}' must be an object",
            kind=DecodeErrorKind.MALFORMED,
            frame_size=frame_size,
            context={"field": key},
        )
    return value


def decode(raw: Optional[bytes]) -> DecodedMessage:
    """
    Decode a compressed relay frame.

    Raises:
        DecodeError: kind EMPTY for a missing or zero-length frame, kind
            MALFORMED when decompression, UTF-8 decoding, JSON parsing or
            the envelope shape is invalid. No other exception escapes.
    """
    if not raw:
        raise DecodeError("Received empty frame", kind=DecodeErrorKind.EMPTY)

    if not isinstance(raw, (bytes, bytearray, memoryview)):
        raise DecodeError(
            f"Frame must be bytes, got {type(raw).__name__}",
            kind=DecodeErrorKind.MALFORMED,
        )

    raw = bytes(raw)
    frame_size = len(raw)
    payload = _decompress(raw)

    try:
        envelope = json.loads(payload.decode("utf-8"))
    except ValueError as e:
        # Covers JSONDecodeError, UnicodeDecodeError and int digit-limit errors
        raise DecodeError(
            f"Failed to parse frame as JSON: {e}",
            kind=DecodeErrorKind.MALFORMED,
            frame_size=frame_size,
            context={"preview": payload[:PREVIEW_LENGTH].decode("utf-8", "replace")},
        ) from e
    except RecursionError as e:
        raise DecodeError(
            "Frame JSON nested too deeply",
            kind=DecodeErrorKind.MALFORMED,
            frame_size=frame_size,
        ) from e

    if not isinstance(envelope, dict):
        raise DecodeError(
            f"Frame must be a JSON object, got {type(envelope).__name__}",
            kind=DecodeErrorKind.MALFORMED,
            frame_size=frame_size,
        )

    schema_ref = envelope.get("$schemaRef")
    if schema_ref is not None and not isinstance(schema_ref, str):
        schema_ref = None

    return DecodedMessage(
        schema_ref=schema_ref,
        header=_optional_object(envelope, "header", frame_size),
        body=_optional_object(envelope, "message", frame_size),
        raw=envelope,
    )
