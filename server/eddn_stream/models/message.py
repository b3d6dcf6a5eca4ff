"""
EDDN Message Models

Data structures for messages at each stage of the stream pipeline and for
the events handed to sinks. Value objects are frozen dataclasses.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


@dataclass(frozen=True)
class DecodedMessage:
    """
    One decompressed, parsed relay frame.

    body is the payload's "message" object, header its optional "header"
    object. raw keeps the full envelope for collaborators that persist it.

    Every sink receives the same instance, so the three mappings are exposed
    as read-only views. Nested values (e.g. the commodities list) are shared
    as well and must not be modified by sinks; use to_dict() for a copy.
    """

    schema_ref: Optional[str]
    header: Mapping[str, Any]
    body: Mapping[str, Any]
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        for name in ("header", "body", "raw"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(value))

    @property
    def has_body(self) -> bool:
        """True when the envelope carried a "message" object."""
        return bool(self.body) or isinstance(self.raw.get("message"), dict)

    @property
    def event(self) -> Optional[str]:
        """Journal event name, if the body carries one."""
        value = self.body.get("event")
        return value if isinstance(value, str) else None

    @property
    def system_name(self) -> Optional[str]:
        value = self.body.get("systemName") or self.body.get("StarSystem")
        return value if isinstance(value, str) else None

    @property
    def uploader_id(self) -> Optional[str]:
        value = self.header.get("uploaderID")
        return value if isinstance(value, str) else None

    def to_dict(self) -> dict[str, Any]:
        """Envelope in relay format as a new plain dict, suitable for JSON serialization."""
        if self.raw:
            return dict(self.raw)
        envelope: dict[str, Any] = {"message": dict(self.body), "header": dict(self.header)}
        if self.schema_ref is not None:
            envelope["$schemaRef"] = self.schema_ref
        return envelope


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of the mining relevance check for one message."""

    is_relevant: bool
    schema_type: Optional[str] = None
    matched_reason: Optional[str] = None

    @classmethod
    def rejected(cls, reason: str, schema_type: Optional[str] = None) -> ClassificationResult:
        return cls(is_relevant=False, schema_type=schema_type, matched_reason=reason)

    @classmethod
    def accepted(cls, schema_type: str, reason: str) -> ClassificationResult:
        return cls(is_relevant=True, schema_type=schema_type, matched_reason=reason)


class ConnectionStatus(str, Enum):
    """Lifecycle of the relay subscription."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"


@dataclass
class ConnectionState:
    """Mutable connection bookkeeping owned by a single subscriber."""

    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    message_count: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_error: Optional[str] = None


@dataclass(frozen=True)
class MessageEvent:
    """Emitted for every decoded frame, relevant or not."""

    message: DecodedMessage


@dataclass(frozen=True)
class RelevantMessageEvent:
    """Emitted only for frames classified as mining relevant."""

    message: DecodedMessage
    result: ClassificationResult


StreamEvent = Union[MessageEvent, RelevantMessageEvent]
