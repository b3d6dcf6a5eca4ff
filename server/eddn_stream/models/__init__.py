"""
EDDN Stream Data Models
"""
from eddn_stream.models.message import (
    ClassificationResult,
    ConnectionState,
    ConnectionStatus,
    DecodedMessage,
    MessageEvent,
    RelevantMessageEvent,
    StreamEvent,
)

__all__ = [
    "ClassificationResult",
    "ConnectionState",
    "ConnectionStatus",
    "DecodedMessage",
    "MessageEvent",
    "RelevantMessageEvent",
    "StreamEvent",
]
