"""
EDDN Stream Core Utilities

Exceptions and reconnection state shared by the stream components.
"""
from eddn_stream.core.types import (
    ConnectionError,
    DecodeError,
    DecodeErrorKind,
    EddnStreamError,
    ReconnectionState,
    RequestError,
    ValidationError,
)

__all__ = [
    "ConnectionError",
    "DecodeError",
    "DecodeErrorKind",
    "EddnStreamError",
    "ReconnectionState",
    "RequestError",
    "ValidationError",
]
