"""
Core Type Definitions and Exceptions

Service-specific exceptions and reconnection bookkeeping for the EDDN stream.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


def _preview(value: Any, limit: int = 80) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


class EddnStreamError(Exception):
    """
    Base exception for all EDDN stream errors.

    context holds structured details for log records; None values are
    dropped so subclasses can pass optional fields straight through.
    """

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in (context or {}).items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} [{details}]"


class DecodeErrorKind(str, Enum):
    """Why a frame could not be decoded."""

    EMPTY = "empty"
    MALFORMED = "malformed"


class DecodeError(EddnStreamError):
    """Raised when a relay frame cannot be turned into a message."""

    def __init__(
        self,
        message: str,
        kind: DecodeErrorKind,
        frame_size: int = 0,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, {**(context or {}), "kind": kind.value, "frame_size": frame_size})
        self.kind = kind
        self.frame_size = frame_size


class ValidationError(EddnStreamError):
    """Raised when a classifier rules document is missing or malformed."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        path: Any = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, {
            **(context or {}),
            "path": None if path is None else str(path),
            "field": field or None,
            "value": None if value is None else _preview(value),
        })
        self.field = field
        self.value = value
        self.path = path


class ConnectionError(EddnStreamError):
    """Raised when the relay connection fails or goes silent."""

    def __init__(
        self,
        message: str,
        service: str = "eddn",
        retry_count: int = 0,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, {**(context or {}), "service": service, "retry_count": retry_count})
        self.service = service
        self.retry_count = retry_count


class RequestError(EddnStreamError):
    """Raised when a queued third-party API call fails."""

    def __init__(
        self,
        message: str,
        service: str,
        url: str,
        status: Optional[int] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, {**(context or {}), "service": service, "status": status, "url": url})
        self.service = service
        self.url = url
        self.status = status


@dataclass
class ReconnectionState:
    """
    Tracks reconnection attempts.

    With the default multiplier of 1.0 every attempt waits the same fixed
    interval; a larger multiplier grows the delay up to max_delay_seconds.
    """

    initial_delay_seconds: float = 30.0
    max_delay_seconds: float = 300.0
    multiplier: float = 1.0
    jitter_factor: float = 0.0
    current_delay: float = field(default=0.0, init=False)
    attempt_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.initial_delay_seconds < 0:
            raise ValueError("initial_delay_seconds must be >= 0")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        self.current_delay = self.initial_delay_seconds

    def next_delay(self) -> float:
        """Return the delay for the next attempt and advance the state."""
        delay = self.current_delay

        if self.jitter_factor:
            jitter = delay * self.jitter_factor
            delay = delay + random.uniform(-jitter, jitter)

        self.current_delay = min(
            self.current_delay * self.multiplier,
            max(self.max_delay_seconds, self.initial_delay_seconds),
        )
        self.attempt_count += 1

        return max(0.0, delay)

    def reset(self) -> None:
        """Reset state after the relay starts delivering again."""
        self.current_delay = self.initial_delay_seconds
        self.attempt_count = 0
