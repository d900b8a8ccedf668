"""Typed errors raised by the streaming engine."""

from __future__ import annotations

from typing import Optional

from .sensors.models import StreamId


class ElevSenseError(Exception):
    """Base class for engine errors."""


class SubscriptionFailed(ElevSenseError):
    """The source could not start delivering samples for a stream."""

    def __init__(self, stream_id: StreamId, reason: Optional[str] = None) -> None:
        self.stream_id = stream_id
        self.reason = reason
        message = f"Subscription to {stream_id.value} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SourceUnavailable(SubscriptionFailed):
    """The sensor or device behind a stream is missing."""

    def __init__(self, stream_id: StreamId, reason: Optional[str] = None) -> None:
        super().__init__(stream_id, reason or "sensor unavailable")


class AlreadyRecording(ElevSenseError):
    """``begin`` was called while a recording session is active."""


class NotRecording(ElevSenseError):
    """``finalize`` was called with no active recording session."""
