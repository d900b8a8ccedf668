"""
Sample data model shared by every stream.

Each logical stream is identified by a :class:`StreamId`. Streams belong to one
of two source families:

  - ``external`` : the wearable streaming over the wireless link
                   (heart rate, acceleration, angular velocity)
  - ``internal`` : the host device's built-in motion sensors
                   (linear acceleration, angular velocity)

Three-axis payloads use :class:`Orientation` for both acceleration and angular
velocity; which one it is follows from the stream the sample arrived on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class SourceFamily(str, Enum):
    EXTERNAL = "external"
    INTERNAL = "internal"


class StreamKind(str, Enum):
    HEART_RATE = "heart_rate"
    ACCELERATION = "acceleration"
    ANGULAR_VELOCITY = "angular_velocity"


class StreamId(str, Enum):
    """Identity of one independently startable/stoppable sample feed."""

    EXTERNAL_HEART_RATE = "external_heart_rate"
    EXTERNAL_ACCELERATION = "external_acceleration"
    EXTERNAL_ANGULAR_VELOCITY = "external_angular_velocity"
    INTERNAL_ACCELERATION = "internal_acceleration"
    INTERNAL_ANGULAR_VELOCITY = "internal_angular_velocity"

    @property
    def family(self) -> SourceFamily:
        return _FAMILIES[self]

    @property
    def kind(self) -> StreamKind:
        return _KINDS[self]

    @classmethod
    def parse(cls, name: str) -> "StreamId":
        """Resolve ``name`` (value or member name, any case) to a StreamId."""
        key = str(name).strip().lower().replace("-", "_")
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Unknown stream {name!r}")


_FAMILIES = {
    StreamId.EXTERNAL_HEART_RATE: SourceFamily.EXTERNAL,
    StreamId.EXTERNAL_ACCELERATION: SourceFamily.EXTERNAL,
    StreamId.EXTERNAL_ANGULAR_VELOCITY: SourceFamily.EXTERNAL,
    StreamId.INTERNAL_ACCELERATION: SourceFamily.INTERNAL,
    StreamId.INTERNAL_ANGULAR_VELOCITY: SourceFamily.INTERNAL,
}

_KINDS = {
    StreamId.EXTERNAL_HEART_RATE: StreamKind.HEART_RATE,
    StreamId.EXTERNAL_ACCELERATION: StreamKind.ACCELERATION,
    StreamId.EXTERNAL_ANGULAR_VELOCITY: StreamKind.ANGULAR_VELOCITY,
    StreamId.INTERNAL_ACCELERATION: StreamKind.ACCELERATION,
    StreamId.INTERNAL_ANGULAR_VELOCITY: StreamKind.ANGULAR_VELOCITY,
}


def acceleration_stream(family: SourceFamily) -> StreamId:
    if family is SourceFamily.EXTERNAL:
        return StreamId.EXTERNAL_ACCELERATION
    return StreamId.INTERNAL_ACCELERATION


def angular_velocity_stream(family: SourceFamily) -> StreamId:
    if family is SourceFamily.EXTERNAL:
        return StreamId.EXTERNAL_ANGULAR_VELOCITY
    return StreamId.INTERNAL_ANGULAR_VELOCITY


@dataclass(frozen=True, slots=True)
class Orientation:
    """Three-axis reading (m/s² for acceleration, rad/s or deg/s for gyro)."""

    x: float
    y: float
    z: float

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


ZERO_ORIENTATION = Orientation(0.0, 0.0, 0.0)


@dataclass(frozen=True, slots=True)
class HeartRate:
    bpm: int


Payload = Union[Orientation, HeartRate]


@dataclass(frozen=True, slots=True)
class Sample:
    stream_id: StreamId
    payload: Payload
    timestamp_ms: int

    @property
    def orientation(self) -> Optional[Orientation]:
        return self.payload if isinstance(self.payload, Orientation) else None

    @property
    def heart_rate(self) -> Optional[int]:
        return self.payload.bpm if isinstance(self.payload, HeartRate) else None
