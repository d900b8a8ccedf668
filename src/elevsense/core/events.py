"""Events published by the stream coordinator to its sinks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from ..sensors.models import Sample, SourceFamily, StreamId


class Algorithm(str, Enum):
    EWMA = "ewma"
    COMPLEMENTARY = "complementary"


class AngleChannel(str, Enum):
    """Recording/export key for derived angles (one per family and algorithm)."""

    EXTERNAL_EWMA = "external_ewma"
    EXTERNAL_COMPLEMENTARY = "external_complementary"
    INTERNAL_EWMA = "internal_ewma"
    INTERNAL_COMPLEMENTARY = "internal_complementary"

    @classmethod
    def of(cls, family: SourceFamily, algorithm: Algorithm) -> "AngleChannel":
        return cls(f"{family.value}_{algorithm.value}")


@dataclass(frozen=True, slots=True)
class AngleEstimate:
    family: SourceFamily
    algorithm: Algorithm
    value_degrees: float
    timestamp_ms: int

    @property
    def channel(self) -> AngleChannel:
        return AngleChannel.of(self.family, self.algorithm)


@dataclass(frozen=True, slots=True)
class RunStateChanged:
    """The set of running streams after a start/stop."""

    running: frozenset[StreamId]


EngineEvent = Union[Sample, AngleEstimate, RunStateChanged]


class EventSink(Protocol):
    """Common interface implemented by Aggregator/Recorder."""

    def handle_event(self, event: EngineEvent) -> None:  # pragma: no cover - protocol
        ...
