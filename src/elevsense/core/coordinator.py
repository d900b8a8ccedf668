"""
Stream lifecycle and per-sample fusion.

:class:`StreamCoordinator` is the single authority for "is stream X running".
It holds at most one subscription per :class:`StreamId`, owns the elevation
filters, and turns every delivered sample into events for its sinks:

  - the raw :class:`Sample` itself
  - for acceleration streams, one :class:`AngleEstimate` per algorithm
  - :class:`RunStateChanged` after every start/stop

All deliveries go through one re-entrant lock, so filter state is mutated by
one thread at a time and samples of a stream are processed in arrival order.
Each subscription is bound to a ticket; samples carrying a ticket that is no
longer current (in flight while the stream was stopped) are discarded.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from ..analysis.elevation import ComplementaryElevationFilter, EwmaElevationFilter
from ..config import FusionConfig
from ..errors import SourceUnavailable, SubscriptionFailed
from ..sensors.models import (
    ZERO_ORIENTATION,
    HeartRate,
    Orientation,
    Payload,
    Sample,
    SourceFamily,
    StreamId,
    StreamKind,
    angular_velocity_stream,
)
from ..sensors.sources import SampleSource, SubscriptionHandle
from .events import Algorithm, AngleEstimate, EngineEvent, EventSink, RunStateChanged

logger = logging.getLogger(__name__)


class StartResult(str, Enum):
    STARTED = "started"
    ALREADY_RUNNING = "already_running"


class StreamGroup(str, Enum):
    """Composite modes that drive several streams together."""

    EXTERNAL_IMU = "external_imu"
    INTERNAL_IMU = "internal_imu"

    @property
    def streams(self) -> tuple[StreamId, ...]:
        if self is StreamGroup.EXTERNAL_IMU:
            return (StreamId.EXTERNAL_ACCELERATION, StreamId.EXTERNAL_ANGULAR_VELOCITY)
        return (StreamId.INTERNAL_ACCELERATION, StreamId.INTERNAL_ANGULAR_VELOCITY)


@dataclass(slots=True)
class _ActiveStream:
    source: SampleSource
    ticket: object
    handle: Optional[SubscriptionHandle] = None


class StreamCoordinator:
    """Owns run flags, subscriptions and elevation filters for every stream."""

    def __init__(
        self,
        sources: Mapping[SourceFamily, SampleSource],
        config: FusionConfig | None = None,
        *,
        sinks: Iterable[EventSink] = (),
    ) -> None:
        cfg = (config or FusionConfig()).sanitized()
        self._sources: Dict[SourceFamily, SampleSource] = dict(sources)
        self._lock = threading.RLock()
        self._active: Dict[StreamId, _ActiveStream] = {}
        self._latest: Dict[StreamId, Sample] = {}
        self._sinks: List[EventSink] = list(sinks)

        eps = cfg.degenerate_epsilon
        self._ewma: Dict[SourceFamily, EwmaElevationFilter] = {
            SourceFamily.EXTERNAL: EwmaElevationFilter(alpha=cfg.external_ewma_alpha, epsilon=eps),
            SourceFamily.INTERNAL: EwmaElevationFilter(alpha=cfg.internal_ewma_alpha, epsilon=eps),
        }
        self._complementary: Dict[SourceFamily, ComplementaryElevationFilter] = {
            family: ComplementaryElevationFilter(alpha=cfg.complementary_alpha, epsilon=eps)
            for family in SourceFamily
        }

    # ------------------------------------------------------------------ sinks
    def add_sink(self, sink: EventSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def remove_sink(self, sink: EventSink) -> None:
        with self._lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    # ------------------------------------------------------------------ query
    def is_running(self, stream_id: StreamId) -> bool:
        with self._lock:
            return stream_id in self._active

    def running_streams(self) -> frozenset[StreamId]:
        with self._lock:
            return frozenset(self._active)

    def latest(self, stream_id: StreamId) -> Optional[Sample]:
        with self._lock:
            return self._latest.get(stream_id)

    def last_filtered_angle(self, family: SourceFamily) -> float:
        with self._lock:
            return self._ewma[family].last_filtered_angle

    # -------------------------------------------------------------- lifecycle
    def start(self, stream_id: StreamId) -> StartResult:
        """
        Subscribe to ``stream_id`` unless it is already running.

        Raises :class:`SubscriptionFailed` (or :class:`SourceUnavailable`)
        when the source refuses; the stream then stays stopped and no filter
        state changes.
        """
        with self._lock:
            if stream_id in self._active:
                logger.info("Stream %s already running; start ignored", stream_id.value)
                return StartResult.ALREADY_RUNNING

            source = self._sources.get(stream_id.family)
            if source is None:
                raise SourceUnavailable(stream_id, f"no {stream_id.family.value} source registered")

            active = _ActiveStream(source=source, ticket=object())

            def _deliver(sid: StreamId, payload: Payload, timestamp_ms: int) -> None:
                self._on_delivery(active.ticket, sid, payload, timestamp_ms)

            ewma = self._ewma[stream_id.family] if stream_id.kind is StreamKind.ACCELERATION else None
            previous_angle = ewma.last_filtered_angle if ewma is not None else 0.0
            if ewma is not None:
                ewma.reset()
            # Registered before subscribing: a source may push its current
            # value from inside subscribe() on this thread.
            self._active[stream_id] = active
            try:
                active.handle = source.subscribe(stream_id, _deliver)
            except SubscriptionFailed as exc:
                self._abandon_start(stream_id, ewma, previous_angle)
                logger.error("Could not start %s: %s", stream_id.value, exc)
                raise
            except Exception as exc:
                self._abandon_start(stream_id, ewma, previous_angle)
                logger.error("Could not start %s: %s", stream_id.value, exc)
                raise SubscriptionFailed(stream_id, str(exc)) from exc

            logger.info("Started %s", stream_id.value)
            self._publish(RunStateChanged(running=frozenset(self._active)))
            return StartResult.STARTED

    def stop(self, stream_id: StreamId) -> bool:
        """Stop ``stream_id``; returns False when it was not running."""
        with self._lock:
            stopped = self._stop_locked(stream_id)
            if stopped:
                self._publish(RunStateChanged(running=frozenset(self._active)))
            return stopped

    def start_group(self, group: StreamGroup) -> Dict[StreamId, StartResult]:
        """
        Start every stream of ``group``.

        When one constituent fails, the ones started by this call are stopped
        again before the error propagates.
        """
        results: Dict[StreamId, StartResult] = {}
        with self._lock:
            try:
                for stream_id in group.streams:
                    results[stream_id] = self.start(stream_id)
            except SubscriptionFailed:
                rolled_back = [sid for sid, res in results.items() if res is StartResult.STARTED]
                for stream_id in rolled_back:
                    self._stop_locked(stream_id)
                if rolled_back:
                    self._publish(RunStateChanged(running=frozenset(self._active)))
                raise
        return results

    def stop_group(self, group: StreamGroup) -> List[StreamId]:
        return self._stop_many(group.streams)

    def stop_all(self) -> List[StreamId]:
        with self._lock:
            return self._stop_many(list(self._active))

    def _stop_many(self, stream_ids: Iterable[StreamId]) -> List[StreamId]:
        with self._lock:
            stopped = [sid for sid in stream_ids if self._stop_locked(sid)]
            if stopped:
                self._publish(RunStateChanged(running=frozenset(self._active)))
            return stopped

    def _abandon_start(
        self,
        stream_id: StreamId,
        ewma: Optional[EwmaElevationFilter],
        previous_angle: float,
    ) -> None:
        self._active.pop(stream_id, None)
        if ewma is not None:
            ewma.last_filtered_angle = previous_angle

    def _stop_locked(self, stream_id: StreamId) -> bool:
        active = self._active.pop(stream_id, None)
        if active is None:
            logger.debug("Stream %s not running; stop ignored", stream_id.value)
            return False
        if active.handle is not None:
            try:
                active.source.unsubscribe(active.handle)
            except Exception:
                logger.exception("Unsubscribe failed for %s", stream_id.value)
        logger.info("Stopped %s", stream_id.value)
        return True

    # ----------------------------------------------------------------- ingest
    def on_sample(self, stream_id: StreamId, payload: Payload, timestamp_ms: int) -> None:
        """Process one sample for a running stream; others are dropped."""
        with self._lock:
            if stream_id not in self._active:
                logger.debug("Dropping sample for idle stream %s", stream_id.value)
                return
            self._process(stream_id, payload, timestamp_ms)

    def _on_delivery(self, ticket: object, stream_id: StreamId, payload: Payload, timestamp_ms: int) -> None:
        with self._lock:
            active = self._active.get(stream_id)
            if active is None or active.ticket is not ticket:
                logger.debug("Discarding in-flight sample for stopped stream %s", stream_id.value)
                return
            self._process(stream_id, payload, timestamp_ms)

    def _process(self, stream_id: StreamId, payload: Payload, timestamp_ms: int) -> None:
        expects_heart_rate = stream_id.kind is StreamKind.HEART_RATE
        if expects_heart_rate != isinstance(payload, HeartRate) or not isinstance(payload, (HeartRate, Orientation)):
            logger.warning("Payload %r does not match stream %s; dropped", payload, stream_id.value)
            return

        sample = Sample(stream_id=stream_id, payload=payload, timestamp_ms=int(timestamp_ms))
        self._latest[stream_id] = sample
        self._publish(sample)

        if stream_id.kind is not StreamKind.ACCELERATION:
            return

        family = stream_id.family
        acc = payload.as_tuple()
        gyro_sample = self._latest.get(angular_velocity_stream(family))
        gyro = gyro_sample.payload if gyro_sample is not None else ZERO_ORIENTATION

        ewma = self._ewma[family].compute_ewma_angle(*acc)
        complementary = self._complementary[family].compute_complementary_angle(*acc, *gyro.as_tuple())
        self._publish(AngleEstimate(family, Algorithm.EWMA, ewma, sample.timestamp_ms))
        self._publish(AngleEstimate(family, Algorithm.COMPLEMENTARY, complementary, sample.timestamp_ms))

    def _publish(self, event: EngineEvent) -> None:
        for sink in list(self._sinks):
            try:
                sink.handle_event(event)
            except Exception:
                logger.exception("Sink %r failed for event %r", sink, event)


__all__ = ["StartResult", "StreamCoordinator", "StreamGroup"]
