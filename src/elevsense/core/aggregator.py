"""Latest-value fan-in of engine events into one immutable snapshot."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from queue import Empty, Full, Queue
from typing import Callable, List, Optional

from ..sensors.models import HeartRate, Orientation, Sample, SourceFamily, StreamId
from .events import Algorithm, AngleChannel, AngleEstimate, EngineEvent, RunStateChanged

logger = logging.getLogger(__name__)

SnapshotListener = Callable[["AggregateState"], None]


@dataclass(frozen=True, slots=True)
class AggregateState:
    """
    Most recent known value of every independent input.

    Each field is replaced on its own as new values arrive; fields are never
    joined or interpolated against each other, so two angles in one snapshot
    may come from samples taken at different times.
    """

    heart_rate: Optional[int] = None
    external_acceleration: Optional[Orientation] = None
    external_angular_velocity: Optional[Orientation] = None
    internal_acceleration: Optional[Orientation] = None
    internal_angular_velocity: Optional[Orientation] = None
    external_ewma: Optional[AngleEstimate] = None
    external_complementary: Optional[AngleEstimate] = None
    internal_ewma: Optional[AngleEstimate] = None
    internal_complementary: Optional[AngleEstimate] = None
    connected: bool = False
    measuring: bool = False
    running: frozenset[StreamId] = frozenset()

    def angle(self, family: SourceFamily, algorithm: Algorithm) -> Optional[AngleEstimate]:
        return getattr(self, AngleChannel.of(family, algorithm).value)

    def raw(self, stream_id: StreamId) -> Optional[Orientation]:
        if stream_id is StreamId.EXTERNAL_HEART_RATE:
            raise ValueError("heart rate is exposed as AggregateState.heart_rate")
        return getattr(self, stream_id.value)


def _offer_queue(queue: Queue, item: object) -> None:
    """Best-effort put that drops the oldest snapshot when the queue is full."""
    try:
        queue.put_nowait(item)
    except Full:
        try:
            queue.get_nowait()
        except Empty:
            pass
        queue.put_nowait(item)


class Aggregator:
    """
    Event sink that keeps the current :class:`AggregateState`.

    Every update builds a new frozen snapshot and swaps it in under the lock,
    so readers always see a whole snapshot. Updates are pushed to listeners
    and, when given, to a bounded queue for consumers on another thread.
    """

    def __init__(self, *, queue: Queue[AggregateState] | None = None) -> None:
        self._lock = threading.RLock()
        self._state = AggregateState()
        self._listeners: List[SnapshotListener] = []
        self.queue = queue

    def snapshot(self) -> AggregateState:
        with self._lock:
            return self._state

    def add_listener(self, listener: SnapshotListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def drain_queue(self) -> list[AggregateState]:
        if self.queue is None:
            return []
        items: list[AggregateState] = []
        while True:
            try:
                items.append(self.queue.get_nowait())
            except Empty:
                break
        return items

    # ----------------------------------------------------------------- ingest
    def handle_event(self, event: EngineEvent) -> None:
        with self._lock:
            self._swap(self._apply(self._state, event))

    def set_connected(self, connected: bool) -> None:
        """Connection listener for the external device."""
        with self._lock:
            if self._state.connected != bool(connected):
                self._swap(replace(self._state, connected=bool(connected)))

    @staticmethod
    def _apply(state: AggregateState, event: EngineEvent) -> AggregateState:
        if isinstance(event, Sample):
            if isinstance(event.payload, HeartRate):
                return replace(state, heart_rate=event.payload.bpm)
            return replace(state, **{event.stream_id.value: event.payload})
        if isinstance(event, AngleEstimate):
            return replace(state, **{event.channel.value: event})
        if isinstance(event, RunStateChanged):
            return replace(state, running=event.running, measuring=bool(event.running))
        logger.debug("Ignoring unknown event %r", event)
        return state

    def _swap(self, new_state: AggregateState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        if self.queue is not None:
            _offer_queue(self.queue, new_state)
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("Snapshot listener %r failed", listener)


__all__ = ["AggregateState", "Aggregator"]
