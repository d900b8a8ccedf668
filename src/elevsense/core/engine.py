"""Factory that wires coordinator, aggregator and recorder from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from queue import Queue
from typing import Mapping, Optional

from ..config import FusionConfig
from ..sensors.models import SourceFamily, StreamId
from ..sensors.sources import SampleSource
from .aggregator import AggregateState, Aggregator
from .coordinator import StartResult, StreamCoordinator, StreamGroup
from .recorder import Clock, Recorder, RecordingSession, monotonic_ms


@dataclass(slots=True)
class EngineHandles:
    """Return value from :func:`build_engine` containing ready-to-use pieces."""

    coordinator: StreamCoordinator
    aggregator: Aggregator
    recorder: Recorder
    config: FusionConfig

    # UI-facing operations
    def start(self, stream_id: StreamId) -> StartResult:
        return self.coordinator.start(stream_id)

    def stop(self, stream_id: StreamId) -> bool:
        return self.coordinator.stop(stream_id)

    def start_group(self, group: StreamGroup) -> dict[StreamId, StartResult]:
        return self.coordinator.start_group(group)

    def stop_group(self, group: StreamGroup) -> list[StreamId]:
        return self.coordinator.stop_group(group)

    def begin_recording(self, duration_ms: Optional[int] = None) -> None:
        self.recorder.begin(duration_ms)

    def finalize_recording(self) -> RecordingSession:
        return self.recorder.finalize()

    def snapshot(self) -> AggregateState:
        return self.aggregator.snapshot()


def build_engine(
    sources: Mapping[SourceFamily, SampleSource],
    cfg: FusionConfig | None = None,
    *,
    clock: Clock = monotonic_ms,
    auto_tick: bool = True,
    snapshot_queue: Queue[AggregateState] | None = None,
) -> EngineHandles:
    """
    Build a coordinator and attach an aggregator and a recorder to it.

    Parameters
    ----------
    sources:
        One :class:`SampleSource` per family. A source that also exposes
        ``add_connection_listener`` (such as :class:`PushSource`) feeds the
        aggregator's connection flag; only the external source is observed.
    cfg:
        Runtime configuration (usually loaded from YAML).
    clock:
        Millisecond clock for recording sessions.
    auto_tick:
        Run the background ticker that ends sessions after their duration.
        Tests pass ``False`` and call :meth:`Recorder.tick` themselves.
    snapshot_queue:
        Optional :class:`queue.Queue` receiving every new snapshot. Created
        with ``cfg.snapshot_queue_size`` when omitted.
    """

    normalized = (cfg or FusionConfig()).sanitized()

    queue = snapshot_queue if snapshot_queue is not None else Queue(maxsize=normalized.snapshot_queue_size)
    aggregator = Aggregator(queue=queue)
    coordinator = StreamCoordinator(sources, normalized, sinks=[aggregator])
    recorder = Recorder(
        coordinator,
        clock=clock,
        tick_ms=normalized.recording_tick_ms,
        default_duration_ms=normalized.recording_duration_ms,
        auto_tick=auto_tick,
    )
    coordinator.add_sink(recorder)

    external = sources.get(SourceFamily.EXTERNAL)
    add_listener = getattr(external, "add_connection_listener", None)
    if callable(add_listener):
        add_listener(aggregator.set_connected)

    return EngineHandles(
        coordinator=coordinator,
        aggregator=aggregator,
        recorder=recorder,
        config=normalized,
    )


__all__ = ["EngineHandles", "build_engine"]
