"""Core engine: stream coordination, fan-in snapshots, and recording.

The :class:`StreamCoordinator` owns stream subscriptions and elevation
filters and publishes events; the :class:`Aggregator` folds them into the
latest :class:`AggregateState`; the :class:`Recorder` captures per-stream
series for export. :func:`build_engine` wires the three together.
"""

from .aggregator import AggregateState, Aggregator
from .coordinator import StartResult, StreamCoordinator, StreamGroup
from .engine import EngineHandles, build_engine
from .events import Algorithm, AngleChannel, AngleEstimate, EventSink, RunStateChanged
from .recorder import Recorder, RecordingSession

__all__ = [
    "AggregateState",
    "Aggregator",
    "Algorithm",
    "AngleChannel",
    "AngleEstimate",
    "EngineHandles",
    "EventSink",
    "Recorder",
    "RecordingSession",
    "RunStateChanged",
    "StartResult",
    "StreamCoordinator",
    "StreamGroup",
    "build_engine",
]
