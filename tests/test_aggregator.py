import dataclasses
from queue import Queue

import pytest

from elevsense.core import AggregateState, Aggregator, Algorithm, StreamGroup, build_engine
from elevsense.errors import SourceUnavailable
from elevsense.sensors.models import HeartRate, Orientation, SourceFamily, StreamId
from elevsense.sensors.sources import PushSource


def _engine(internal_streams=None, queue=None):
    external = PushSource(
        [StreamId.EXTERNAL_HEART_RATE, StreamId.EXTERNAL_ACCELERATION, StreamId.EXTERNAL_ANGULAR_VELOCITY],
        name="wearable",
    )
    internal = PushSource(
        internal_streams or [StreamId.INTERNAL_ACCELERATION, StreamId.INTERNAL_ANGULAR_VELOCITY],
        name="phone",
    )
    engine = build_engine(
        {SourceFamily.EXTERNAL: external, SourceFamily.INTERNAL: internal},
        auto_tick=False,
        snapshot_queue=queue,
    )
    return engine, external, internal


def test_initial_snapshot_is_empty() -> None:
    state = Aggregator().snapshot()

    assert state == AggregateState()
    assert state.measuring is False
    assert state.connected is False
    assert state.heart_rate is None
    assert state.angle(SourceFamily.INTERNAL, Algorithm.EWMA) is None


def test_samples_and_angles_land_in_their_fields() -> None:
    engine, external, internal = _engine()
    engine.start_group(StreamGroup.INTERNAL_IMU)
    engine.start(StreamId.EXTERNAL_HEART_RATE)

    internal.emit(StreamId.INTERNAL_ANGULAR_VELOCITY, Orientation(0.0, 0.5, 0.0), 1)
    internal.emit(StreamId.INTERNAL_ACCELERATION, Orientation(0.0, 0.0, 1.0), 2)
    external.emit(StreamId.EXTERNAL_HEART_RATE, HeartRate(64), 3)

    state = engine.snapshot()
    assert state.measuring is True
    assert StreamId.EXTERNAL_HEART_RATE in state.running
    assert state.heart_rate == 64
    assert state.raw(StreamId.INTERNAL_ACCELERATION) == Orientation(0.0, 0.0, 1.0)
    assert state.internal_angular_velocity == Orientation(0.0, 0.5, 0.0)
    assert state.internal_ewma.value_degrees == pytest.approx(81.0)
    assert state.internal_complementary is not None
    assert state.external_ewma is None
    assert state.external_acceleration is None


def test_families_are_kept_apart() -> None:
    engine, external, internal = _engine()
    engine.start(StreamId.INTERNAL_ACCELERATION)
    engine.start(StreamId.EXTERNAL_ACCELERATION)

    internal.emit(StreamId.INTERNAL_ACCELERATION, Orientation(0.0, 0.0, 1.0), 1)
    external.emit(StreamId.EXTERNAL_ACCELERATION, Orientation(1.0, 0.0, 0.0), 2)

    state = engine.snapshot()
    assert state.angle(SourceFamily.INTERNAL, Algorithm.EWMA).value_degrees == pytest.approx(81.0)
    assert state.angle(SourceFamily.EXTERNAL, Algorithm.EWMA).value_degrees == pytest.approx(0.0)


def test_snapshots_are_immutable_values() -> None:
    engine, _, internal = _engine()
    engine.start(StreamId.INTERNAL_ACCELERATION)
    before = engine.snapshot()

    internal.emit(StreamId.INTERNAL_ACCELERATION, Orientation(0.0, 0.0, 1.0), 1)

    assert before.internal_acceleration is None
    with pytest.raises(dataclasses.FrozenInstanceError):
        before.heart_rate = 80


def test_failed_start_leaves_snapshot_untouched() -> None:
    engine, _, _ = _engine(internal_streams=[StreamId.INTERNAL_ACCELERATION])
    before = engine.snapshot()

    with pytest.raises(SourceUnavailable):
        engine.start(StreamId.INTERNAL_ANGULAR_VELOCITY)

    assert engine.snapshot() is before


def test_stopping_last_stream_clears_measuring() -> None:
    engine, _, _ = _engine()
    engine.start(StreamId.EXTERNAL_HEART_RATE)
    engine.stop(StreamId.EXTERNAL_HEART_RATE)

    state = engine.snapshot()
    assert state.measuring is False
    assert state.running == frozenset()


def test_connection_flag_follows_external_source() -> None:
    engine, external, _ = _engine()
    assert engine.snapshot().connected is False

    external.set_connected(True)
    assert engine.snapshot().connected is True

    external.set_connected(False)
    assert engine.snapshot().connected is False


def test_queue_receives_updates_and_drops_oldest() -> None:
    queue: Queue = Queue(maxsize=2)
    engine, _, internal = _engine(queue=queue)
    engine.start(StreamId.INTERNAL_ACCELERATION)
    for ts in range(5):
        internal.emit(StreamId.INTERNAL_ACCELERATION, Orientation(0.0, 0.0, 1.0), ts)

    drained = engine.aggregator.drain_queue()

    assert len(drained) == 2
    assert drained[-1] is engine.snapshot()
    assert engine.aggregator.drain_queue() == []


def test_listener_failure_does_not_block_update() -> None:
    aggregator = Aggregator()
    seen = []

    def _bad(state) -> None:
        raise RuntimeError("listener broke")

    aggregator.add_listener(_bad)
    aggregator.add_listener(seen.append)
    aggregator.set_connected(True)

    assert aggregator.snapshot().connected is True
    assert len(seen) == 1

    aggregator.remove_listener(seen.append)
    aggregator.set_connected(False)
    assert len(seen) == 1


def test_raw_rejects_heart_rate() -> None:
    with pytest.raises(ValueError):
        AggregateState().raw(StreamId.EXTERNAL_HEART_RATE)
