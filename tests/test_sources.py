import threading
import time

import pytest

from elevsense.errors import SourceUnavailable
from elevsense.sensors.models import HeartRate, Orientation, StreamId
from elevsense.sensors.sources import PushSource, ReplaySource

CAPTURE = [
    "# bench capture",
    '{"stream": "internal_acceleration", "t_ms": 0, "x": 0.0, "y": 0.0, "z": 9.8}',
    '{"stream": "internal_angular_velocity", "t_ms": 5, "x": 0.0, "y": 0.1, "z": 0.0}',
    "external_heart_rate,8,70",
    "garbage line",
    '{"stream": "internal_acceleration", "t_ms": 10, "x": 0.1, "y": 0.0, "z": 9.7}',
]


def test_push_source_rejects_missing_sensor() -> None:
    source = PushSource([StreamId.INTERNAL_ACCELERATION])

    with pytest.raises(SourceUnavailable):
        source.subscribe(StreamId.INTERNAL_ANGULAR_VELOCITY, lambda *args: None)


def test_push_source_delivers_until_unsubscribed() -> None:
    source = PushSource([StreamId.EXTERNAL_HEART_RATE])
    received = []
    handle = source.subscribe(StreamId.EXTERNAL_HEART_RATE, lambda sid, p, ts: received.append((p, ts)))

    assert source.emit(StreamId.EXTERNAL_HEART_RATE, HeartRate(60), 1) == 1
    source.unsubscribe(handle)
    source.unsubscribe(handle)
    assert source.emit(StreamId.EXTERNAL_HEART_RATE, HeartRate(61), 2) == 0

    assert received == [(HeartRate(60), 1)]


def test_callback_may_unsubscribe_itself() -> None:
    source = PushSource([StreamId.INTERNAL_ACCELERATION])
    handles = []

    def _once(sid, payload, ts) -> None:
        source.unsubscribe(handles[0])

    handles.append(source.subscribe(StreamId.INTERNAL_ACCELERATION, _once))
    source.emit(StreamId.INTERNAL_ACCELERATION, Orientation(0.0, 0.0, 1.0), 1)

    assert not source.has_subscribers()


def test_connection_listener_sees_current_state_and_changes() -> None:
    source = PushSource([])
    seen = []
    source.set_connected(True)

    source.add_connection_listener(seen.append)
    source.set_connected(True)
    source.set_connected(False)

    assert seen == [True, False]


def test_replay_source_background_thread() -> None:
    source = ReplaySource(CAPTURE, speed=0)
    received = []
    lock = threading.Lock()

    def _collect(sid, payload, ts) -> None:
        with lock:
            received.append((sid, ts))

    source.subscribe(StreamId.INTERNAL_ACCELERATION, _collect)

    assert source.wait_finished(timeout=2.0)
    source.close()
    assert received == [(StreamId.INTERNAL_ACCELERATION, 0), (StreamId.INTERNAL_ACCELERATION, 10)]


def test_replay_without_autostart_waits_for_start() -> None:
    source = ReplaySource(CAPTURE, speed=0, autostart=False)
    received = []
    source.subscribe(StreamId.INTERNAL_ACCELERATION, lambda sid, p, ts: received.append(sid))
    source.subscribe(StreamId.EXTERNAL_HEART_RATE, lambda sid, p, ts: received.append(sid))

    assert not source.wait_finished(timeout=0.05)
    assert received == []

    source.start()
    assert source.wait_finished(timeout=2.0)
    source.close()
    assert received.count(StreamId.INTERNAL_ACCELERATION) == 2
    assert received.count(StreamId.EXTERNAL_HEART_RATE) == 1


def test_replay_stops_when_last_subscriber_leaves() -> None:
    lines = [f"internal_acceleration,{ts},0,0,1" for ts in range(0, 100_000, 10)]
    source = ReplaySource(lines, speed=1.0)
    handle = source.subscribe(StreamId.INTERNAL_ACCELERATION, lambda *args: None)

    time.sleep(0.05)
    source.unsubscribe(handle)

    assert source.wait_finished(timeout=2.0)


def test_replay_from_path(tmp_path) -> None:
    capture = tmp_path / "capture.jsonl"
    capture.write_text("\n".join(CAPTURE) + "\n", encoding="utf-8")
    source = ReplaySource.from_path(capture, speed=0)
    received = []

    source.subscribe(StreamId.INTERNAL_ANGULAR_VELOCITY, lambda sid, p, ts: received.append(p))

    assert source.wait_finished(timeout=2.0)
    assert received == [Orientation(0.0, 0.1, 0.0)]
    assert source.name == "replay:capture.jsonl"


def test_resubscribe_while_previous_pass_winds_down() -> None:
    gate = threading.Event()
    first_delivered = threading.Event()

    def _lines():
        yield "internal_acceleration,0,0,0,1"
        gate.wait(2.0)
        yield "internal_acceleration,10,0,0,1"

    source = ReplaySource(_lines, speed=0)
    old = source.subscribe(StreamId.INTERNAL_ACCELERATION, lambda *args: first_delivered.set())
    assert first_delivered.wait(2.0)
    source.unsubscribe(old)

    received = []
    source.subscribe(StreamId.INTERNAL_ACCELERATION, lambda sid, p, ts: received.append(ts))
    gate.set()

    assert source.wait_finished(timeout=2.0)
    source.close()
    assert received == [0, 10]
