import pytest

from elevsense.sensors.codec import format_line, parse_line
from elevsense.sensors.models import HeartRate, Orientation, Sample, StreamId


def test_parse_json_orientation_line() -> None:
    line = '{"stream": "internal_acceleration", "t_ms": 1200, "x": 0.1, "y": 0.0, "z": 9.7}'

    sample = parse_line(line)

    assert sample == Sample(StreamId.INTERNAL_ACCELERATION, Orientation(0.1, 0.0, 9.7), 1200)


def test_parse_json_heart_rate_line() -> None:
    sample = parse_line('{"stream": "external_heart_rate", "t_ms": 5, "bpm": 72}\n')

    assert sample.heart_rate == 72
    assert sample.orientation is None


def test_parse_legacy_csv_lines() -> None:
    gyro = parse_line("external_angular_velocity,300,0.5,-0.5,1.0")
    hr = parse_line("EXTERNAL_HEART_RATE, 310, 81")

    assert gyro.stream_id is StreamId.EXTERNAL_ANGULAR_VELOCITY
    assert gyro.payload == Orientation(0.5, -0.5, 1.0)
    assert hr.payload == HeartRate(81)
    assert hr.timestamp_ms == 310


@pytest.mark.parametrize(
    "line",
    [
        "",
        "   ",
        "# recorded on the bench",
        "{not json",
        "[1, 2, 3]",
        '{"t_ms": 1, "x": 0, "y": 0, "z": 0}',
        '{"stream": "internal_acceleration", "x": 0, "y": 0, "z": 0}',
        '{"stream": "internal_acceleration", "t_ms": 1, "x": 0, "y": 0}',
        '{"stream": "barometer", "t_ms": 1, "x": 0, "y": 0, "z": 0}',
        "internal_acceleration,abc,0,0,0",
        "internal_acceleration,1",
        "external_heart_rate,1,fast",
    ],
)
def test_invalid_lines_are_skipped(line) -> None:
    assert parse_line(line) is None


def test_format_line_is_parseable() -> None:
    sample = Sample(StreamId.EXTERNAL_ACCELERATION, Orientation(1.5, -2.0, 9.81), 42)

    assert parse_line(format_line(sample)) == sample
    assert '"bpm": 90' in format_line(Sample(StreamId.EXTERNAL_HEART_RATE, HeartRate(90), 1))
