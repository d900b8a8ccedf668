"""
Line codec for captured sample streams.

Capture files (and anything piping samples in from outside the process) use
one sample per line, either as JSON:

  {"stream": "internal_acceleration", "t_ms": 1200, "x": 0.1, "y": 0.0, "z": 9.7}
  {"stream": "external_heart_rate", "t_ms": 1210, "bpm": 72}

or the legacy comma-separated forms ``stream,t_ms,x,y,z`` and
``stream,t_ms,bpm``.

``parse_line()`` returns ``None`` for anything it cannot decode so callers can
skip the line without raising.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Mapping, Sequence

from ..tools.debug import debug_enabled
from .models import HeartRate, Orientation, Sample, StreamId, StreamKind

logger = logging.getLogger(__name__)

_parse_time_acc = 0.0
_parse_count = 0


def _build_sample(stream_name: Any, timestamp: Any, values: Sequence[Any]) -> Sample | None:
    try:
        stream_id = StreamId.parse(str(stream_name))
    except ValueError:
        logger.warning("Unknown stream %r in sample line", stream_name)
        return None

    try:
        timestamp_ms = int(float(timestamp))
        if stream_id.kind is StreamKind.HEART_RATE:
            if len(values) < 1:
                raise ValueError("missing bpm")
            payload: Orientation | HeartRate = HeartRate(int(float(values[0])))
        else:
            if len(values) < 3:
                raise ValueError(f"expected 3 axes, got {len(values)}")
            x, y, z = (float(v) for v in values[:3])
            payload = Orientation(x, y, z)
    except (TypeError, ValueError) as exc:
        logger.warning("Bad field value for stream %s (%s)", stream_id.value, exc)
        return None

    return Sample(stream_id=stream_id, payload=payload, timestamp_ms=timestamp_ms)


def _parse_json_line(text: str) -> Sample | None:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Bad JSON in sample line: %r (%s)", text, exc)
        return None
    if not isinstance(obj, Mapping):
        logger.warning("Expected a JSON object in sample line: %r", text)
        return None

    for name in ("stream", "t_ms"):
        if obj.get(name) is None:
            logger.warning("Missing field %s in sample line: %r", name, obj)
            return None

    if obj.get("bpm") is not None:
        values: list[Any] = [obj["bpm"]]
    else:
        values = [obj.get(axis) for axis in ("x", "y", "z") if obj.get(axis) is not None]
    return _build_sample(obj["stream"], obj["t_ms"], values)


def _parse_csv_line(text: str) -> Sample | None:
    parts = [p.strip() for p in text.split(",")]
    if len(parts) < 3:
        logger.warning(
            "Expected at least 3 comma-separated values in sample line, got %d: %r",
            len(parts),
            text,
        )
        return None
    return _build_sample(parts[0], parts[1], parts[2:])


def parse_line(line: str) -> Sample | None:
    """Parse one capture line into a :class:`Sample` (``None`` when invalid)."""
    global _parse_time_acc, _parse_count

    text = line.strip()
    if not text or text.startswith("#"):
        return None

    debug_on = debug_enabled()
    start = time.perf_counter() if debug_on else 0.0

    if text[0] == "{":
        sample = _parse_json_line(text)
    else:
        sample = _parse_csv_line(text)

    if debug_on:
        _parse_time_acc += time.perf_counter() - start
        _parse_count += 1
        if _parse_count % 1000 == 0:
            avg_us = (_parse_time_acc / max(1, _parse_count)) * 1e6
            logger.info("codec.parse_line avg %.1f µs over %d samples", avg_us, _parse_count)

    return sample


def format_line(sample: Sample) -> str:
    """Encode ``sample`` as a JSON capture line (no trailing newline)."""
    record: dict[str, Any] = {"stream": sample.stream_id.value, "t_ms": int(sample.timestamp_ms)}
    if isinstance(sample.payload, HeartRate):
        record["bpm"] = int(sample.payload.bpm)
    else:
        record["x"], record["y"], record["z"] = sample.payload.as_tuple()
    return json.dumps(record)
