#!/usr/bin/env python3
"""
Replay a capture file through the fusion engine and export the recording.

The capture (JSON lines or legacy CSV, see :mod:`elevsense.sensors.codec`)
feeds both source families. The selected streams are started, a recording
session runs until the capture ends or ``--duration-ms`` elapses (wall
clock), and the session is written as CSV.

Example::

    python -m elevsense.tools.replay data/captures/walk.jsonl --group internal_imu --speed 1
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from ..config import load_config
from ..core import AggregateState, EngineHandles, StreamGroup, build_engine
from ..core.recorder import RecordingSession
from ..dataio.export import write_session_csv
from ..errors import NotRecording, SubscriptionFailed
from ..sensors.models import SourceFamily, StreamId
from ..sensors.sources import ReplaySource
from .debug import time_block

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay a motion capture and export elevation angles")
    parser.add_argument("capture", type=Path, help="Capture file (JSONL or CSV lines)")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML tuning file (defaults apply when omitted)",
    )
    parser.add_argument(
        "--group",
        action="append",
        choices=[g.value for g in StreamGroup],
        default=[],
        help="Start a composite stream group (repeatable)",
    )
    parser.add_argument(
        "--stream",
        action="append",
        choices=[s.value for s in StreamId],
        default=[],
        help="Start a single stream (repeatable)",
    )
    parser.add_argument(
        "--duration-ms",
        type=int,
        default=None,
        help="Recording duration in ms (default: recording_duration_ms from config)",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=0.0,
        help="Playback speed relative to capture timestamps; 0 replays as fast as possible (default: 0)",
    )
    parser.add_argument("--out", type=Path, default=None, help="Output CSV (default: timestamped under data/exports)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (default: INFO)",
    )
    return parser


def _format_snapshot(state: AggregateState) -> str:
    parts: List[str] = []
    for name in ("internal_ewma", "internal_complementary", "external_ewma", "external_complementary"):
        estimate = getattr(state, name)
        if estimate is not None:
            parts.append(f"{name}={estimate.value_degrees:.2f}°")
    if state.heart_rate is not None:
        parts.append(f"hr={state.heart_rate} bpm")
    parts.append(f"connected={state.connected}")
    return " ".join(parts)


def _end_session(engine: EngineHandles) -> Optional[RecordingSession]:
    """Finalize the recording, or collect it if the duration ticker got there first."""
    try:
        return engine.finalize_recording()
    except NotRecording:
        return engine.recorder.take_completed()


def run(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    source = ReplaySource.from_path(args.capture, speed=args.speed, autostart=False)
    engine = build_engine({SourceFamily.EXTERNAL: source, SourceFamily.INTERNAL: source}, cfg)

    groups = [StreamGroup(g) for g in args.group]
    streams = [StreamId(s) for s in args.stream]
    if not groups and not streams:
        groups = [StreamGroup.INTERNAL_IMU, StreamGroup.EXTERNAL_IMU]
        streams = [StreamId.EXTERNAL_HEART_RATE]

    engine.begin_recording(args.duration_ms)
    try:
        for group in groups:
            engine.start_group(group)
        for stream_id in streams:
            engine.start(stream_id)
        source.start()
    except SubscriptionFailed as exc:
        logger.error("Replay aborted: %s", exc)
        _end_session(engine)
        source.close()
        return 1

    while engine.recorder.is_recording and not source.wait_finished(0.05):
        pass

    session = _end_session(engine)
    source.close()

    if session is None:
        logger.error("Recording ended without a session to export")
        return 1

    with time_block("session export"):
        out_path = write_session_csv(session, args.out, default=engine.config.export_default)
    print(f"Wrote {len(session)} points in {len(session.series)} series to {out_path}")
    print(_format_snapshot(engine.snapshot()))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
