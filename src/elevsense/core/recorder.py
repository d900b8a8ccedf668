"""
Recording sessions: per-stream ``(timestamp_ms, value)`` series.

While a session is active the :class:`Recorder` appends every raw sample and
every angle estimate the coordinator publishes. A session ends either through
:meth:`Recorder.finalize` or once its duration has elapsed, which a
background ticker checks every ``tick_ms``. Ending a session stops every
running stream and hands the series over; the recorder keeps no reference.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Tuple, Union

from ..errors import AlreadyRecording, NotRecording
from ..sensors.models import HeartRate, Orientation, Sample, StreamId
from .events import AngleChannel, AngleEstimate, EngineEvent

logger = logging.getLogger(__name__)

SeriesKey = Union[StreamId, AngleChannel]
SeriesValue = Union[float, int, Orientation]
SeriesPoint = Tuple[int, SeriesValue]
Clock = Callable[[], int]
FinalizedListener = Callable[["RecordingSession"], None]


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


@dataclass
class RecordingSession:
    started_at: int
    duration_ms: int
    series: Dict[SeriesKey, List[SeriesPoint]] = field(default_factory=dict)
    finalized_at: Optional[int] = None

    def get(self, key: SeriesKey) -> List[SeriesPoint]:
        return self.series.get(key, [])

    def timestamps(self, key: SeriesKey) -> List[int]:
        return [t for t, _ in self.get(key)]

    def values(self, key: SeriesKey) -> List[SeriesValue]:
        return [v for _, v in self.get(key)]

    def __len__(self) -> int:
        return sum(len(points) for points in self.series.values())


class Recorder:
    """Event sink that captures series for one session at a time."""

    def __init__(
        self,
        coordinator=None,
        *,
        clock: Clock = monotonic_ms,
        tick_ms: int = 100,
        default_duration_ms: int = 20_000,
        auto_tick: bool = True,
    ) -> None:
        self._coordinator = coordinator
        self._clock = clock
        self.tick_ms = max(1, int(tick_ms))
        self.default_duration_ms = max(1, int(default_duration_ms))
        self.auto_tick = auto_tick

        self._lock = threading.RLock()
        self._session: Optional[RecordingSession] = None
        self._ticker: Optional[threading.Thread] = None
        self._ticker_stop: Optional[threading.Event] = None
        self._listeners: List[FinalizedListener] = []
        self._completed: Deque[RecordingSession] = deque()
        self._dropped = 0

    # ------------------------------------------------------------------ query
    @property
    def is_recording(self) -> bool:
        with self._lock:
            return self._session is not None

    def elapsed_ms(self) -> Optional[int]:
        with self._lock:
            if self._session is None:
                return None
            return self._clock() - self._session.started_at

    def add_finalized_listener(self, listener: FinalizedListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def take_completed(self) -> Optional[RecordingSession]:
        """
        Hand over the oldest session that ended on its own while nobody
        listened, or ``None``. Untaken sessions survive later :meth:`begin`
        calls.
        """
        with self._lock:
            return self._completed.popleft() if self._completed else None

    # -------------------------------------------------------------- lifecycle
    def begin(self, duration_ms: Optional[int] = None) -> None:
        with self._lock:
            if self._session is not None:
                raise AlreadyRecording("a recording session is already active")
            duration = self.default_duration_ms if duration_ms is None else int(duration_ms)
            if duration <= 0:
                raise ValueError(f"duration_ms must be positive, got {duration_ms}")
            if self._completed:
                logger.warning("%d finished session(s) not yet taken", len(self._completed))
            self._session = RecordingSession(started_at=self._clock(), duration_ms=duration)
            self._dropped = 0
            logger.info("Recording started for %d ms", duration)
            if self.auto_tick:
                self._start_ticker()

    def finalize(self) -> RecordingSession:
        """End the active session, stop all streams and return the series."""
        session = self._detach()
        if session is None:
            raise NotRecording("no recording session is active")
        self._stop_streams()
        return session

    def tick(self) -> Optional[RecordingSession]:
        """
        Finalize the session if its duration has elapsed.

        Returns the finished session, which is also passed to the finalized
        listeners (or kept for :meth:`take_completed` when there are none).
        """
        with self._lock:
            session = self._session
            if session is None or self._clock() - session.started_at < session.duration_ms:
                return None
        if self._detach(expected=session) is None:
            return None
        logger.info("Recording duration of %d ms elapsed", session.duration_ms)
        self._stop_streams()
        self._deliver(session)
        return session

    # ----------------------------------------------------------------- ingest
    def handle_event(self, event: EngineEvent) -> None:
        with self._lock:
            if self._session is None:
                return
            if isinstance(event, Sample):
                payload = event.payload
                value: SeriesValue = payload.bpm if isinstance(payload, HeartRate) else payload
                self._append(event.stream_id, event.timestamp_ms, value)
            elif isinstance(event, AngleEstimate):
                self._append(event.channel, event.timestamp_ms, float(event.value_degrees))

    def _append(self, key: SeriesKey, timestamp_ms: int, value: SeriesValue) -> None:
        assert self._session is not None
        points = self._session.series.setdefault(key, [])
        if points and timestamp_ms < points[-1][0]:
            self._dropped += 1
            logger.warning(
                "Out-of-order sample for %s (%d < %d); not recorded",
                key.value,
                timestamp_ms,
                points[-1][0],
            )
            return
        points.append((int(timestamp_ms), value))

    # ----------------------------------------------------------------- helpers
    def _detach(self, expected: Optional[RecordingSession] = None) -> Optional[RecordingSession]:
        with self._lock:
            session = self._session
            if session is None or (expected is not None and session is not expected):
                return None
            self._session = None
            session.finalized_at = self._clock()
            stop_event, ticker = self._ticker_stop, self._ticker
            self._ticker_stop = self._ticker = None
        if stop_event is not None:
            stop_event.set()
        if ticker is not None and ticker is not threading.current_thread():
            ticker.join(timeout=1.0)
        logger.info(
            "Recording finalized: %d points in %d series (%d dropped)",
            len(session),
            len(session.series),
            self._dropped,
        )
        return session

    def _stop_streams(self) -> None:
        if self._coordinator is None:
            return
        stopped = self._coordinator.stop_all()
        if stopped:
            logger.info("Stopped %s after recording", ", ".join(sid.value for sid in stopped))

    def _deliver(self, session: RecordingSession) -> None:
        with self._lock:
            listeners = list(self._listeners)
            if not listeners:
                self._completed.append(session)
                return
        for listener in listeners:
            try:
                listener(session)
            except Exception:
                logger.exception("Finalized listener %r failed", listener)

    def _start_ticker(self) -> None:
        stop_event = threading.Event()
        interval_s = self.tick_ms / 1000.0

        def _loop() -> None:
            while not stop_event.wait(interval_s):
                try:
                    if self.tick() is not None:
                        break
                except Exception:
                    logger.exception("Recording tick failed")
                    break

        self._ticker_stop = stop_event
        self._ticker = threading.Thread(target=_loop, name="ElevSenseRecordingTicker", daemon=True)
        self._ticker.start()


__all__ = ["RecordingSession", "Recorder", "SeriesKey", "SeriesValue", "monotonic_ms"]
