"""
Sample sources: the capability the engine consumes to start/stop streams.

A source delivers samples for a stream to the callback handed to
:meth:`SampleSource.subscribe` until the returned handle is passed to
:meth:`SampleSource.unsubscribe`. The wireless wearable driver and the host
sensor bindings live outside this package; they plug in by implementing the
same protocol (or by feeding a :class:`PushSource`).
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Union

from ..errors import SourceUnavailable
from .codec import parse_line
from .models import Payload, StreamId

logger = logging.getLogger(__name__)

SampleCallback = Callable[[StreamId, Payload, int], None]
ConnectionListener = Callable[[bool], None]
LineSource = Union[Iterable[str], Callable[[], Iterable[str]]]


@dataclass(frozen=True, slots=True)
class SubscriptionHandle:
    stream_id: StreamId
    token: int


class SampleSource(Protocol):
    """Capability interface implemented by external and host sensor drivers."""

    def subscribe(self, stream_id: StreamId, callback: SampleCallback) -> SubscriptionHandle:  # pragma: no cover - protocol
        ...

    def unsubscribe(self, handle: SubscriptionHandle) -> None:  # pragma: no cover - protocol
        ...


class PushSource:
    """
    In-process source whose owner pushes samples with :meth:`emit`.

    Streams not listed in ``streams`` raise :class:`SourceUnavailable` on
    subscribe, mirroring a device that lacks that sensor. The source also
    carries the connection flag of the device it stands for; the engine only
    observes it.
    """

    def __init__(self, streams: Iterable[StreamId], *, name: str = "push") -> None:
        self.name = name
        self._available = frozenset(streams)
        self._lock = threading.RLock()
        self._subscribers: Dict[StreamId, Dict[int, SampleCallback]] = {}
        self._tokens = itertools.count(1)
        self._connected = False
        self._connection_listeners: List[ConnectionListener] = []

    @property
    def available_streams(self) -> frozenset[StreamId]:
        return self._available

    # ------------------------------------------------------------ subscription
    def subscribe(self, stream_id: StreamId, callback: SampleCallback) -> SubscriptionHandle:
        if stream_id not in self._available:
            raise SourceUnavailable(stream_id, f"{self.name} does not provide {stream_id.value}")
        with self._lock:
            token = next(self._tokens)
            self._subscribers.setdefault(stream_id, {})[token] = callback
        logger.debug("%s: subscribed %s (token %d)", self.name, stream_id.value, token)
        return SubscriptionHandle(stream_id=stream_id, token=token)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Stop delivery for ``handle``; unknown or stale handles are ignored."""
        with self._lock:
            callbacks = self._subscribers.get(handle.stream_id)
            if not callbacks or callbacks.pop(handle.token, None) is None:
                return
            if not callbacks:
                del self._subscribers[handle.stream_id]
        logger.debug("%s: unsubscribed %s (token %d)", self.name, handle.stream_id.value, handle.token)

    def subscription_count(self, stream_id: StreamId) -> int:
        with self._lock:
            return len(self._subscribers.get(stream_id, {}))

    def has_subscribers(self) -> bool:
        with self._lock:
            return any(self._subscribers.values())

    # ------------------------------------------------------------------ ingest
    def emit(self, stream_id: StreamId, payload: Payload, timestamp_ms: int) -> int:
        """
        Deliver one sample to the current subscribers of ``stream_id``.

        Callbacks run outside the source lock so a subscriber may unsubscribe
        from inside its callback. Returns the number of callbacks invoked.
        """
        with self._lock:
            callbacks = list(self._subscribers.get(stream_id, {}).values())
        for callback in callbacks:
            callback(stream_id, payload, int(timestamp_ms))
        return len(callbacks)

    # -------------------------------------------------------------- connection
    @property
    def connected(self) -> bool:
        with self._lock:
            return self._connected

    def add_connection_listener(self, listener: ConnectionListener) -> None:
        with self._lock:
            self._connection_listeners.append(listener)
            current = self._connected
        listener(current)

    def set_connected(self, connected: bool) -> None:
        with self._lock:
            changed = self._connected != bool(connected)
            self._connected = bool(connected)
            listeners = list(self._connection_listeners)
        if not changed:
            return
        logger.info("%s: %s", self.name, "connected" if connected else "disconnected")
        for listener in listeners:
            try:
                listener(bool(connected))
            except Exception:
                logger.exception("Connection listener failed for %s", self.name)


class ReplaySource(PushSource):
    """
    Replays a recorded capture (see :mod:`codec`) on a background thread.

    The reader thread starts with the first subscription (or on :meth:`start`
    when ``autostart`` is False, so several streams can subscribe before the
    first line is read) and ends when the capture is exhausted or the last
    subscription is dropped. With ``speed > 0`` samples are paced by their
    timestamps (``speed=2`` plays twice as fast); ``speed=0`` replays as fast
    as possible.
    """

    def __init__(
        self,
        lines: LineSource,
        *,
        streams: Optional[Iterable[StreamId]] = None,
        speed: float = 1.0,
        autostart: bool = True,
        name: str = "replay",
    ) -> None:
        super().__init__(streams if streams is not None else list(StreamId), name=name)
        if callable(lines):
            self._line_factory: Callable[[], Iterable[str]] = lines
        else:
            captured = list(lines)
            self._line_factory = lambda: iter(captured)
        self.speed = max(0.0, float(speed))
        self.autostart = autostart
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._finished = threading.Event()

    @classmethod
    def from_path(cls, path: str | Path, **kwargs) -> "ReplaySource":
        capture = Path(path)

        def _lines() -> Iterable[str]:
            with capture.open("r", encoding="utf-8") as fh:
                yield from fh

        kwargs.setdefault("name", f"replay:{capture.name}")
        return cls(_lines, **kwargs)

    def subscribe(self, stream_id: StreamId, callback: SampleCallback) -> SubscriptionHandle:
        handle = super().subscribe(stream_id, callback)
        if self.autostart:
            self._ensure_reader()
        return handle

    def start(self) -> None:
        """Begin a replay pass unless one is already running."""
        self._ensure_reader()

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        super().unsubscribe(handle)
        if not self.has_subscribers():
            self._stop_event.set()

    def wait_finished(self, timeout: Optional[float] = None) -> bool:
        """Block until the current replay pass ends; False on timeout."""
        return self._finished.wait(timeout)

    def close(self, timeout: Optional[float] = 1.0) -> None:
        self._stop_event.set()
        with self._lock:
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    # ----------------------------------------------------------------- helpers
    def _ensure_reader(self) -> None:
        with self._lock:
            # a pass whose stop event is already set is winding down; start a fresh one
            running = self._thread is not None and self._thread.is_alive()
            if running and not self._stop_event.is_set():
                return
            self._stop_event = threading.Event()
            self._finished = threading.Event()
            self._thread = threading.Thread(
                target=self._reader_loop,
                args=(self._stop_event, self._finished),
                name=f"ElevSenseReplay({self.name})",
                daemon=True,
            )
            self._thread.start()

    def _reader_loop(self, stop_event: threading.Event, finished: threading.Event) -> None:
        first_ts: Optional[int] = None
        started = time.monotonic()
        delivered = 0
        try:
            for raw_line in self._line_factory():
                if stop_event.is_set():
                    break
                sample = parse_line(raw_line)
                if sample is None:
                    continue

                if self.speed > 0.0:
                    if first_ts is None:
                        first_ts = sample.timestamp_ms
                    target = started + (sample.timestamp_ms - first_ts) / 1000.0 / self.speed
                    delay = target - time.monotonic()
                    if delay > 0 and stop_event.wait(delay):
                        break

                try:
                    delivered += self.emit(sample.stream_id, sample.payload, sample.timestamp_ms)
                except Exception:
                    logger.exception("Replay subscriber failed for sample %r", sample)
        except OSError as exc:
            logger.error("%s: capture could not be read (%s)", self.name, exc)
        finally:
            logger.debug("%s: replay pass ended after %d deliveries", self.name, delivered)
            finished.set()
