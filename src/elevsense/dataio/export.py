"""
Tabular export of finished recording sessions.

Series in a session are independent: they differ in length and sample times.
Rows are rebuilt by zipping every column on its index; a column that has run
out contributes the declared default. Within one column the recorded order is
kept, so each series' timestamps stay monotonic.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..core.events import AngleChannel
from ..core.recorder import RecordingSession, SeriesKey
from ..sensors.models import Orientation, StreamId
from .file_paths import export_file

DEFAULT_FILL = 0.0

_CANONICAL_ORDER: Tuple[SeriesKey, ...] = (*AngleChannel, *StreamId)


def zip_series(series: Sequence[Sequence[Any]], default: Any = DEFAULT_FILL) -> List[List[Any]]:
    """
    Zip ``series`` on index into ``max(len)`` rows.

    Row ``i`` holds the ``i``-th entry of every series, or ``default`` where a
    series is shorter than ``i + 1``.
    """
    n_rows = max((len(s) for s in series), default=0)
    return [[s[i] if i < len(s) else default for s in series] for i in range(n_rows)]


def _series_columns(session: RecordingSession, key: SeriesKey) -> List[Tuple[str, List[Any]]]:
    points = session.get(key)
    name = key.value
    columns: List[Tuple[str, List[Any]]] = [(f"{name}_t_ms", [t for t, _ in points])]
    if points and isinstance(points[0][1], Orientation):
        for axis in ("x", "y", "z"):
            columns.append((f"{name}_{axis}", [getattr(v, axis) for _, v in points]))
    else:
        columns.append((name, [v for _, v in points]))
    return columns


def session_table(
    session: RecordingSession,
    keys: Optional[Iterable[SeriesKey]] = None,
    *,
    default: Any = DEFAULT_FILL,
) -> Tuple[List[str], List[List[Any]]]:
    """
    Return ``(headers, rows)`` for ``session``.

    ``keys`` selects and orders the series; by default every recorded series
    is exported, angles first. Each series contributes a ``<name>_t_ms``
    column followed by its value column (or ``_x/_y/_z`` for three-axis
    series).
    """
    if keys is None:
        keys = [key for key in _CANONICAL_ORDER if key in session.series]

    headers: List[str] = []
    columns: List[List[Any]] = []
    for key in keys:
        for header, values in _series_columns(session, key):
            headers.append(header)
            columns.append(values)
    return headers, zip_series(columns, default)


def write_session_csv(
    session: RecordingSession,
    path: Path | None = None,
    *,
    keys: Optional[Iterable[SeriesKey]] = None,
    default: Any = DEFAULT_FILL,
) -> Path:
    """
    Write ``session`` as CSV and return the path written.

    Without ``path`` a timestamped file under the exports directory is used.
    Directories are created as needed.
    """
    target = Path(path) if path is not None else export_file()
    headers, rows = session_table(session, keys, default=default)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(headers)
        writer.writerows(rows)
    return target
