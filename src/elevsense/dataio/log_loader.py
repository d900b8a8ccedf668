"""Utilities for loading exported session CSVs."""

from pathlib import Path
from typing import List, Tuple
import io

import numpy as np


def _looks_numeric_csv_line(line: str) -> bool:
    """Heuristically decide if a CSV line is numeric-only (no header)."""
    stripped = line.strip()
    if not stripped:
        return False
    tokens = [t for t in stripped.split(",") if t]
    if not tokens:
        return False
    try:
        for t in tokens:
            float(t)
        return True
    except ValueError:
        return False


def load_csv(path: Path) -> Tuple[List[str], np.ndarray]:
    """
    Load an exported CSV as ``(columns, data)``.

    ``data`` is a 2-D float array with one column per header entry. Files
    without a header row get positional names (``col0``, ``col1``, ...).
    """
    with Path(path).open("r", encoding="utf-8") as f:
        first_line = f.readline()
        rest = f.read()

    if _looks_numeric_csv_line(first_line):
        buffer = io.StringIO(first_line + rest)
        columns: List[str] = []
    else:
        buffer = io.StringIO(rest)
        columns = [c.strip() for c in first_line.strip().split(",")]

    if not buffer.getvalue().strip():
        return columns, np.empty((0, len(columns)))

    data = np.loadtxt(buffer, delimiter=",", ndmin=2)
    if not columns:
        columns = [f"col{i}" for i in range(data.shape[1])]
    return columns, data


def column(columns: List[str], data: np.ndarray, name: str) -> np.ndarray:
    """Return the column called ``name``; raises KeyError when missing."""
    try:
        idx = columns.index(name)
    except ValueError:
        raise KeyError(f"Column {name!r} not found; available: {', '.join(columns)}") from None
    return data[:, idx]
