#!/usr/bin/env python3
"""
Plot elevation angles from an exported session CSV.

Each angle series found in the file (``<family>_<algorithm>`` columns with a
matching ``_t_ms`` column) is drawn against seconds since the first sample.
By default the newest ``*.csv`` under ``data/exports`` is used.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from ..config.app_config import AppPaths
from ..core.events import AngleChannel
from ..dataio.log_loader import column, load_csv


def find_latest_export(root: Path) -> Optional[Path]:
    if not root.exists():
        return None
    candidates = list(root.glob("*.csv"))
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def plot_angles(path: Path, *, ax: Optional[plt.Axes] = None) -> plt.Axes:
    """
    Draw every angle channel present in ``path`` onto ``ax`` (created when
    omitted) and return the axes.

    Trailing rows padded with the export default (timestamp ``0`` after the
    series has ended) are skipped.
    """
    columns, data = load_csv(path)
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 4))

    t0: Optional[float] = None
    for channel in AngleChannel:
        if channel.value not in columns:
            continue
        t_ms = column(columns, data, f"{channel.value}_t_ms")
        values = column(columns, data, channel.value)
        nonzero = np.flatnonzero(t_ms)
        n = int(nonzero[-1]) + 1 if nonzero.size else min(1, t_ms.size)
        if n == 0:
            continue
        if t0 is None:
            t0 = float(t_ms[0])
        ax.plot((t_ms[:n] - t0) / 1000.0, values[:n], label=channel.value.replace("_", " "))

    ax.set_xlabel("time [s]")
    ax.set_ylabel("elevation [deg]")
    ax.set_title(path.name)
    ax.grid(True)
    if ax.get_legend_handles_labels()[0]:
        ax.legend(loc="best")
    return ax


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Plot elevation angles from a session CSV")
    parser.add_argument("--file", type=Path, default=None, help="Session CSV (default: newest export)")
    parser.add_argument("--save", type=Path, default=None, help="Write the figure to this path instead of showing it")
    args = parser.parse_args(list(argv) if argv is not None else None)

    path = args.file or find_latest_export(AppPaths().exports)
    if path is None:
        parser.error("no session CSV found; pass --file")

    ax = plot_angles(path)
    if args.save is not None:
        ax.figure.savefig(args.save)
    else:
        plt.show()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
