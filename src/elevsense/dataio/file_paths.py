"""Helpers for constructing standard file paths."""

import re
from datetime import datetime
from pathlib import Path

from ..config.app_config import AppPaths

# Allow only alphanumerics, underscore, dot, and dash.
_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]+")

DEFAULT_EXPORT_PREFIX = "elevation_session"


def _sanitize_name(name: str) -> str:
    """
    Sanitize a file-name prefix.

    - Replace disallowed characters with '_'.
    - Strip leading/trailing underscores.
    - Fall back to the default prefix if nothing remains.
    """
    cleaned = _NAME_RE.sub("_", name).strip("_")
    return cleaned or DEFAULT_EXPORT_PREFIX


def export_file(prefix: str = DEFAULT_EXPORT_PREFIX, base: Path | None = None, suffix: str = ".csv") -> Path:
    """
    Build a timestamped export file path.

    Example: "elevation_session_20251204_153045.csv"
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    root = base or AppPaths().exports
    return root / f"{_sanitize_name(prefix)}_{timestamp}{suffix}"
