"""Default application paths."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class AppPaths:
    """
    Commonly used paths for captures and exports.

    ``ELEVSENSE_DATA_ROOT`` overrides the default ``data`` folder relative to
    the repository root so packaged installs can store files elsewhere.
    """

    # repo_root points at the project root (one level above src/)
    repo_root: Path = Path(__file__).resolve().parents[3]
    data_root: Path = field(init=False)
    captures: Path = field(init=False)
    exports: Path = field(init=False)

    def __post_init__(self) -> None:
        env_data_root = os.environ.get("ELEVSENSE_DATA_ROOT")
        if env_data_root:
            self.data_root = Path(env_data_root).expanduser()
        else:
            self.data_root = self.repo_root / "data"

        self.captures = self.data_root / "captures"
        self.exports = self.data_root / "exports"

    def ensure(self) -> None:
        """Create directories if they do not yet exist."""
        for path in (self.data_root, self.captures, self.exports):
            path.mkdir(parents=True, exist_ok=True)
