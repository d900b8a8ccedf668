#!/usr/bin/env python3
"""Run the capture replay from a source checkout without installing the package."""

import sys
from pathlib import Path

# 'src' holds the elevsense package in a checkout
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from elevsense.tools.replay import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
