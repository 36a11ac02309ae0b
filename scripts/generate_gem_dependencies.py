#!/usr/bin/env python3
"""CLI entrypoint for generating gem system dependency data."""

from __future__ import annotations

import sys
from pathlib import Path

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from gemdeps.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
