"""Loguru sink configuration shared by the CLI entrypoints."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"


def setup_logging(
    level: str = "INFO",
    *,
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: int = 3,
) -> None:
    """Replace the default Loguru sink with a compact stderr sink (and optional file)."""
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level)

    if log_file:
        target = Path(log_file)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(target),
            level=level,
            rotation=rotation,
            retention=retention,
        )
