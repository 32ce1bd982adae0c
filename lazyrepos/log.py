"""Logging setup for interactive and scripted runs.

The package disables its loguru logger on import; ``setup_logging`` enables it
and installs sinks. The terminal belongs to the presentation client, so the
default sink is a rotating file and stderr is opt-in.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger
from platformdirs import user_log_dir

APP_NAME = "lazyrepos"
LOG_DIR = Path(user_log_dir(APP_NAME, appauthor=False))
LOG_FILENAME = "lazyrepos.log"
STDERR_FORMAT = "<level>{level: <8}</level> {name}:{function} - {message}"


def setup_logging(level: str = "INFO", *, stderr: bool = False, log_dir: Path = LOG_DIR) -> Path | None:
    """Install sinks and return the log file path, or ``None`` if it is unwritable."""
    logger.remove()
    logger.enable(APP_NAME)
    if stderr:
        logger.add(sys.stderr, level=level, format=STDERR_FORMAT)

    log_path = log_dir / LOG_FILENAME
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path),
            level="DEBUG",
            rotation="5 MB",
            retention="7 days",
            enqueue=True,
        )
    except OSError as exc:
        if stderr:
            logger.warning("file logging disabled: {}", exc)
        return None
    return log_path


__all__ = ["LOG_DIR", "setup_logging"]
