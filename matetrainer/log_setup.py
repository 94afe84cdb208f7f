"""
Logging setup shared by the entry points.

Everything goes to a rotating file under the configured log directory. The
web server also logs to the console; the terminal UI does not, so log lines
never interleave with the Rich board display.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from matetrainer.config import LoggingConfig

LOG_FILE_NAME = "matetrainer.log"


def configure_logging(cfg: LoggingConfig, *, console: bool) -> Path:
    """Install the root handlers once and return the log file path."""
    log_file = Path(cfg.dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_file, maxBytes=2 * 1024 * 1024, backupCount=3,  # 2 MB × 3 files
            encoding="utf-8",
        ),
    ]
    if console:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=getattr(logging, cfg.level),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        handlers=handlers,
    )
    return log_file
