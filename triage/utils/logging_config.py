"""
Logging Configuration
=====================
Console (colored by level) plus a dated file under the log directory.
"""
import logging
import os
import sys
from datetime import datetime
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that must reach the root handlers
_PROPAGATED_LOGGERS = ("triage", "uvicorn", "uvicorn.error", "uvicorn.access", "main")


class ColoredFormatter(logging.Formatter):
    """Wraps each console line in the ANSI color of its level."""

    COLORS = {
        logging.DEBUG: "\x1b[36m",       # cyan
        logging.INFO: "\x1b[32m",        # green
        logging.WARNING: "\x1b[33m",     # yellow
        logging.ERROR: "\x1b[31m",       # red
        logging.CRITICAL: "\x1b[31;1m",  # bold red
    }
    RESET = "\x1b[0m"

    def __init__(self) -> None:
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record):
        line = super().format(record)
        color = self.COLORS.get(record.levelno)
        return f"{color}{line}{self.RESET}" if color else line


def setup_logging(level=logging.INFO, log_dir: Optional[str] = "logs") -> None:
    """
    Install the console and file handlers on the root logger.

    Existing root handlers are removed first so repeated calls (uvicorn
    reload) do not duplicate output. Pass ``log_dir=None`` to skip the
    file handler.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_path = os.path.join(log_dir, f"triage_{datetime.now().strftime('%Y%m%d')}.log")
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in _PROPAGATED_LOGGERS:
        named = logging.getLogger(name)
        named.setLevel(level)
        named.propagate = True

    root_logger.info("Logging initialized (level=%s)", level)
