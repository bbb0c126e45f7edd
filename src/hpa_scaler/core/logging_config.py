#!/usr/bin/env python3
"""
Logging setup for the scaler process

Handlers are attached to the root logger once at startup, every module logs
through logging.getLogger(__name__).
"""

import logging
import sys
from pathlib import Path

from hpa_scaler.config.settings import LoggingSettings

RESET = '\033[0m'
LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',
    logging.INFO: '\033[32m',
    logging.WARNING: '\033[33m',
    logging.ERROR: '\033[31m',
    logging.CRITICAL: '\033[35m',
}

# Kubernetes and HTTP clients log every request at DEBUG
QUIET_LOGGERS = ("kubernetes", "urllib3", "requests", "uvicorn.access")


class ColoredFormatter(logging.Formatter):
    """Colors the level name, the record itself is left as it was"""

    def formatMessage(self, record):
        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().formatMessage(record)

        levelname = record.levelname
        record.levelname = f"{color}{levelname}{RESET}"
        try:
            return super().formatMessage(record)
        finally:
            record.levelname = levelname


def setup_logging(settings: LoggingSettings, debug: bool = False, stream=None) -> None:
    """
    Configure the root logger from the logging settings

    Args:
        settings: Level, formats, optional log file and colors
        debug: Force DEBUG regardless of the configured level
        stream: Console stream, stdout when not given
    """
    level_name = "DEBUG" if debug else settings.level.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    stream = stream or sys.stdout
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream)
    if settings.colors and stream.isatty():
        console_handler.setFormatter(ColoredFormatter(settings.format))
    else:
        console_handler.setFormatter(logging.Formatter(settings.format))
    root_logger.addHandler(console_handler)

    if settings.file:
        log_path = Path(settings.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(settings.file_format))
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info(
        f"Logging configured at {logging.getLevelName(level)}"
        + (f", writing to {settings.file}" if settings.file else "")
    )


def log_separator(logger: logging.Logger, title: str, width: int = 60) -> None:
    """Log a visual separator line with a centered title"""
    logger.info(f" {title} ".center(width, "="))
