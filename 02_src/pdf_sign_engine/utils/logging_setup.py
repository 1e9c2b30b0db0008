"""Logging setup for applications embedding the engine."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "pdf_sign_engine"
LOG_FORMAT = "%(asctime)s | %(name)s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def setup_logging(
    log_level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Route engine logs to stdout and optionally to a UTF-8 file.

    Calling it again with the same log_file does not add a second handler.

    Args:
        log_level: Level name ("DEBUG", "info", ...) or logging constant
        log_file: Extra file destination, parent directories are created

    Returns:
        The package logger
    """
    if isinstance(log_level, str):
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    else:
        level = log_level

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, stream=sys.stdout)

    engine_logger = logging.getLogger(PACKAGE_LOGGER)
    engine_logger.setLevel(level)

    if log_file is not None:
        target = Path(log_file).resolve()
        already = any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename) == target
            for h in engine_logger.handlers
        )
        if not already:
            target.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(target, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
            engine_logger.addHandler(file_handler)

    return engine_logger
