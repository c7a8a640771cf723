"""Logger setup: rich console output plus a rotating log file."""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from rich.logging import RichHandler

from docker_from_scratch.settings import (
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    LOGGER_NAME,
)
from docker_from_scratch.ui import console


def setup_logger(
    log_file: Optional[Union[str, Path]] = DEFAULT_LOG_FILE,
    console_level: str = DEFAULT_LOG_LEVEL,
) -> logging.Logger:
    """Set up and configure the tool logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Remove any existing handlers
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    console_handler = RichHandler(console=console, rich_tracebacks=True)
    console_handler.setLevel(getattr(logging, console_level.upper(), logging.WARNING))
    logger.addHandler(console_handler)

    if log_file is None:
        return logger

    log_file = Path(log_file)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=3
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(file_handler)
        os.chmod(str(log_file), 0o600)
    except OSError as e:
        logger.warning(f"Could not set up log file {log_file}: {e}")
        logger.warning("Continuing with console logging only")

    return logger
