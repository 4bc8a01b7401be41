"""Logging configuration for WeLabel Recorder."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "aiosqlite")


def setup_logging(
    level: str = "INFO",
    debug: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    """
    Configure logging for the recorder, API service and CLI.

    Recording usually runs unattended, so a log file next to the recorded
    data can be added on top of stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: Enable debug mode with verbose formatting
        log_file: Optional file that receives the same records as stdout
    """
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    if debug:
        log_format = (
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
        )
    else:
        log_format = "%(asctime)s | %(levelname)-8s | %(message)s"

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )

    # Keep uvicorn in line with the service when `welabel serve` is used
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(
        logging.DEBUG if debug else logging.WARNING
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
