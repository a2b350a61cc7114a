# SPDX-License-Identifier: MIT
"""Detail and status loggers for the sync layer.

Two named loggers are used throughout the package:

- ``storefront_sync.detail`` traces channel lifecycles, registry
  bookkeeping, poll ticks and store calls. It goes to the log file only.
- ``storefront_sync.status`` reports conditions an operator should see:
  fail-open settings reads, broken live updates, skipped refreshes and
  CLI errors. It goes to stderr and to the same log file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

DETAIL_LOGGER_NAME = "storefront_sync.detail"
STATUS_LOGGER_NAME = "storefront_sync.status"

LOG_DIR_NAME = ".storefront-sync"
LOG_FILE_NAME = "storefront-sync.log"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"


class FlushingStreamHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Stream handler that flushes after every record."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        if self.stream and not self.stream.closed:
            self.flush()


def _file_handler(log_file: Path) -> logging.FileHandler:
    # Truncated at every setup so the file covers one process run
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def _console_handler() -> FlushingStreamHandler:
    handler = FlushingStreamHandler(sys.stderr)
    handler.setLevel(logging.INFO)
    handler.setFormatter(
        logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT)
    )
    return handler


def _wire(name: str, level: int, *handlers: logging.Handler) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def setup_logging(log_dir: Path | None = None) -> tuple[logging.Logger, logging.Logger]:
    """Attach handlers to the detail and status loggers.

    Safe to call more than once; each call replaces the previous handlers
    and starts a fresh log file.

    Args:
        log_dir: Where to write the log file. Defaults to ``.storefront-sync``
            in the working directory.

    Returns:
        Tuple of (detail_logger, status_logger)
    """
    log_dir = log_dir if log_dir is not None else Path.cwd() / LOG_DIR_NAME
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    file_handler = _file_handler(log_file)
    detail_logger = _wire(DETAIL_LOGGER_NAME, logging.DEBUG, file_handler)
    status_logger = _wire(
        STATUS_LOGGER_NAME, logging.INFO, _console_handler(), file_handler
    )

    detail_logger.info(f"Logging to {log_file}")
    return detail_logger, status_logger


def get_detail_logger() -> logging.Logger:
    """Logger for file-only traces of channels, registry and store calls."""
    return logging.getLogger(DETAIL_LOGGER_NAME)


def get_status_logger() -> logging.Logger:
    """Logger for operator-facing warnings and CLI errors."""
    return logging.getLogger(STATUS_LOGGER_NAME)
