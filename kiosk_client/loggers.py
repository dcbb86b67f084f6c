"""
Logging configuration for the kiosk client.

This module provides a centralized logging setup with support for:
- Console output with colored formatting
- File rotation with size limits
- Optional remote logging to Loki, posted from a listener thread
"""

import atexit
import logging
import queue
import time
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from typing import Final, Optional

import colorlog
import httpx

from kiosk_client.configs import APP_NAME, LOG_FILE, LOKI_URL


# =============================================================================
# Constants
# =============================================================================

DEFAULT_LOG_FORMAT: Final[str] = (
    "%(name)s | %(asctime)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s"
)
DEFAULT_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
MAX_LOG_FILE_SIZE: Final[int] = 5 * 1024 * 1024  # 5 MB
LOG_BACKUP_COUNT: Final[int] = 3
LOKI_TIMEOUT: Final[float] = 2.0

LOG_COLORS: Final[dict[str, str]] = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


# =============================================================================
# Loki Integration
# =============================================================================

class LokiHandler(logging.Handler):
    """
    Logging handler that pushes records to a Loki instance.

    Attributes:
        url: Loki push endpoint.
        app: Application name for Loki labels.
    """

    def __init__(self, url: str, app: str) -> None:
        super().__init__()
        self.url = url
        self.app = app

    def emit(self, record: logging.LogRecord) -> None:
        try:
            payload = {
                "streams": [
                    {
                        "stream": {"level": record.levelname.upper(), "app": self.app},
                        "values": [[str(int(time.time() * 1e9)), self.format(record)]],
                    }
                ]
            }
            with httpx.Client(timeout=LOKI_TIMEOUT) as client:
                client.post(self.url, json=payload)
        except Exception:
            self.handleError(record)


# =============================================================================
# Logger Factory
# =============================================================================

# Started listeners, one per Loki-enabled logger
LOKI_LISTENERS: list[QueueListener] = []


def _queued(handler: logging.Handler) -> QueueHandler:
    """
    Wrap a blocking handler so records are emitted on a listener thread.

    The listener is stopped at interpreter exit, flushing queued records.
    """
    records: queue.SimpleQueue = queue.SimpleQueue()
    listener = QueueListener(records, handler, respect_handler_level=True)
    listener.start()
    atexit.register(listener.stop)
    LOKI_LISTENERS.append(listener)

    queue_handler = QueueHandler(records)
    queue_handler.setLevel(handler.level)
    return queue_handler


def get_logger(
    name: str,
    app: str = APP_NAME,
    log_file: Optional[str] = LOG_FILE,
    loki_url: Optional[str] = LOKI_URL,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """
    Create and configure a logger with console, file, and Loki handlers.

    Args:
        name: Logger name.
        app: Application name for Loki labels.
        log_file: Path to the rotating log file, or None to skip file output.
        loki_url: Loki push URL, or empty/None to disable Loki.
        level: Logging level (default: DEBUG).

    Returns:
        Configured logger instance.
    """
    logger_instance = logging.getLogger(name)
    logger_instance.setLevel(level)

    # Avoid duplicate handlers on repeated calls
    if logger_instance.handlers:
        return logger_instance

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(name)s | %(log_color)s%(asctime)s | %(levelname)s | "
            "%(funcName)s:%(lineno)d | %(message)s",
            datefmt=DEFAULT_DATE_FORMAT,
            log_colors=LOG_COLORS,
        )
    )
    logger_instance.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=MAX_LOG_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(fmt=DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        )
        logger_instance.addHandler(file_handler)

    if loki_url:
        loki_handler = LokiHandler(loki_url, app)
        loki_handler.setLevel(logging.INFO)
        loki_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt=DEFAULT_DATE_FORMAT,
            )
        )
        logger_instance.addHandler(_queued(loki_handler))

    return logger_instance


# =============================================================================
# Default Logger Instance
# =============================================================================

logger = get_logger(name="KIOSK_CLIENT")
