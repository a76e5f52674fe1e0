"""
Logging Utilities

This module provides centralized logging configuration for the FastAPI
application. It ensures consistent log formatting with request ID tracing
across the quota gate, providers and delivery strategies.
"""
import logging
import uuid
from typing import Optional


# Parent of every module logger under the app package
LOGGER_NAME = "app"


class _RequestIdDefault(logging.Filter):
    """Fill request_id for records that did not come through a LoggerAdapter."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def setup_logger(
    log_level: int = logging.INFO,
    logger_name: str = LOGGER_NAME
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        log_level: Logging level constant from logging module.
                  Defaults to logging.INFO (20).
        logger_name: Name for the logger instance.

    Returns:
        Configured Logger instance ready for use with get_request_logger().

    Example:
        >>> logger = setup_logger(log_level=logging.DEBUG)
        >>> request_logger = get_request_logger("3f9a1c2e")
        >>> request_logger.info("Search started")
        2026-10-19 10:30:45 | INFO | [3f9a1c2e] Search started
    """
    log_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | [%(request_id)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # Prevent duplicate handlers if logger already configured
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(log_format)
        console_handler.addFilter(_RequestIdDefault())
        logger.addHandler(console_handler)

    return logger


def get_request_logger(
    request_id: Optional[str] = None,
    base_logger: Optional[logging.Logger] = None
) -> logging.LoggerAdapter:
    """
    Create a logger adapter with the request ID for tracing.

    Args:
        request_id: Identifier for the request. A short random ID is generated when omitted.
        base_logger: Optional base logger to wrap. Defaults to the application logger.

    Returns:
        LoggerAdapter configured to inject request_id into all log messages.
    """
    if base_logger is None:
        base_logger = logging.getLogger(LOGGER_NAME)

    return logging.LoggerAdapter(base_logger, {"request_id": request_id or uuid.uuid4().hex[:8]})
