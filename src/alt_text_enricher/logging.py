"""Centralized logging configuration using loguru.

All modules log through loguru's ``logger`` with ``{}`` placeholders. The
standard-library loggers of the HTTP stack (httpx, httpcore) are routed into
the same sinks so request failures show up next to enrichment events.

Example:
    from alt_text_enricher.logging import setup_logging

    setup_logging(level="DEBUG")

    from loguru import logger
    logger.info("Enrichment service ready")

"""

import logging
import sys
from typing import Any

from loguru import logger

# Third-party stdlib loggers forwarded into loguru, with their minimum level
THIRD_PARTY_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> Any:
    """Configure loguru for the application.

    Should be called once by the entry point (CLI or server), never by
    library code.

    Args:
        level: Minimum log level to capture. One of: DEBUG, INFO, WARNING, ERROR, CRITICAL.
        json_output: If True, serialize records as JSON for log collectors.
        log_file: Optional file path to also write logs to, rotated at 10 MB.

    Returns:
        The configured loguru logger instance.

    Example:
        setup_logging(level="INFO", json_output=True)
        setup_logging(level="INFO", log_file="/var/log/alt-text-enricher.log")

    """
    logger.remove()

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )

    if json_output:
        logger.add(
            sys.stderr,
            format="{message}",
            serialize=True,
            level=level,
        )
    else:
        logger.add(
            sys.stderr,
            format=console_format,
            level=level,
            colorize=True,
        )

    if log_file:
        logger.add(
            log_file,
            format=console_format,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
        )

    handler = InterceptHandler()
    for name, minimum in THIRD_PARTY_LOGGERS.items():
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.setLevel(minimum)
        std_logger.propagate = False

    return logger

