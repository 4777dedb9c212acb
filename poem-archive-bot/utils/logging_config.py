#!/usr/bin/env python3
"""
Logging configuration utilities.
"""
import logging
import os
import re
import sys

from config.settings import LOG_DIR


class FlushFileHandler(logging.FileHandler):
    """File handler that flushes after each log record."""
    def emit(self, record):
        super().emit(record)
        self.flush()


def setup_logging(log_file: str, level: int = logging.INFO, include_default_filters: bool = False) -> logging.Logger:
    """
    Set up logging configuration with both file and console handlers.

    Args:
        log_file: Log file name, relative paths land in LOG_DIR
        level: Logging level
        include_default_filters: Install the HTTP client token filters

    Returns:
        Configured logger
    """
    if not os.path.isabs(log_file):
        log_file = os.path.join(LOG_DIR, log_file)

    # Create handlers
    stream_handler = logging.StreamHandler(sys.stdout)
    file_handler = FlushFileHandler(log_file, encoding="utf-8")

    # Set consistent formatter
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    stream_handler.setFormatter(formatter)
    file_handler.setFormatter(formatter)

    # Apply to root logger
    logging.basicConfig(level=level, handlers=[stream_handler, file_handler])

    if include_default_filters:
        setup_http_logging()

    return logging.getLogger(__name__)


class RedactBotTokenFilter(logging.Filter):
    """Mask bot tokens embedded in Telegram API URLs."""
    TOKEN_PATTERN = re.compile(r"/bot[^/\s]+/")

    def filter(self, record):
        message = record.getMessage()
        if "/bot" in message:
            record.msg = self.TOKEN_PATTERN.sub("/bot***/", message)
            record.args = None
        return True


def setup_http_logging():
    """httpx logs every request URL at INFO; the Telegram token is part of that URL."""
    for name in ("httpx", "httpcore"):
        logger = logging.getLogger(name)
        if not any(isinstance(f, RedactBotTokenFilter) for f in logger.filters):
            logger.addFilter(RedactBotTokenFilter())
