"""
Centralized logging configuration for the order gateway.

This module provides a consistent logging setup across all components.
Console output goes to stdout; a rotating log file is added per logger when
``LOG_DIR`` is set. Every handler carries a redaction filter so a private
key can never reach a log sink, even when an exception message quotes one.
"""

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


# Log levels
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}

LOGGER_PREFIX = "hlgw."

# 32-byte hex strings (private keys; action hashes are logged truncated)
_SECRET_PATTERN = re.compile(r"(?<![0-9a-fA-F])(?:0x)?[0-9a-fA-F]{64}(?![0-9a-fA-F])")
REDACTED = "<redacted>"

_traceback_formatter = logging.Formatter()


def redact(text: str) -> str:
    """Mask anything shaped like a raw private key."""
    return _SECRET_PATTERN.sub(REDACTED, text)


class SecretRedactionFilter(logging.Filter):
    """Logging filter that rewrites records whose text contains key material."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        if record.exc_info and not record.exc_text:
            # Formatters reuse exc_text, so the traceback is masked once here
            record.exc_text = redact(_traceback_formatter.formatException(record.exc_info))
        return True


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: str = "INFO",
    log_to_console: bool = True,
) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Args:
        name: Logger name (``hlgw.<component>``)
        log_file: File name inside ``LOG_DIR``; ignored when ``LOG_DIR`` is unset
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_console: Whether to output to console

    Returns:
        Configured logger instance
    """
    # Check environment variable for global log level override
    env_log_level = os.getenv('LOG_LEVEL', '').upper()
    if env_log_level and env_log_level in LOG_LEVELS:
        effective_level = env_log_level
    else:
        effective_level = level.upper()

    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVELS.get(effective_level, logging.INFO))

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(name)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    redaction = SecretRedactionFilter()

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(LOG_LEVELS.get(effective_level, logging.INFO))
        console_handler.setFormatter(formatter)
        console_handler.addFilter(redaction)
        logger.addHandler(console_handler)

    log_dir = os.getenv('LOG_DIR')
    if log_file and log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=2,
            encoding='utf-8'
        )
        file_handler.setLevel(LOG_LEVELS.get(effective_level, logging.INFO))
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redaction)
        logger.addHandler(file_handler)

    return logger


def get_component_logger(component: str, level: str = "INFO") -> logging.Logger:
    """
    Get a logger for one pipeline component.

    Args:
        component: Short component name, e.g. "pipeline" or "connector.hyperliquid"
        level: Log level

    Logs to: $LOG_DIR/{component}.log
    """
    return setup_logger(
        name=f"{LOGGER_PREFIX}{component}",
        log_file=f"{component}.log",
        level=level
    )


def short_hex(value: bytes, length: int = 10) -> str:
    """Truncated 0x-hex for log lines (never a full 32-byte value)."""
    return "0x" + value.hex()[:length] + "…"


def set_global_log_level(level: str = "INFO"):
    """
    Reconfigure all existing gateway loggers to use the specified log level.

    Args:
        level: Log level to set (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)

    for logger_name in list(logging.root.manager.loggerDict):
        if logger_name.startswith(LOGGER_PREFIX):
            logger = logging.getLogger(logger_name)
            logger.setLevel(log_level)

            for handler in logger.handlers:
                handler.setLevel(log_level)

    # Silence noisy third-party loggers when in ERROR mode
    if level.upper() == "ERROR":
        noisy_loggers = [
            "urllib3",
            "urllib3.connectionpool",
            "requests",
            "hyperliquid",
            "asyncio"
        ]
        for logger_name in noisy_loggers:
            logging.getLogger(logger_name).setLevel(logging.ERROR)
