from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Every line starts with its label: INFO | WARN | ERROR | SUMMARY (plus DEBUG
when enabled). Output goes to stdout so CLI output and logs interleave in
order. Module loggers (``logging.getLogger(__name__)`` under
``answerboard.*``) are routed to the same handler.

The JSON Lines audit trail lives in `answerboard.logging.audit_log`.
"""

__all__ = [
    "setup_logging",
    "get_logger",
    "log_summary",
    "reset_logging",
    "set_debug",
    "LabeledFormatter",
    "SUMMARY_LEVEL",
]

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

APP_LOGGER_NAME = "answer_board"
PACKAGE_LOGGER_NAME = "answerboard"

# Global logger instance
_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter that prefixes each message with its level label."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        message = f"{level_label} {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Set up the application logger (idempotent).

    Returns:
        Configured logger instance for the application
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(LabeledFormatter())

    logger = logging.getLogger(APP_LOGGER_NAME)
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for lg in (logger, package_logger):
        lg.setLevel(level)
        # Clear any existing handlers to avoid duplication
        for h in lg.handlers[:]:
            lg.removeHandler(h)
        lg.addHandler(handler)
        lg.propagate = False

    _logger = logger
    return logger


def set_debug(enabled: bool = True) -> None:
    level = logging.DEBUG if enabled else logging.INFO
    for name in (APP_LOGGER_NAME, PACKAGE_LOGGER_NAME):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        for h in lg.handlers:
            h.setLevel(level)


def get_logger() -> logging.Logger:
    """Get the configured application logger, configuring it on first use."""
    if _logger is None:
        return setup_logging()
    return _logger


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    _logger = None
    for name in (APP_LOGGER_NAME, PACKAGE_LOGGER_NAME):
        lg = logging.getLogger(name)
        for h in lg.handlers[:]:
            lg.removeHandler(h)
        lg.setLevel(logging.NOTSET)
        lg.propagate = True
