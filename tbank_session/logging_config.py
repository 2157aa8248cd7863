"""
Structured Logging Configuration Module

Provides JSON-formatted structured logging for session, auth and transport operations.
Session contents, passwords and confirmation codes are never passed to these helpers.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "identity": getattr(record, 'identity', None),
            "action": getattr(record, 'action', None),
            "resource": getattr(record, 'resource', None),
            "extra": getattr(record, 'extra', None)
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "tbank",
                  log_format: str = "json") -> logging.Logger:
    """
    Setup logging for the session layer.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the root logger of the package
        log_format: "json" for structured records, "text" for plain lines

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    # Log records go to stderr; stdout carries traffic dumps
    handler = logging.StreamHandler()
    if log_format == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JSONFormatter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = "tbank") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               identity: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, extra: Optional[dict] = None):
    """
    Log an action with structured data.

    Args:
        logger: Logger instance
        level: Log level (info, warning, error, etc.)
        message: Log message
        identity: Identity (phone number) the action concerns
        action: Action being performed
        resource: Resource being acted upon (file path, URL)
        extra: Additional structured data
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    record = logger.makeRecord(
        logger.name, levelno,
        __name__, 0, message, (), None
    )

    if identity:
        record.identity = identity
    if action:
        record.action = action
    if resource:
        record.resource = resource
    if extra:
        record.extra = extra

    logger.handle(record)
