# policy_approval/logging.py
"""
Structured logging for the policy approval service.

Provides JSON-formatted logging with consistent fields:
- timestamp: ISO 8601
- level: DEBUG/INFO/WARNING/ERROR/CRITICAL
- logger: Module name
- message: Log message
- **kwargs: Additional structured fields

Usage:
    from policy_approval.logging import get_logger
    logger = get_logger(__name__)
    logger.info("policy_created", policy_number="POL-000001")
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict


class StructuredLogFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs each log line as a JSON object with consistent fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "structured_data"):
            log_data.update(record.structured_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Source location for errors
        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Wrapper around Python logger that supports structured logging.

    Example:
        logger = get_logger(__name__)
        logger.info("policy_submitted", policy_id=str(policy_id))
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **kwargs):
        extra = {"structured_data": kwargs}
        self._logger.log(level, message, extra=extra)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with structured data (includes traceback)."""
        extra = {"structured_data": kwargs}
        self._logger.exception(message, extra=extra)


_configured = False


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
):
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSON format (True) or plain text (False)
    """
    global _configured
    if _configured:
        return
    _configured = True

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    if json_output:
        console_handler.setFormatter(StructuredLogFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            )
        )
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance
    """
    if not _configured:
        from .settings import settings
        configure_logging(level=settings.log_level, json_output=settings.log_json)
    return StructuredLogger(name)


def get_api_logger() -> StructuredLogger:
    """Get logger for API routes."""
    return get_logger("policy_approval.api")
