"""Structured logging configuration for Loki integration.

Console output stays human-readable; ``logs/app.log`` and ``logs/error.log``
carry one JSON object per line. Request context (tenant, ranking source,
fallback reason) travels on the record through ``get_logger(..., tenant=...)``
and is lifted into top-level JSON keys so Loki can label on it.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pythonjsonlogger import jsonlogger

from fitrank.config import settings

SERVICE_NAME = "fitrank"

# Record attributes promoted to top-level JSON keys when present
CONTEXT_FIELDS = ("tenant", "source", "fallback_reason")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields for Loki."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        # Add timestamp in ISO format (UTC, "Z" suffix)
        log_record['timestamp'] = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")

        # Add log level and logger name
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['service'] = SERVICE_NAME

        # Add source location
        log_record['source_location'] = f"{record.filename}:{record.lineno}"

        # Add function name
        if record.funcName:
            log_record['function'] = record.funcName

        # Request context attached by LoggerAdapter
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value:
                log_record[name] = value


def setup_logging(base_dir: str | Path | None = None) -> logging.Logger:
    """Configure logging for the application.

    Args:
        base_dir: Optional base directory to place the log folder in.
                  If omitted, uses the current working directory.

    Returns:
        The configured root logger
    """

    # Create log directory if it doesn't exist
    logs_dir = (Path(base_dir) if base_dir else Path.cwd()) / settings.log_dir
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Get root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))

    # Clear existing handlers (setup_logging runs on every app import)
    root_logger.handlers.clear()

    # Console handler (human-readable for development)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    # File handler (JSON for Loki/Promtail)
    json_handler = logging.FileHandler(logs_dir / "app.log")
    json_handler.setLevel(logging.DEBUG)
    json_formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    json_handler.setFormatter(json_formatter)
    root_logger.addHandler(json_handler)

    # Separate file for errors only (ranking service failures end up here)
    error_handler = logging.FileHandler(logs_dir / "error.log")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(json_formatter)
    root_logger.addHandler(error_handler)

    # The SDK and HTTP stack are chatty at DEBUG
    for noisy in ("openai", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that attaches request context to every record."""

    def process(self, msg, kwargs):
        # Adapter context wins over per-call extra; the caller's dict is left alone
        extra = dict(kwargs.get('extra') or {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs

    def bind(self, **context) -> "LoggerAdapter":
        """Return a new adapter with additional context fields."""
        return LoggerAdapter(self.logger, {**self.extra, **context})


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger with optional context fields.

    Args:
        name: Logger name (usually __name__)
        **context: Additional context fields (e.g., tenant='shop.example.com')

    Returns:
        LoggerAdapter with context
    """
    logger = logging.getLogger(name)
    return LoggerAdapter(logger, context)
