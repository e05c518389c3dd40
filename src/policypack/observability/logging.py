"""
Structured logging configuration for policypack.

Provides consistent logging across all modules with support for
human-readable and JSON output.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else was passed as extra
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def event_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the extra fields attached to a record, in attachment order."""
    return {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per record.

    Event fields (event_type, rule_name, resource_id, ...) become top-level
    keys, so CI log processors can filter evaluation events directly.
    """

    def __init__(self, extra_fields: dict[str, Any] | None = None):
        """
        Initialize structured formatter.

        Args:
            extra_fields: Fields added to every record (e.g. a CI run id)
        """
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(event_fields(record))
        log_data.update(self.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter for terminals.

    Prints ``[time] LEVEL logger: message`` and, at debug level, the
    record's event fields as ``key=value`` pairs.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, include_timestamp: bool = True):
        """
        Initialize human-readable formatter.

        Args:
            use_colors: Color the level name when stderr is a terminal
            include_timestamp: Prefix records with their UTC time
        """
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a single line of text."""
        level = f"{record.levelname:>8}"
        color = self.LEVEL_COLORS.get(record.levelno)
        if self.use_colors and color:
            level = f"{color}{level}{self.RESET}"

        line = f"{level} {record.name}: {record.getMessage()}"
        if self.include_timestamp:
            line = f"[{_record_time(record):%Y-%m-%d %H:%M:%S}] {line}"

        if record.levelno <= logging.DEBUG:
            fields = event_fields(record)
            if fields:
                line += " " + " ".join(f"{k}={v}" for k, v in fields.items())

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class PackLogger:
    """
    Wrapper around Python logging with evaluation event helpers.

    Event helpers attach an event_type and their arguments as extra
    fields, which the structured formatter emits as JSON keys.
    """

    def __init__(self, name: str, level: int = logging.NOTSET):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Log level (NOTSET defers to the parent logger)
        """
        self.logger = logging.getLogger(name)
        if level != logging.NOTSET:
            self.logger.setLevel(level)
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context fields for all logs."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        """Clear context fields."""
        self._context.clear()

    def _log(
        self,
        level: int,
        message: str,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = {**self._context, **kwargs}
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def evaluation_started(self, resource_count: int, rule_count: int, workers: int) -> None:
        """Log evaluation run start event."""
        self.info(
            "Evaluation started",
            event_type="evaluation.started",
            resource_count=resource_count,
            rule_count=rule_count,
            workers=workers,
        )

    def evaluation_completed(
        self,
        resource_count: int,
        violation_count: int,
        duration_seconds: float,
    ) -> None:
        """Log evaluation run completion event."""
        self.info(
            "Evaluation completed",
            event_type="evaluation.completed",
            resource_count=resource_count,
            violation_count=violation_count,
            duration_seconds=duration_seconds,
        )

    def violation_reported(
        self,
        violation_id: str,
        rule_name: str,
        resource_id: str,
        enforcement_level: str,
    ) -> None:
        """Log violation event."""
        self.debug(
            "Violation reported",
            event_type="violation.reported",
            violation_id=violation_id,
            rule_name=rule_name,
            resource_id=resource_id,
            enforcement_level=enforcement_level,
        )

    def rule_failed(self, rule_name: str, resource_id: str, error: str) -> None:
        """Log a rule that raised while checking a resource."""
        self.warning(
            f"Rule {rule_name} failed on {resource_id}: {error}",
            event_type="rule.failed",
            rule_name=rule_name,
            resource_id=resource_id,
            error=error,
        )


def configure_logging(
    level: str = "WARNING",
    format: str = "human",
    output: str = "stderr",
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Configure logging for policypack.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (human, json)
        output: Output destination (stderr, stdout)
        extra_fields: Extra fields to include in structured logs
    """
    root_logger = logging.getLogger("policypack")
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    if output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> PackLogger:
    """
    Get a policypack logger instance.

    Args:
        name: Logger name (typically the module's short name)

    Returns:
        PackLogger instance
    """
    return PackLogger(f"policypack.{name}")


# Configure logging from environment on import
_log_level = os.getenv("POLICYPACK_LOG_LEVEL", "WARNING")
_log_format = os.getenv("POLICYPACK_LOG_FORMAT", "human")
configure_logging(level=_log_level, format=_log_format)
