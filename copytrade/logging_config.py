"""
Structured Logging Configuration

Provides:
- Pass IDs so every log line emitted during a sync pass can be traced
- JSON formatting for machine parsing
- Human-readable console output
- Log rotation support
"""

import contextvars
import json
import logging
import logging.handlers
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union


# Context variables for pass tracking
pass_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "pass_id", default=None
)
trader_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "trader", default=None
)


class PassContext:
    """Context manager that tags log records with the current sync pass."""

    def __init__(self, pass_number: int, trader: Optional[str] = None):
        self.pass_id = f"pass-{pass_number}"
        self.trader = trader
        self._tokens = []

    def __enter__(self):
        self._tokens.append((pass_id_var, pass_id_var.set(self.pass_id)))
        if self.trader:
            self._tokens.append((trader_var, trader_var.set(self.trader)))
        return self

    def __exit__(self, *args):
        for var, token in reversed(self._tokens):
            var.reset(token)


def _utc(created: float) -> datetime:
    return datetime.fromtimestamp(created, tz=timezone.utc)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(
        self,
        include_traceback: bool = True,
        include_context: bool = True,
        extra_fields: Optional[Dict[str, Any]] = None,
    ):
        super().__init__()
        self.include_traceback = include_traceback
        self.include_context = include_context
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": _utc(record.created).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.include_context:
            pass_id = pass_id_var.get()
            trader = trader_var.get()
            if pass_id:
                log_data["pass_id"] = pass_id
            if trader:
                log_data["trader"] = trader

        log_data.update(self.extra_fields)

        if record.exc_info and self.include_traceback:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, default=str)


class StructuredFormatter(logging.Formatter):
    """Human-readable structured formatter for console output."""

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color
        self.colors = {
            "DEBUG": "\033[36m",  # Cyan
            "INFO": "\033[32m",  # Green
            "WARNING": "\033[33m",  # Yellow
            "ERROR": "\033[31m",  # Red
            "CRITICAL": "\033[35m",  # Magenta
            "RESET": "\033[0m",
        }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structure and color."""
        timestamp = _utc(record.created).strftime("%Y-%m-%d %H:%M:%S")

        level = record.levelname
        if self.use_color and sys.stdout.isatty():
            color = self.colors.get(level, "")
            reset = self.colors["RESET"]
            level = f"{color}{level}{reset}"

        parts = [
            f"[{timestamp}]",
            f"[{level}]",
            f"[{record.name}]",
        ]

        pass_id = pass_id_var.get()
        if pass_id:
            parts.append(f"[{pass_id}]")

        parts.append(record.getMessage())

        extra = getattr(record, "extra_data", None)
        if extra:
            parts.append(" ".join(f"{k}={v}" for k, v in extra.items()))

        if record.exc_info:
            exc_text = "\n".join(traceback.format_exception(*record.exc_info))
            parts.append(f"\n{exc_text}")

        return " ".join(parts)


class StructuredLogger:
    """Enhanced logger with structured logging capabilities."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log_with_extra(
        self, level: int, msg: str, extra_data: Optional[Dict[str, Any]] = None, **kwargs
    ):
        if extra_data:
            kwargs.setdefault("extra", {})["extra_data"] = extra_data
        self._logger.log(level, msg, **kwargs)

    def debug(self, msg: str, **extra_data):
        self._log_with_extra(logging.DEBUG, msg, extra_data or None)

    def info(self, msg: str, **extra_data):
        self._log_with_extra(logging.INFO, msg, extra_data or None)

    def warning(self, msg: str, **extra_data):
        self._log_with_extra(logging.WARNING, msg, extra_data or None)

    def error(self, msg: str, exc_info: bool = False, **extra_data):
        self._log_with_extra(logging.ERROR, msg, extra_data or None, exc_info=exc_info)

    def exception(self, msg: str, **extra_data):
        """Log exception with traceback and structured data."""
        self._log_with_extra(logging.ERROR, msg, extra_data or None, exc_info=True)


def setup_logging(
    log_dir: Union[str, Path] = "logs",
    log_file: str = "copytrade.log",
    level: Union[str, int] = logging.INFO,
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 20 * 1024 * 1024,  # 20MB
    backup_count: int = 5,
    extra_fields: Optional[Dict[str, Any]] = None,
) -> logging.Logger:
    """
    Configure structured logging for the application.

    Args:
        log_dir: Directory for log files
        log_file: Name of the log file
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting for file logs
        console_output: Enable console output
        max_bytes: Max size of log file before rotation
        backup_count: Number of backup files to keep
        extra_fields: Additional fields to include in all logs

    Returns:
        Configured root logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    file_handler = logging.handlers.RotatingFileHandler(
        log_path / log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)

    if json_format:
        file_formatter = JSONFormatter(
            include_traceback=True,
            include_context=True,
            extra_fields=extra_fields,
        )
    else:
        file_formatter = StructuredFormatter(use_color=False)

    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(StructuredFormatter(use_color=True))
        root_logger.addHandler(console_handler)

    return root_logger


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module (usually ``__name__``)."""
    return StructuredLogger(logging.getLogger(name))


def get_pass_id() -> Optional[str]:
    """Get the pass ID of the current context."""
    return pass_id_var.get()
