"""
Logging setup for testpilot runs.

Records carry step context through ``extra``; the JSON formatter lifts the
fields below into the payload so a run can be followed step by step.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from rich.console import Console
from rich.logging import RichHandler

from testpilot.security.sanitizer import DataSanitizer

# Context attached by the engine through ``extra``
RECORD_FIELDS = (
    "step",
    "step_kind",
    "attempt",
    "instruction",
    "url",
    "selector",
    "method",
    "metric_name",
    "value",
    "unit",
)

NOISY_LOGGERS = ("openai", "httpx", "httpcore", "asyncio", "google_genai")

TEXT_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class RedactionFilter(logging.Filter):
    """Scrubs credentials from a record's message and arguments."""

    def __init__(self, sanitizer: Optional[DataSanitizer] = None):
        super().__init__()
        self.sanitizer = sanitizer or DataSanitizer()

    def filter(self, record: logging.LogRecord) -> bool:
        self.sanitizer.sanitize_log_record(record)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with step context fields when present."""

    def __init__(self, sanitize: bool = True):
        super().__init__()
        self.sanitizer = DataSanitizer() if sanitize else None

    def format(self, record: logging.LogRecord) -> str:
        if self.sanitizer:
            self.sanitizer.sanitize_log_record(record)

        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            {field: record.__dict__[field] for field in RECORD_FIELDS if field in record.__dict__}
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        if self.sanitizer:
            payload = self.sanitizer.redact(payload)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _console_handler(log_format: str, sanitize: bool) -> logging.Handler:
    if log_format == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter(sanitize=sanitize))
        return handler

    handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
    if sanitize:
        handler.addFilter(RedactionFilter())
    return handler


def _file_handler(path: str, log_format: str, sanitize: bool) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    if log_format == "json":
        handler.setFormatter(JSONFormatter(sanitize=sanitize))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FILE_FORMAT))
        if sanitize:
            handler.addFilter(RedactionFilter())
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None,
    sanitize_logs: bool = True,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """
    Route all logging through rich (text) or JSON lines on stdout.

    Replaces any handlers already on the root logger. With ``log_file`` the
    same records are also written to that file.

    Returns:
        The configured root logger
    """
    level = logging.getLevelName(log_level.upper())

    handlers: List[logging.Handler] = [_console_handler(log_format, sanitize_logs)]
    if log_file:
        handlers.append(_file_handler(log_file, log_format, sanitize_logs))

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("testpilot").debug(
        f"Logging initialized at {log_level.upper()} ({log_format})"
    )
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_performance_metric(
    metric_name: str,
    value: float,
    unit: str = "ms",
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """Record a timing on the ``testpilot.performance`` logger at debug level."""
    extra: Dict[str, Any] = dict(context or {})
    extra.update(metric_name=metric_name, value=value, unit=unit)
    logging.getLogger("testpilot.performance").debug(
        f"{metric_name}: {value:.0f}{unit}", extra=extra
    )
