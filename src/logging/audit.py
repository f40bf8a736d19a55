"""Structured JSON audit logging for the D-ID gateway.

Logs go to stdout as JSON lines, with optional file output via
AUDIT_LOG_FILE. Every proxied call is logged with its route, upstream
path, status and latency; the D-ID credential is never written out.
"""

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

from src.config.settings import get_settings

# Request-scoped context for correlating log entries
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        if hasattr(record, "audit_data"):
            log_entry.update(record.audit_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class CredentialRedactionFilter(logging.Filter):
    """Masks the D-ID API key wherever it would appear in a log line."""

    MASK = "***"

    def __init__(self, secret: str):
        super().__init__()
        self.secret = secret

    def _scrub(self, value):
        if isinstance(value, str):
            return value.replace(self.secret, self.MASK)
        if isinstance(value, dict):
            return {k: self._scrub(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self._scrub(v) for v in value)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secret:
            return True
        record.msg = self._scrub(record.getMessage())
        record.args = ()
        if hasattr(record, "audit_data"):
            record.audit_data = self._scrub(record.audit_data)
        return True


def setup_logging() -> None:
    """Configure the audit logger with JSON output and credential masking."""
    settings = get_settings()

    logger = logging.getLogger("gateway.audit")
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.handlers.clear()
    logger.filters.clear()
    logger.addFilter(CredentialRedactionFilter(settings.did_api_key))

    formatter = JSONFormatter()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if settings.audit_log_file:
        file_handler = logging.FileHandler(settings.audit_log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger (avoids duplicate output)
    logger.propagate = False


def get_audit_logger() -> logging.Logger:
    return logging.getLogger("gateway.audit")


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


class RequestTimer:
    """Context manager to measure upstream latency."""

    def __init__(self):
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
