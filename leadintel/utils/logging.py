"""
Structured JSON logging with correlation IDs.

Every log line is JSON with: timestamp, level, correlation_id, module, message and
any promoted extra fields. Correlation IDs are generated per-request via middleware
and stored in contextvars.

Lead-intel payloads carry contact data, so messages and exception text are passed
through redact_contact_data() before they are written.
"""
import json
import logging
import re
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Extra fields promoted to top-level keys when passed via logger.x(..., extra={...})
_PROMOTED_FIELDS = (
    "workspace_id",
    "provider",
    "lead_id",
    "identity_id",
    "event_type",
    "dedupe_key",
    "error_code",
    "duration_ms",
)

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_E164_RE = re.compile(r"\+\d{10,15}\b")


def get_correlation_id() -> Optional[str]:
    return correlation_id_ctx.get()


def set_correlation_id(cid: str) -> None:
    correlation_id_ctx.set(cid)


def generate_correlation_id() -> str:
    """Generate a new correlation ID (UUID4 hex, 32 chars)."""
    return uuid.uuid4().hex


def short_id(value) -> str:
    """First 8 characters of an id for log messages ("-" when absent)."""
    if value is None:
        return "-"
    return str(value)[:8]


def redact_contact_data(text: str) -> str:
    """Mask email addresses and E.164 phone numbers."""
    text = _EMAIL_RE.sub("<email>", text)
    return _E164_RE.sub("<phone>", text)


class StructuredJsonFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    {"timestamp": "...", "level": "INFO", "correlation_id": "...", "module": "...",
     "message": "...", "provider": "opensend", "duration_ms": 12, ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "correlation_id": get_correlation_id(),
            "module": record.name,
            "message": redact_contact_data(record.getMessage()),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = redact_contact_data(self.formatException(record.exc_info))

        for key in _PROMOTED_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val

        return json.dumps(log_entry, default=str)


def configure_structured_logging(log_level: str = "INFO") -> None:
    """
    Install the JSON formatter on the root logger.
    Call once at application startup before any log calls.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(StructuredJsonFormatter())
    root_logger.addHandler(stream_handler)

    # SQL echo would print bound contact values
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
