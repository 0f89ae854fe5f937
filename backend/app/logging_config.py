"""Logging configuration.

Human-readable text in development, one JSON object per line elsewhere.
Secrets (API keys, bearer tokens) are redacted before records leave the process.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone


class _JsonFormatter(logging.Formatter):
    """Emit each log record as a single JSON line, merging ``extra`` fields."""

    _RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in self._RESERVED and key not in payload:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


# Patterns with a capture group keep the group (the label) and redact the rest.
_SECRET_PATTERNS = [
    re.compile(r"\bsk-ant-[a-zA-Z0-9_\-]{20,}"),         # Anthropic keys
    re.compile(r"\bAKIA[0-9A-Z]{16}\b"),                 # AWS access key ids
    re.compile(r"(?i)(bearer\s+)[a-zA-Z0-9._\-]{20,}"),  # Bearer tokens
    re.compile(
        r"(?i)((?:api_key|secret|password|token|authorization)[=:]\s*)[^\s,'\"]{8,}"
    ),
]

_REDACTED = "***REDACTED***"


class _SecretFilter(logging.Filter):
    """Redact potential secrets from log messages and exception text."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        record.msg = self._redact(str(record.msg))
        if record.exc_text:
            record.exc_text = self._redact(record.exc_text)
        return True

    @staticmethod
    def _redact(text: str) -> str:
        for pattern in _SECRET_PATTERNS:
            text = pattern.sub(
                lambda m: m.group(1) + _REDACTED if m.lastindex else _REDACTED,
                text,
            )
        return text


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to INFO.
        log_format: "json" for structured output, "text" for human-readable.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "text").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_SecretFilter())

    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Third-party noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured (level=%s, format=%s)", level, fmt)
