"""
Logging utilities for the FastAPI application.

Provides a consistent logging format and keeps OAuth secrets out of log output.
"""

import logging
import re
import sys

_SECRET_PATTERNS = (
    re.compile(
        r"(?i)(\b(?:access_token|refresh_token|code|client_secret)\b['\"]?\s*[:=]\s*['\"]?)"
        r"[^\s'\",&}]+"
    ),
    re.compile(r"(?i)(\bBearer\s+)[A-Za-z0-9\-._~+/]+=*"),
    re.compile(r"(?i)(\bBasic\s+)[A-Za-z0-9+/]+=*"),
)


def redact(message: str) -> str:
    """Mask token-like values in a log message."""
    for pattern in _SECRET_PATTERNS:
        message = pattern.sub(r"\1***", message)
    return message


class TokenRedactionFilter(logging.Filter):
    """Rewrite log records so bearer tokens and grant values never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            rendered = record.getMessage()
        except (TypeError, ValueError):
            # Leave malformed calls for Handler.handleError to report.
            return True
        cleaned = redact(rendered)
        if cleaned != rendered:
            record.msg = cleaned
            record.args = None
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, TokenRedactionFilter) for f in handler.filters):
            handler.addFilter(TokenRedactionFilter())


__all__ = ["TokenRedactionFilter", "configure_logging", "redact"]
