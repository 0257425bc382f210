"""Redaction helpers for logs and persisted automation messages."""

from __future__ import annotations

import re

_URL_USERINFO_RE = re.compile(r"([a-z][a-z0-9+.-]*://)([^@/\s]+)@", re.IGNORECASE)
_QUERY_SECRET_RE = re.compile(
    r"(?i)(token|secret|password|api_key|apikey|access_token|refresh_token|key)=([^&\s]+)"
)
_BEARER_RE = re.compile(r"(?i)(bearer\s+)([A-Za-z0-9._~+/=-]+)")
# Webhook relays such as hook.<region>.make.com carry their secret in the path.
_HOOK_PATH_RE = re.compile(r"(?i)(://hook\.[a-z0-9.-]+/)([A-Za-z0-9_-]{12,})")


def redact_secrets(text: str) -> str:
    """Mask credentials embedded in URLs, query strings, and auth headers."""
    if not text:
        return text
    redacted = _URL_USERINFO_RE.sub(r"\1***@", text)
    redacted = _QUERY_SECRET_RE.sub(r"\1=***", redacted)
    redacted = _BEARER_RE.sub(r"\1***", redacted)
    redacted = _HOOK_PATH_RE.sub(r"\1***", redacted)
    return redacted
