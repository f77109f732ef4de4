"""Error message sanitization so credentials never reach logs or results."""

from __future__ import annotations

import os
import re

_SECRET_PATTERNS = [
    (re.compile(r"sk-(?:proj-)?[a-zA-Z0-9_-]{20,}"), "[REDACTED_KEY]"),
    (re.compile(r"Bearer\s+\S+"), "Bearer [REDACTED]"),
    (re.compile(r"(api[-_]key[\"']?\s*[:=]\s*[\"']?)[^\s\"',}]+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"Authorization:\s*\S+", re.IGNORECASE), "Authorization: [REDACTED]"),
]


def sanitize_error(message: str, secrets: tuple[str, ...] = ()) -> str:
    """Redact API keys, bearer tokens and the user's home path from ``message``.

    ``secrets`` are literal values (e.g. the configured api key) removed
    wherever they appear.
    """
    if not message:
        return message

    sanitized = message
    for secret in secrets:
        if secret:
            sanitized = sanitized.replace(secret, "[REDACTED_KEY]")
    for pattern, replacement in _SECRET_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    home = os.environ.get("USERPROFILE") or os.environ.get("HOME") or ""
    if home and home != "/":
        sanitized = sanitized.replace(home, "[USER_HOME]")

    return sanitized
