"""
Redaction Utilities

Scrubs credential and password material from payloads before they reach
a log record.
"""

from typing import Any

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "password_hash",
        "passwordhash",
        "senha",
        "token",
        "access_token",
        "refresh_token",
        "authorization",
        "client_secret",
        "secret",
    }
)

REDACTED = "***"


def redact_sensitive(payload: Any) -> Any:
    """
    Return a copy of ``payload`` with sensitive values masked.

    Walks nested dicts and lists; keys are compared case-insensitively.

    Example:
        >>> redact_sensitive({"username": "mestre", "password": "totvs"})
        {'username': 'mestre', 'password': '***'}
    """
    if isinstance(payload, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_KEYS else redact_sensitive(value)
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [redact_sensitive(item) for item in payload]
    return payload
