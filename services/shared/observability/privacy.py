"""
Log-safe views of household budget data.

Ledger rows, draft bodies and mail addresses stay out of the logs. Events carry
a short fingerprint instead, which is enough to tell whether two runs read the
same ledger or produced the same draft.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from typing import Any

REDACTED = "[REDACTED]"
FINGERPRINT_LENGTH = 16


def fingerprint(value: Any) -> str:
    """Short SHA-256 fingerprint of text, bytes, or JSON-serializable content such as row tuples."""

    if isinstance(value, bytes):
        raw = value
    elif isinstance(value, str):
        raw = value.encode("utf-8")
    else:
        raw = json.dumps(value, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:FINGERPRINT_LENGTH]


def mask_address(address: str) -> str:
    """`family@example.com` -> `f***@example.com`; anything without a domain is fully redacted."""

    local, at, domain = address.partition("@")
    if not at or not local or not domain:
        return REDACTED
    return f"{local[0]}***@{domain}"


def redact_settings(snapshot: Mapping[str, Any], safe_keys: Iterable[str]) -> dict[str, Any]:
    """
    Copy a settings snapshot for logging.

    Safe keys pass through unchanged and unset values stay None so logs show
    what was not configured. Mail addresses are masked; any other value is
    replaced with REDACTED.
    """

    allowed = frozenset(safe_keys)
    redacted: dict[str, Any] = {}
    for key, value in snapshot.items():
        if key in allowed or value is None:
            redacted[key] = value
        elif isinstance(value, str) and "@" in value:
            redacted[key] = mask_address(value)
        else:
            redacted[key] = REDACTED
    return redacted
