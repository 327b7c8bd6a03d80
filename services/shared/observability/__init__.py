"""
Shared observability helpers: JSON logging with report context, optional
tracing, and log-safe views of ledger data.
"""

from .privacy import fingerprint, mask_address, redact_settings
from .telemetry import (
    CORRELATION_ID_HEADER,
    LOG_CONTEXT_FIELDS,
    bind_log_context,
    current_log_context,
    ensure_request_id,
    report_log_context,
    reset_log_context,
    setup_logging,
    setup_telemetry,
)

__all__ = [
    "fingerprint",
    "mask_address",
    "redact_settings",
    "CORRELATION_ID_HEADER",
    "LOG_CONTEXT_FIELDS",
    "bind_log_context",
    "current_log_context",
    "ensure_request_id",
    "report_log_context",
    "reset_log_context",
    "setup_logging",
    "setup_telemetry",
]
