"""
Shared utilities for the budget report services.

This package contains code shared across services and scripts:
- report_settings: Environment-driven configuration for report runs
- observability: Telemetry, logging, and privacy utilities
"""

from .report_settings import (
    SUPPORTED_DRAFT_SENDERS,
    DraftSettings,
    ReportSettings,
    ReportSettingsError,
    default_output_path,
    load_report_settings,
    same_workbook,
)

__all__ = [
    "SUPPORTED_DRAFT_SENDERS",
    "DraftSettings",
    "ReportSettings",
    "ReportSettingsError",
    "default_output_path",
    "load_report_settings",
    "same_workbook",
]
