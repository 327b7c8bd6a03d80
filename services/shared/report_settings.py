from __future__ import annotations

"""
Environment-driven configuration for the budget report service.

The ledger location, the first data row, the deviation threshold, and the
draft delivery channel are all deployment concerns. Loading and validating
them in one place keeps the report pipeline free of hardcoded values and lets
tests inject their own settings without touching the environment.
"""

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

SUPPORTED_DRAFT_SENDERS = frozenset({"eml", "disabled"})

DEFAULT_LEDGER_SHEET = "Budget"
DEFAULT_FIRST_DATA_ROW = 5
DEFAULT_DEVIATION_THRESHOLD = 0.20
DEFAULT_DRAFT_SENDER = "eml"
DEFAULT_DRAFT_DIR = "drafts"
DEFAULT_OUTPUT_SUFFIX = " Budget Comparison.xlsx"


class ReportSettingsError(RuntimeError):
    """Raised when report configuration cannot be constructed."""


@dataclass(frozen=True, slots=True)
class DraftSettings:
    sender_name: str
    draft_dir: Path
    recipient: Optional[str] = None
    from_address: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ReportSettings:
    ledger_path: Path
    ledger_sheet: str
    first_data_row: int
    deviation_threshold: float
    output_path: Path
    draft: DraftSettings


def load_report_settings(
    *,
    ledger_path_env: str = "BUDGET_LEDGER_PATH",
    ledger_sheet_env: str = "BUDGET_LEDGER_SHEET",
    first_row_env: str = "BUDGET_FIRST_DATA_ROW",
    threshold_env: str = "BUDGET_DEVIATION_THRESHOLD",
    output_path_env: str = "BUDGET_REPORT_OUTPUT_PATH",
    draft_sender_env: str = "BUDGET_DRAFT_SENDER",
    draft_dir_env: str = "BUDGET_DRAFT_DIR",
    recipient_env: str = "BUDGET_DRAFT_RECIPIENT",
    from_env: str = "BUDGET_DRAFT_FROM",
    default_first_row: int = DEFAULT_FIRST_DATA_ROW,
    default_threshold: float = DEFAULT_DEVIATION_THRESHOLD,
) -> ReportSettings:
    """
    Construct ReportSettings from environment variables.

    Args:
        *_env: Names of the env vars that carry each setting.
        default_*: Fallback values when the env var is unset/empty.
    Raises:
        ReportSettingsError: when the ledger path is missing, the output path
            points at the ledger, or a numeric setting cannot be parsed or is
            out of range.
    """

    raw_ledger_path = (os.getenv(ledger_path_env) or "").strip()
    if not raw_ledger_path:
        raise ReportSettingsError(f"{ledger_path_env} must point at the budget ledger workbook")
    ledger_path = Path(raw_ledger_path)

    ledger_sheet = (os.getenv(ledger_sheet_env) or "").strip() or DEFAULT_LEDGER_SHEET
    first_data_row = _parse_int(os.getenv(first_row_env), default_first_row, first_row_env)
    if first_data_row < 1:
        raise ReportSettingsError(f"{first_row_env} must be 1 or greater (received {first_data_row})")

    threshold = _parse_float(os.getenv(threshold_env), default_threshold, threshold_env)
    if not math.isfinite(threshold) or threshold < 0:
        raise ReportSettingsError(f"{threshold_env} must be a finite, non-negative fraction (received {threshold})")

    raw_output = (os.getenv(output_path_env) or "").strip()
    output_path = Path(raw_output) if raw_output else default_output_path(ledger_path)
    if same_workbook(output_path, ledger_path):
        raise ReportSettingsError(
            f"{output_path_env} must differ from {ledger_path_env}; saving over the ledger drops its cached formula results"
        )

    draft = DraftSettings(
        sender_name=_normalize_sender(os.getenv(draft_sender_env, DEFAULT_DRAFT_SENDER), draft_sender_env),
        draft_dir=Path((os.getenv(draft_dir_env) or "").strip() or DEFAULT_DRAFT_DIR),
        recipient=_optional(os.getenv(recipient_env)),
        from_address=_optional(os.getenv(from_env)),
    )

    return ReportSettings(
        ledger_path=ledger_path,
        ledger_sheet=ledger_sheet,
        first_data_row=first_data_row,
        deviation_threshold=threshold,
        output_path=output_path,
        draft=draft,
    )


def default_output_path(ledger_path: Path) -> Path:
    """Comparison workbook written beside the ledger, e.g. `household Budget Comparison.xlsx`."""

    return ledger_path.with_name(f"{ledger_path.stem}{DEFAULT_OUTPUT_SUFFIX}")


def same_workbook(first: Path, second: Path) -> bool:
    return Path(first).expanduser().resolve() == Path(second).expanduser().resolve()


def _normalize_sender(raw_value: Optional[str], env_key: str) -> str:
    candidate = (raw_value or "").strip().lower()
    if not candidate:
        candidate = DEFAULT_DRAFT_SENDER

    if candidate not in SUPPORTED_DRAFT_SENDERS:
        raise ReportSettingsError(f"Unsupported draft sender '{candidate}' in {env_key}")
    return candidate


def _optional(raw_value: Optional[str]) -> Optional[str]:
    value = (raw_value or "").strip()
    return value or None


def _parse_float(raw_value: Optional[str], default: float, env_key: str) -> float:
    if raw_value is None or raw_value.strip() == "":
        return default

    try:
        return float(raw_value)
    except ValueError as exc:
        raise ReportSettingsError(f"{env_key} must be numeric (received '{raw_value}')") from exc


def _parse_int(raw_value: Optional[str], default: int, env_key: str) -> int:
    if raw_value is None or raw_value.strip() == "":
        return default

    try:
        return int(raw_value)
    except ValueError as exc:
        raise ReportSettingsError(f"{env_key} must be an integer (received '{raw_value}')") from exc
