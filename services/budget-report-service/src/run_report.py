from __future__ import annotations

"""
The "run report" operation: read the ledger, analyze it, and publish both outputs.

The worksheet is the primary artifact; if it cannot be written the run fails.
The email draft is secondary; if it cannot be created the run still succeeds
with a "partial" outcome whose alert explains what went wrong.

Runs are exclusive within a process. A run that starts while another is still
writing is rejected with ReportInProgressError instead of racing it for the
same output workbook and draft file.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import List, Literal, Optional

from shared.observability.privacy import redact_settings
from shared.observability.telemetry import report_log_context
from shared.report_settings import ReportSettings, load_report_settings

from errors import DraftDeliveryError, ReportInProgressError
from models.ledger import LedgerRow, ReportPeriod
from parsers.category_parser import parse_categories
from parsers.xlsx_ledger import load_ledger
from report_assembler import assemble_report, build_narrative_draft, report_sheet_name
from sinks.draft_sender import DraftSender, build_draft_sender
from sinks.sheet_renderer import write_report_workbook

logger = logging.getLogger(__name__)

SAFE_SETTING_KEYS = frozenset({"ledger_path", "ledger_sheet", "first_data_row", "deviation_threshold", "output_path", "draft_sender"})

# Held for the whole run; one writer per output workbook.
REPORT_RUN_LOCK = threading.Lock()


@dataclass(slots=True)
class RunReportOutcome:
    status: Literal["ok", "partial"]
    sheet_name: str
    output_path: str
    categories_parsed: int
    categories_reported: int
    draft_location: Optional[str] = None
    alerts: List[str] = field(default_factory=list)


def run_report(
    settings: Optional[ReportSettings] = None,
    *,
    draft_sender: Optional[DraftSender] = None,
    today: Optional[date] = None,
) -> RunReportOutcome:
    """
    Produce the monthly comparison sheet and email draft for the configured ledger.

    Args:
        settings: Report configuration; loaded from the environment when omitted.
        draft_sender: Overrides the configured draft channel (tests, embedding callers).
        today: Generation date shown in the draft; defaults to the current date.
    Raises:
        ReportSettingsError: configuration is missing or invalid.
        ReportInProgressError: another run holds the report lock; nothing is read or written.
        LedgerSourceError: the ledger workbook or sheet does not exist; nothing is written.
        ReportWriteError: the comparison sheet could not be saved; no report artifact exists.
    """
    settings = settings or load_report_settings()
    today = today or date.today()

    with _exclusive_run():
        _log_settings(settings)
        snapshot = load_ledger(
            settings.ledger_path,
            settings.ledger_sheet,
            settings.first_data_row,
            today=today,
        )
        period = snapshot.period
        with report_log_context(period=f"{period.month} {period.year}", sheet=report_sheet_name(period)):
            return _publish(settings, snapshot.rows, period, draft_sender, today)


def _publish(
    settings: ReportSettings,
    rows: List[LedgerRow],
    period: ReportPeriod,
    draft_sender: Optional[DraftSender],
    today: date,
) -> RunReportOutcome:
    categories = parse_categories(rows)
    report = assemble_report(categories, period, settings.deviation_threshold)

    sheet_name = write_report_workbook(settings.ledger_path, settings.output_path, report)
    outcome = RunReportOutcome(
        status="ok",
        sheet_name=sheet_name,
        output_path=str(settings.output_path),
        categories_parsed=len(categories),
        categories_reported=sum(1 for row in report.table_rows if row.kind == "category"),
    )

    sender = draft_sender or build_draft_sender(settings.draft)
    draft = build_narrative_draft(report, today)
    try:
        outcome.draft_location = sender.send(draft)
    except DraftDeliveryError as exc:
        outcome.status = "partial"
        outcome.alerts.append(
            f"The '{sheet_name}' sheet was created, but the email draft could not be created: {exc}"
        )
        logger.warning({"event": "draft_delivery_failed", "sender": sender.name, "error": str(exc)})

    logger.info(
        {
            "event": "report_run_completed",
            "status": outcome.status,
            "categories_parsed": outcome.categories_parsed,
            "categories_reported": outcome.categories_reported,
        }
    )
    return outcome


@contextmanager
def _exclusive_run() -> Iterator[None]:
    if not REPORT_RUN_LOCK.acquire(blocking=False):
        logger.warning({"event": "report_run_rejected", "reason": "run_in_progress"})
        raise ReportInProgressError("A budget report run is already in progress; try again once it finishes")
    try:
        yield
    finally:
        REPORT_RUN_LOCK.release()


def _log_settings(settings: ReportSettings) -> None:
    snapshot = {
        "ledger_path": str(settings.ledger_path),
        "ledger_sheet": settings.ledger_sheet,
        "first_data_row": settings.first_data_row,
        "deviation_threshold": settings.deviation_threshold,
        "output_path": str(settings.output_path),
        "draft_sender": settings.draft.sender_name,
        "draft_recipient": settings.draft.recipient,
        "draft_from": settings.draft.from_address,
    }
    logger.info({"event": "report_run_started", "settings": redact_settings(snapshot, SAFE_SETTING_KEYS)})
