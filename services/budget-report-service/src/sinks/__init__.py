"""Output sinks for budget reports: the comparison worksheet and the email draft."""

from .draft_sender import DisabledDraftSender, DraftSender, EmlDraftSender, build_draft_sender
from .sheet_renderer import render_report_sheet, write_report_workbook

__all__ = [
    "DisabledDraftSender",
    "DraftSender",
    "EmlDraftSender",
    "build_draft_sender",
    "render_report_sheet",
    "write_report_workbook",
]
