"""Excel worksheet sink for the budget comparison table."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from shared.report_settings import same_workbook

from errors import ReportWriteError
from models.ledger import REPORT_COLUMNS, Report, ReportRow
from report_assembler import report_sheet_name

logger = logging.getLogger(__name__)

# Period block occupies A1:B4; the table starts below it.
PERIOD_BLOCK_ROW = 1
TABLE_START_ROW = 6
TABLE_START_COLUMN = 1
STATUS_COLUMN_OFFSET = 6
NUMERIC_COLUMN_OFFSETS = (2, 3, 4, 5)

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="D9D9D9", end_color="D9D9D9", fill_type="solid")
PERIOD_LABEL_FONT = Font(bold=True)
CATEGORY_FONT = Font(bold=True, size=11)
CATEGORY_NAME_FONT = Font(bold=True, underline="single", size=11)
CATEGORY_FILL = PatternFill(start_color="CFE2F3", end_color="CFE2F3", fill_type="solid")
ITEM_FONT = Font(size=9)
ITEM_FILL = PatternFill(start_color="F3F3F3", end_color="F3F3F3", fill_type="solid")

STATUS_FILLS: Dict[str, PatternFill] = {
    "Over": PatternFill(start_color="F4CCCC", end_color="F4CCCC", fill_type="solid"),
    "Under": PatternFill(start_color="D9EAD3", end_color="D9EAD3", fill_type="solid"),
}
NO_FILL = PatternFill(fill_type=None)

RIGHT_ALIGNED = Alignment(horizontal="right")
ITEM_INDENTED = Alignment(horizontal="left", indent=1)

MIN_COLUMN_WIDTH = 8
MAX_COLUMN_WIDTH = 60


def write_report_workbook(ledger_path: Path, output_path: Path, report: Report) -> str:
    """
    Save a copy of the ledger workbook with the comparison sheet added (or replaced).

    The ledger is reopened without `data_only` so its formulas survive the save.
    openpyxl does not keep cached formula results, so the output must be a
    separate workbook; saving over the ledger would leave its Total rows empty
    for the next `data_only` read.

    Returns:
        Name of the sheet that was written.
    Raises:
        ReportWriteError: when the output path is the ledger itself, or the workbook
            cannot be opened, rendered, or saved.
    """

    if same_workbook(output_path, ledger_path):
        raise ReportWriteError(f"Refusing to overwrite the ledger {ledger_path}; choose a separate output workbook")

    try:
        workbook = load_workbook(ledger_path)
        sheet = render_report_sheet(workbook, report)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(output_path)
    except ReportWriteError:
        raise
    except Exception as exc:
        logger.error({"event": "report_sheet_write_failed", "output_path": str(output_path), "error": str(exc)})
        raise ReportWriteError(f"Could not write the comparison sheet to {output_path}: {exc}") from exc

    logger.info(
        {
            "event": "report_sheet_written",
            "sheet": sheet.title,
            "output_path": str(output_path),
            "table_rows": len(report.table_rows),
        }
    )
    return sheet.title


def render_report_sheet(workbook: Workbook, report: Report) -> Worksheet:
    """
    Render the period block and the comparison table into a fresh worksheet.

    Any existing sheet with the same name is removed first, so running the
    report twice for one month leaves exactly one comparison sheet.
    """

    sheet_name = report_sheet_name(report.period)
    if sheet_name in workbook.sheetnames:
        del workbook[sheet_name]
    sheet = workbook.create_sheet(title=sheet_name)

    _write_period_block(sheet, report)
    _write_header(sheet)
    for offset, row in enumerate(report.table_rows, start=1):
        _write_row(sheet, TABLE_START_ROW + offset, row)

    _autosize_columns(sheet)
    sheet.freeze_panes = sheet.cell(row=TABLE_START_ROW + 1, column=TABLE_START_COLUMN)
    return sheet


def _write_period_block(sheet: Worksheet, report: Report) -> None:
    period = report.period
    entries = (
        ("Year", period.year),
        ("Month", period.month),
        ("BOM", period.start_date),
        ("EOM", period.end_date),
    )
    for offset, (label, value) in enumerate(entries):
        label_cell = sheet.cell(row=PERIOD_BLOCK_ROW + offset, column=1, value=label)
        label_cell.font = PERIOD_LABEL_FONT
        value_cell = sheet.cell(row=PERIOD_BLOCK_ROW + offset, column=2, value=value)
        if label in ("BOM", "EOM"):
            value_cell.number_format = "yyyy-mm-dd"
        value_cell.alignment = Alignment(horizontal="left")


def _write_header(sheet: Worksheet) -> None:
    for offset, title in enumerate(REPORT_COLUMNS):
        cell = sheet.cell(row=TABLE_START_ROW, column=TABLE_START_COLUMN + offset, value=title)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        if offset in NUMERIC_COLUMN_OFFSETS:
            cell.alignment = RIGHT_ALIGNED


def _write_row(sheet: Worksheet, row_number: int, row: ReportRow) -> None:
    for offset, value in enumerate(row.cells):
        cell = sheet.cell(row=row_number, column=TABLE_START_COLUMN + offset, value=value or None)
        if row.kind == "separator":
            continue

        if row.kind == "category":
            cell.font = CATEGORY_NAME_FONT if offset == 0 else CATEGORY_FONT
            cell.fill = CATEGORY_FILL
        else:
            cell.font = ITEM_FONT
            cell.fill = ITEM_FILL
            if offset == 1:
                cell.alignment = ITEM_INDENTED

        if offset in NUMERIC_COLUMN_OFFSETS:
            cell.alignment = RIGHT_ALIGNED
        if offset == STATUS_COLUMN_OFFSET:
            cell.fill = STATUS_FILLS.get(value, NO_FILL)


def _autosize_columns(sheet: Worksheet) -> None:
    widths: Dict[int, int] = {}
    for row in sheet.iter_rows():
        for cell in row:
            if cell.value is None:
                continue
            widths[cell.column] = max(widths.get(cell.column, 0), len(_display_text(cell.value)))

    for column_index, width in widths.items():
        sheet.column_dimensions[get_column_letter(column_index)].width = min(
            max(width + 2, MIN_COLUMN_WIDTH),
            MAX_COLUMN_WIDTH,
        )


def _display_text(value: Any) -> str:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
