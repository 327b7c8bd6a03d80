from __future__ import annotations

import calendar
import logging
import math
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
from openpyxl.utils.exceptions import InvalidFileException
from shared.observability.privacy import fingerprint

from errors import LedgerSourceError
from models.ledger import LedgerRow, ReportPeriod
from parsers.category_parser import DEFAULT_FIRST_DATA_ROW, ledger_rows_from_grid

logger = logging.getLogger(__name__)

YEAR_CELL = "B1"
MONTH_CELL = "B2"
PERIOD_START_CELL = "D1"
PERIOD_END_CELL = "D2"

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y")


@dataclass(slots=True)
class LedgerSnapshot:
    """Everything a report run needs from the ledger sheet, read in one pass."""

    sheet_name: str
    period: ReportPeriod
    rows: List[LedgerRow] = field(default_factory=list)


def load_ledger(
    path: Path,
    sheet_name: str,
    first_data_row: int = DEFAULT_FIRST_DATA_ROW,
    *,
    today: Optional[date] = None,
) -> LedgerSnapshot:
    """
    Read the ledger sheet's period metadata and data rows.

    Cached cell values are read (data_only) so Total rows backed by formulas
    yield their last computed numbers.

    Raises:
        LedgerSourceError: when the workbook is missing/unreadable or has no sheet named `sheet_name`.
    """

    if not path.is_file():
        raise LedgerSourceError(f"Budget ledger workbook not found at {path}")

    try:
        workbook = load_workbook(path, data_only=True, read_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise LedgerSourceError(f"Budget ledger workbook at {path} could not be opened: {exc}") from exc

    try:
        if sheet_name not in workbook.sheetnames:
            raise LedgerSourceError(f"Sheet '{sheet_name}' not found in {path.name}")
        grid = [tuple(row) for row in workbook[sheet_name].iter_rows(values_only=True)]
    finally:
        workbook.close()

    period = read_report_period(grid, today=today)
    rows = ledger_rows_from_grid(grid, first_data_row)
    logger.info(
        {
            "event": "ledger_loaded",
            "sheet": sheet_name,
            "grid_rows": len(grid),
            "data_rows": len(rows),
            "month": period.month,
            "year": period.year,
            "rows_fingerprint": fingerprint(
                [(row.category_label, row.item_label, row.planned, row.actual) for row in rows]
            ),
        }
    )
    return LedgerSnapshot(sheet_name=sheet_name, period=period, rows=rows)


def read_report_period(grid: Sequence[Sequence[Any]], *, today: Optional[date] = None) -> ReportPeriod:
    """
    Build the ReportPeriod from the four metadata cells.

    Month may be a name, an abbreviation, or 1-12. Missing values fall back to
    the period start date and then to `today`; blank start/end dates default to
    the first and last day of the resolved month.
    """

    today = today or date.today()
    start_date = _parse_date(_grid_value(grid, PERIOD_START_CELL))
    end_date = _parse_date(_grid_value(grid, PERIOD_END_CELL))
    anchor = start_date or end_date or today

    month_number = _parse_month(_grid_value(grid, MONTH_CELL)) or anchor.month
    year = _parse_year(_grid_value(grid, YEAR_CELL)) or anchor.year

    if start_date is None:
        start_date = date(year, month_number, 1)
    if end_date is None:
        end_date = date(year, month_number, calendar.monthrange(year, month_number)[1])

    return ReportPeriod(
        month=calendar.month_name[month_number],
        year=year,
        start_date=start_date,
        end_date=end_date,
    )


def _grid_value(grid: Sequence[Sequence[Any]], coordinate: str) -> Any:
    column_letter, row_number = coordinate_from_string(coordinate)
    row_index = row_number - 1
    column_index = column_index_from_string(column_letter) - 1
    if row_index >= len(grid):
        return None
    row = grid[row_index]
    return row[column_index] if column_index < len(row) else None


def _parse_month(raw_value: Any) -> Optional[int]:
    if raw_value is None or isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, (datetime, date)):
        return raw_value.month
    if isinstance(raw_value, (int, float)):
        if not math.isfinite(raw_value):
            return None
        number = int(raw_value)
        return number if 1 <= number <= 12 and number == raw_value else None

    text = str(raw_value).strip().lower()
    if text.isdigit():
        return _parse_month(int(text))
    for number in range(1, 13):
        if text in (calendar.month_name[number].lower(), calendar.month_abbr[number].lower()):
            return number
    return None


def _parse_year(raw_value: Any) -> Optional[int]:
    if raw_value is None or isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, (datetime, date)):
        return raw_value.year
    if isinstance(raw_value, (int, float)):
        if not math.isfinite(raw_value):
            return None
        year = int(raw_value)
        return year if 1 <= year <= 9999 else None

    text = str(raw_value).strip()
    return _parse_year(int(text)) if text.isdigit() else None


def _parse_date(raw_value: Any) -> Optional[date]:
    if not raw_value:
        return None

    if isinstance(raw_value, datetime):
        return raw_value.date()
    if isinstance(raw_value, date):
        return raw_value

    text = str(raw_value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None
