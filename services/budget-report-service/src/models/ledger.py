from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from numbers import Real
from typing import Any, Literal, Sequence

# Column roles inside a ledger row (0-indexed); column 3 is unused.
CATEGORY_COLUMN = 0
ITEM_COLUMN = 1
PLANNED_COLUMN = 2
ACTUAL_COLUMN = 4

TOTAL_SENTINEL = "Total"

DeviationStatus = Literal["Over", "Under", "OK"]
ReportRowKind = Literal["category", "item", "separator"]

REPORT_COLUMNS = ("Category", "Item", "Actual", "Budget", "Deviation", "Deviation %", "Status")


def coerce_label(raw_value: Any) -> str:
    """Trim a label cell; absent values become the empty string."""

    if raw_value is None:
        return ""
    if isinstance(raw_value, str):
        return raw_value.strip()
    return str(raw_value).strip()


def coerce_amount(raw_value: Any) -> float:
    """
    Convert a planned/actual cell into a finite float.

    Numbers pass through, numeric strings may carry currency symbols,
    thousands separators, or accounting parentheses. Everything else
    (None, blanks, booleans, dates, text, NaN, infinities) becomes 0.0.
    """

    if raw_value is None or isinstance(raw_value, bool):
        return 0.0
    if isinstance(raw_value, Decimal):
        return _finite_or_zero(float(raw_value)) if raw_value.is_finite() else 0.0
    if isinstance(raw_value, Real):
        return _finite_or_zero(float(raw_value))
    if isinstance(raw_value, str):
        return _parse_amount_text(raw_value)
    return 0.0


def _parse_amount_text(text: str) -> float:
    cleaned = text.strip()
    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]

    for symbol in ("$", "€", "£", ",", " "):
        cleaned = cleaned.replace(symbol, "")
    if not cleaned:
        return 0.0

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return 0.0
    if not value.is_finite():
        return 0.0
    amount = _finite_or_zero(float(value))
    return -amount if negative else amount


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _cell(cells: Sequence[Any], index: int) -> Any:
    return cells[index] if index < len(cells) else None


@dataclass(frozen=True, slots=True)
class LedgerRow:
    """One ledger line after cell coercion."""

    source_row_index: int
    category_label: str
    item_label: str
    planned: float
    actual: float

    @classmethod
    def from_cells(cls, cells: Sequence[Any], source_row_index: int = 0) -> "LedgerRow":
        return cls(
            source_row_index=source_row_index,
            category_label=coerce_label(_cell(cells, CATEGORY_COLUMN)),
            item_label=coerce_label(_cell(cells, ITEM_COLUMN)),
            planned=coerce_amount(_cell(cells, PLANNED_COLUMN)),
            actual=coerce_amount(_cell(cells, ACTUAL_COLUMN)),
        )


@dataclass(frozen=True, slots=True)
class Item:
    description: str
    planned: float
    actual: float


@dataclass(frozen=True, slots=True)
class Category:
    """A named block of items closed by its Total row (or by the end of the ledger)."""

    name: str
    items: tuple[Item, ...] = ()
    total_planned: float = 0.0
    total_actual: float = 0.0


@dataclass(frozen=True, slots=True)
class DeviationResult:
    deviation: float
    deviation_pct: float
    status: DeviationStatus


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    month: str
    year: int
    start_date: date | None = None
    end_date: date | None = None


@dataclass(frozen=True, slots=True)
class ReportRow:
    """A fixed-shape table row: category, item, actual, planned, deviation, deviation %, status."""

    kind: ReportRowKind
    cells: tuple[str, str, str, str, str, str, str]

    @classmethod
    def separator(cls) -> "ReportRow":
        return cls(kind="separator", cells=("", "", "", "", "", "", ""))


@dataclass(slots=True)
class Report:
    """Container for one run's table projection and narrative projection."""

    period: ReportPeriod
    table_rows: list[ReportRow] = field(default_factory=list)
    narrative_lines: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class NarrativeDraft:
    subject: str
    body: str
