from __future__ import annotations

"""
Turns parsed categories into the two report projections.

The table projection feeds the worksheet renderer and the narrative
projection feeds the email draft. Both walk the categories in ledger order
and include only reportable categories and items.
"""

import logging
from collections.abc import Iterable
from datetime import date
from typing import List, Tuple

from deviation import DEFAULT_DEVIATION_THRESHOLD, analyze_deviation, is_reportable
from formatting import format_currency, format_percent, format_signed_amount
from models.ledger import Category, DeviationResult, Item, NarrativeDraft, Report, ReportPeriod, ReportRow

logger = logging.getLogger(__name__)

NARRATIVE_TITLE = "Monthly Budget Deviation Report"
KEY_ITEMS_HEADING = "   Key Items:"
ITEM_INDENT = "     "


def assemble_report(
    categories: Iterable[Category],
    period: ReportPeriod,
    threshold: float = DEFAULT_DEVIATION_THRESHOLD,
) -> Report:
    """
    Build the table rows and narrative lines for every reportable category.

    Args:
        categories: Categories in ledger order, as emitted by the parser.
        period: Reporting period shown in headers and the draft subject.
        threshold: Deviation fraction beyond which a result is Over/Under.
    Returns:
        Report whose table rows and narrative lines follow the category order.
    """
    report = Report(period=period)
    considered = 0

    for category in categories:
        considered += 1
        result = analyze_deviation(category.total_planned, category.total_actual, threshold)
        if not is_reportable(category.total_planned, category.total_actual, result):
            continue

        report.table_rows.append(_category_row(category, result))
        report.narrative_lines.append(_category_line(category, result))

        key_items = _reportable_items(category.items, threshold)
        for item, item_result in key_items:
            report.table_rows.append(_item_row(item, item_result))
        if key_items:
            report.narrative_lines.append(KEY_ITEMS_HEADING)
            report.narrative_lines.extend(_item_line(item, item_result) for item, item_result in key_items)

        report.narrative_lines.append("")
        report.table_rows.append(ReportRow.separator())

    logger.info(
        {
            "event": "report_assembled",
            "categories_considered": considered,
            "categories_reported": sum(1 for row in report.table_rows if row.kind == "category"),
            "items_reported": sum(1 for row in report.table_rows if row.kind == "item"),
            "threshold": threshold,
        }
    )
    return report


def report_sheet_name(period: ReportPeriod) -> str:
    return f"{period.month} Budget Comparison"


def build_narrative_draft(report: Report, generated_on: date) -> NarrativeDraft:
    """Wrap the narrative lines in the fixed preamble and subject used for the email draft."""

    period = report.period
    preamble = [
        NARRATIVE_TITLE,
        f"Period: {_describe_period(period)}",
        f"Generated: {generated_on.isoformat()}",
        "",
    ]
    return NarrativeDraft(
        subject=f"{period.month} {period.year} Budget Comparison",
        body="\n".join(preamble + list(report.narrative_lines)),
    )


def _describe_period(period: ReportPeriod) -> str:
    label = f"{period.month} {period.year}"
    if period.start_date and period.end_date:
        return f"{label} ({period.start_date.isoformat()} to {period.end_date.isoformat()})"
    return label


def _reportable_items(items: Iterable[Item], threshold: float) -> List[Tuple[Item, DeviationResult]]:
    selected: List[Tuple[Item, DeviationResult]] = []
    for item in items:
        result = analyze_deviation(item.planned, item.actual, threshold)
        if is_reportable(item.planned, item.actual, result):
            selected.append((item, result))
    return selected


def _category_row(category: Category, result: DeviationResult) -> ReportRow:
    return ReportRow(
        kind="category",
        cells=(
            category.name,
            "",
            format_currency(category.total_actual),
            format_currency(category.total_planned),
            format_signed_amount(result.deviation),
            format_percent(result.deviation_pct),
            result.status,
        ),
    )


def _item_row(item: Item, result: DeviationResult) -> ReportRow:
    return ReportRow(
        kind="item",
        cells=(
            "",
            item.description,
            format_currency(item.actual),
            format_currency(item.planned),
            format_signed_amount(result.deviation),
            format_percent(result.deviation_pct),
            "",
        ),
    )


def _category_line(category: Category, result: DeviationResult) -> str:
    # Zero-crossing categories can be reportable while still "OK"; name them by direction.
    direction = result.status if result.status != "OK" else ("Over" if result.deviation > 0 else "Under")
    return (
        f"{category.name}: {direction} budget by {format_percent(result.deviation_pct)} "
        f"({format_currency(category.total_actual)} vs. {format_currency(category.total_planned)})"
    )


def _item_line(item: Item, result: DeviationResult) -> str:
    return (
        f"{ITEM_INDENT}{item.description}: {format_currency(item.actual)} (Actual) vs "
        f"{format_currency(item.planned)} (Planned) "
        f"(Diff: {format_signed_amount(result.deviation)}, {format_percent(result.deviation_pct)})"
    )
