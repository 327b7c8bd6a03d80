from datetime import date

import pytest
from openpyxl import Workbook, load_workbook

from errors import ReportWriteError
from models.ledger import Category, Item, ReportPeriod
from report_assembler import assemble_report
from sinks.sheet_renderer import (
    CATEGORY_FILL,
    HEADER_FILL,
    ITEM_FILL,
    STATUS_FILLS,
    TABLE_START_ROW,
    render_report_sheet,
    write_report_workbook,
)

MARCH = ReportPeriod(month="March", year=2025, start_date=date(2025, 3, 1), end_date=date(2025, 3, 31))


def build_report():
    categories = [
        Category(
            name="Shelter",
            items=(
                Item(description="Mortgage", planned=700.0, actual=0.0),
                Item(description="Pool Maintenance", planned=700.0, actual=193.88),
            ),
            total_planned=5409.94,
            total_actual=4001.02,
        ),
        Category(name="Dining", total_planned=200.0, total_actual=300.0),
    ]
    return assemble_report(categories, MARCH)


def row_values(sheet, row_number):
    return [sheet.cell(row=row_number, column=column).value for column in range(1, 8)]


def test_render_writes_period_block_and_table():
    workbook = Workbook()

    sheet = render_report_sheet(workbook, build_report())

    assert sheet.title == "March Budget Comparison"
    assert [sheet.cell(row=row, column=1).value for row in range(1, 5)] == ["Year", "Month", "BOM", "EOM"]
    assert sheet["B1"].value == 2025
    assert sheet["B2"].value == "March"
    assert row_values(sheet, TABLE_START_ROW) == [
        "Category",
        "Item",
        "Actual",
        "Budget",
        "Deviation",
        "Deviation %",
        "Status",
    ]
    assert row_values(sheet, TABLE_START_ROW + 1) == [
        "Shelter",
        None,
        "$4001.02",
        "$5409.94",
        "-1408.92",
        "-26.0%",
        "Under",
    ]
    assert row_values(sheet, TABLE_START_ROW + 2)[1] == "Mortgage"
    assert row_values(sheet, TABLE_START_ROW + 4) == [None] * 7
    assert row_values(sheet, TABLE_START_ROW + 5)[0] == "Dining"


def test_render_styles_rows_by_kind_and_status():
    sheet = render_report_sheet(Workbook(), build_report())
    header = sheet.cell(row=TABLE_START_ROW, column=1)
    category_name = sheet.cell(row=TABLE_START_ROW + 1, column=1)
    category_status = sheet.cell(row=TABLE_START_ROW + 1, column=7)
    item_description = sheet.cell(row=TABLE_START_ROW + 2, column=2)
    item_status = sheet.cell(row=TABLE_START_ROW + 2, column=7)
    over_status = sheet.cell(row=TABLE_START_ROW + 5, column=7)

    assert header.font.bold
    assert header.fill.start_color.rgb == HEADER_FILL.start_color.rgb
    assert category_name.font.bold
    assert category_name.font.underline == "single"
    assert category_name.fill.start_color.rgb == CATEGORY_FILL.start_color.rgb
    assert category_status.fill.start_color.rgb == STATUS_FILLS["Under"].start_color.rgb
    assert over_status.fill.start_color.rgb == STATUS_FILLS["Over"].start_color.rgb
    assert item_description.font.size == 9
    assert item_description.fill.start_color.rgb == ITEM_FILL.start_color.rgb
    assert item_status.fill.fill_type is None
    assert sheet.cell(row=TABLE_START_ROW + 1, column=3).alignment.horizontal == "right"


def test_render_sizes_columns_to_content():
    sheet = render_report_sheet(Workbook(), build_report())

    assert sheet.column_dimensions["B"].width >= len("Pool Maintenance")


def test_render_replaces_existing_report_sheet():
    workbook = Workbook()
    render_report_sheet(workbook, build_report())

    render_report_sheet(workbook, build_report())

    assert workbook.sheetnames.count("March Budget Comparison") == 1


def test_write_report_workbook_keeps_ledger_formulas(tmp_path):
    ledger = tmp_path / "ledger.xlsx"
    workbook = Workbook()
    workbook.active.title = "Budget"
    workbook.active["C9"] = "=SUM(C6:C8)"
    workbook.save(ledger)
    output = tmp_path / "report.xlsx"

    sheet_name = write_report_workbook(ledger, output, build_report())
    write_report_workbook(ledger, output, build_report())

    reloaded = load_workbook(output)
    assert sheet_name == "March Budget Comparison"
    assert reloaded.sheetnames == ["Budget", "March Budget Comparison"]
    assert reloaded["Budget"]["C9"].value == "=SUM(C6:C8)"
    assert load_workbook(ledger).sheetnames == ["Budget"]


def test_write_report_workbook_refuses_to_overwrite_the_ledger(ledger_factory, tmp_path):
    ledger = ledger_factory(
        [("Shelter",), (None, "Mortgage", 700.00, None, 0.00), ("Total Shelter", None, "=SUM(C6)", None, "=SUM(E6)")],
        cached_results={"C7": 700, "E7": 0},
    )
    same_file_spelled_differently = tmp_path / "nested" / ".." / "ledger.xlsx"

    with pytest.raises(ReportWriteError, match="Refusing to overwrite"):
        write_report_workbook(ledger, same_file_spelled_differently, build_report())

    untouched = load_workbook(ledger, data_only=True)
    assert untouched.sheetnames == ["Budget"]
    assert untouched["Budget"]["C7"].value == 700


def test_write_report_workbook_to_separate_output(tmp_path):
    ledger = tmp_path / "ledger.xlsx"
    Workbook().save(ledger)
    output = tmp_path / "reports" / "march.xlsx"

    write_report_workbook(ledger, output, build_report())

    assert "March Budget Comparison" in load_workbook(output).sheetnames
    assert "March Budget Comparison" not in load_workbook(ledger).sheetnames


def test_write_failure_is_reported_as_report_write_error(tmp_path):
    ledger = tmp_path / "ledger.xlsx"
    Workbook().save(ledger)
    blocked_output = tmp_path / "taken"
    blocked_output.mkdir()

    with pytest.raises(ReportWriteError) as excinfo:
        write_report_workbook(ledger, blocked_output, build_report())

    assert excinfo.value.code == "report_write_failed"
