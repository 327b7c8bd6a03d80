"""Pytest configuration for budget-report-service tests.

Ensures the service's own src directory and the shared services package take
precedence in sys.path, and provides a factory for ledger workbooks on disk.
"""

import re
import sys
import zipfile
from datetime import date
from pathlib import Path

import pytest
from openpyxl import Workbook

SERVICE_SRC = Path(__file__).resolve().parents[1] / "src"
SERVICES_ROOT = Path(__file__).resolve().parents[2]
for path in (SERVICES_ROOT, SERVICE_SRC):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


SHELTER_ROWS = [
    ("Shelter", None, 5409.94, None, 4001.02),
    (None, "Mortgage", 700.00, None, 0.00),
    (None, "Pool Maintenance", 700.00, None, 193.88),
    ("Total Shelter", None, 5409.94, None, 4001.02),
]


@pytest.fixture
def shelter_rows():
    return list(SHELTER_ROWS)


@pytest.fixture
def ledger_factory(tmp_path: Path):
    """Write a ledger workbook whose data rows start at row 5 and return its path."""

    def _build(
        rows,
        *,
        year=2025,
        month="March",
        start=date(2025, 3, 1),
        end=date(2025, 3, 31),
        sheet_name="Budget",
        filename="ledger.xlsx",
        cached_results=None,
    ) -> Path:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = sheet_name
        sheet.append(("Year", year, "Start", start))
        sheet.append(("Month", month, "End", end))
        sheet.append(("Household budget",))
        sheet.append(("Category", "Item", "Budget", None, "Actual"))
        for row in rows:
            sheet.append(row)

        path = tmp_path / filename
        workbook.save(path)
        if cached_results:
            store_cached_results(path, cached_results)
        return path

    return _build


def store_cached_results(path: Path, cached_results) -> None:
    """
    Give formula cells of the first sheet a cached result, the way Excel saves them.

    openpyxl writes formulas with an empty <v/>, so `data_only` readers would see
    None; `cached_results` maps coordinates such as "C8" to the value to store.
    """

    sheet_part = "xl/worksheets/sheet1.xml"
    with zipfile.ZipFile(path) as archive:
        parts = {name: archive.read(name) for name in archive.namelist()}

    xml = parts[sheet_part].decode("utf-8")
    for coordinate, value in cached_results.items():
        pattern = rf'(<c r="{coordinate}"[^>]*>\s*<f>[^<]*</f>\s*)<v(?:\s*/>|>\s*</v>)'
        xml, replaced = re.subn(pattern, rf"\g<1><v>{value}</v>", xml)
        assert replaced == 1, f"no formula cell at {coordinate}"
    parts[sheet_part] = xml.encode("utf-8")

    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in parts.items():
            archive.writestr(name, data)
