import runpy

import pytest
import uvicorn
from fastapi.testclient import TestClient
from openpyxl import load_workbook

import main
from errors import DraftDeliveryError
from main import app
from run_report import REPORT_RUN_LOCK

REPORT_WORKBOOK = "ledger Budget Comparison.xlsx"


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def configured_ledger(ledger_factory, shelter_rows, tmp_path, monkeypatch):
    ledger = ledger_factory(shelter_rows)
    monkeypatch.setenv("BUDGET_LEDGER_PATH", str(ledger))
    monkeypatch.setenv("BUDGET_DRAFT_DIR", str(tmp_path / "drafts"))
    monkeypatch.delenv("BUDGET_REPORT_OUTPUT_PATH", raising=False)
    monkeypatch.delenv("BUDGET_LEDGER_SHEET", raising=False)
    monkeypatch.delenv("BUDGET_DRAFT_SENDER", raising=False)
    return ledger


def test_health_route_reports_service(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "budget-report-service"}


def test_run_report_route_returns_outcome(client: TestClient, configured_ledger, tmp_path) -> None:
    response = client.post("/reports/run", headers={"x-request-id": "req-123"})

    assert response.status_code == 200
    assert response.headers["x-request-id"] == "req-123"
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["sheet_name"] == "March Budget Comparison"
    assert payload["categories_reported"] == 1
    assert payload["alerts"] == []
    assert payload["draft_location"].endswith("march-2025-budget-comparison.eml")
    assert "March Budget Comparison" in load_workbook(configured_ledger.with_name(REPORT_WORKBOOK)).sheetnames


def test_missing_ledger_returns_missing_source(client: TestClient, tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("BUDGET_LEDGER_PATH", str(tmp_path / "nope.xlsx"))

    response = client.post("/reports/run")

    assert response.status_code == 404
    assert response.json()["error"] == "missing_source"


def test_invalid_configuration_returns_error(client: TestClient, monkeypatch) -> None:
    monkeypatch.delenv("BUDGET_LEDGER_PATH", raising=False)

    response = client.post("/reports/run")

    assert response.status_code == 500
    assert response.json()["error"] == "invalid_configuration"


def test_draft_failure_returns_partial_outcome(client: TestClient, configured_ledger, monkeypatch) -> None:
    def refuse(self, draft):
        raise DraftDeliveryError("no permission to create drafts")

    monkeypatch.setattr("sinks.draft_sender.EmlDraftSender.send", refuse)

    response = client.post("/reports/run")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "partial"
    assert "no permission to create drafts" in payload["alerts"][0]
    assert "March Budget Comparison" in load_workbook(configured_ledger.with_name(REPORT_WORKBOOK)).sheetnames


def test_sheet_write_failure_returns_error(client: TestClient, configured_ledger, tmp_path, monkeypatch) -> None:
    blocked = tmp_path / "blocked"
    blocked.mkdir()
    monkeypatch.setenv("BUDGET_REPORT_OUTPUT_PATH", str(blocked))

    response = client.post("/reports/run")

    assert response.status_code == 500
    assert response.json()["error"] == "report_write_failed"


def test_run_while_another_run_is_writing_returns_conflict(client: TestClient, configured_ledger) -> None:
    with REPORT_RUN_LOCK:
        response = client.post("/reports/run")

    assert response.status_code == 409
    assert response.json()["error"] == "report_in_progress"
    assert not configured_ledger.with_name(REPORT_WORKBOOK).exists()


def test_output_configured_as_ledger_is_invalid_configuration(client: TestClient, configured_ledger, monkeypatch) -> None:
    monkeypatch.setenv("BUDGET_REPORT_OUTPUT_PATH", str(configured_ledger))

    response = client.post("/reports/run")

    assert response.status_code == 500
    assert response.json()["error"] == "invalid_configuration"


def test_running_module_serves_app_with_uvicorn(monkeypatch) -> None:
    served = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **options: served.append((app, options)))
    monkeypatch.delenv("REPORT_SERVICE_HOST", raising=False)
    monkeypatch.setenv("REPORT_SERVICE_PORT", "9100")

    runpy.run_path(main.__file__, run_name="__main__")

    ((served_app, options),) = served
    assert served_app.title == "Budget Report Service"
    assert options == {"host": "127.0.0.1", "port": 9100}
