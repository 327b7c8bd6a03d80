"""
Budget Report Service reads the household budget ledger, compares actual spending
against the plan, and publishes a comparison worksheet plus an email draft.
"""

import logging
import os
import sys
from pathlib import Path
from typing import List, Literal, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

SRC_DIR = Path(__file__).resolve().parent
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

SERVICES_ROOT = SRC_DIR.parents[1]
if str(SERVICES_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICES_ROOT))

from shared.observability.telemetry import (  # noqa: E402
    bind_log_context,
    ensure_request_id,
    reset_log_context,
    setup_telemetry,
)
from shared.report_settings import ReportSettingsError  # noqa: E402

from errors import LedgerSourceError, ReportInProgressError, ReportWriteError  # noqa: E402
from run_report import RunReportOutcome, run_report  # noqa: E402

logger = logging.getLogger(__name__)

app = FastAPI(title="Budget Report Service")
setup_telemetry(app, service_name="budget-report-service")


class RunReportResponseModel(BaseModel):
    status: Literal["ok", "partial"]
    sheet_name: str
    output_path: str
    categories_parsed: int
    categories_reported: int
    draft_location: Optional[str] = None
    alerts: List[str] = Field(default_factory=list)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = ensure_request_id(request)
    token = bind_log_context(request_id=request_id)
    try:
        response = await call_next(request)
        response.headers.setdefault("x-request-id", request_id)
        return response
    finally:
        reset_log_context(token)


def error_response(status_code: int, error_code: str, details: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error_code, "details": details},
    )


@app.get("/health")
def health_check() -> dict:
    """
    Report overall service health; expects no payload.
    Returns a minimal status object for uptime probes and orchestrators.
    """
    return {"status": "ok", "service": "budget-report-service"}


@app.post("/reports/run", response_model=None)
def run_budget_report() -> RunReportResponseModel | JSONResponse:
    """
    Generate this month's budget comparison from the configured ledger.
    Takes no payload; everything comes from the ledger workbook and service configuration.
    Returns the run outcome. A "partial" status means the worksheet exists but the
    email draft failed; `alerts` carries the reason.
    """
    try:
        outcome = run_report()
    except ReportSettingsError as exc:
        logger.error({"event": "report_settings_invalid", "error": str(exc)})
        return error_response(500, "invalid_configuration", str(exc))
    except ReportInProgressError as exc:
        return error_response(409, exc.code, str(exc))
    except LedgerSourceError as exc:
        logger.warning({"event": "report_source_missing", "error": str(exc)})
        return error_response(404, exc.code, str(exc))
    except ReportWriteError as exc:
        return error_response(500, exc.code, str(exc))

    return _outcome_to_response(outcome)


def _outcome_to_response(outcome: RunReportOutcome) -> RunReportResponseModel:
    return RunReportResponseModel(
        status=outcome.status,
        sheet_name=outcome.sheet_name,
        output_path=outcome.output_path,
        categories_parsed=outcome.categories_parsed,
        categories_reported=outcome.categories_reported,
        draft_location=outcome.draft_location,
        alerts=list(outcome.alerts),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("REPORT_SERVICE_HOST", "127.0.0.1"), port=int(os.getenv("REPORT_SERVICE_PORT", "8004")))
