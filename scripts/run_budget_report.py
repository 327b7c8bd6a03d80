#!/usr/bin/env python3
"""
Trigger a budget comparison report run.

By default the script calls a running Budget Report Service; with --local it
runs the report in-process using the same environment configuration.
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict

import httpx

REPO_ROOT = Path(__file__).resolve().parents[1]
SERVICES_ROOT = REPO_ROOT / "services"
REPORT_SERVICE_SRC = SERVICES_ROOT / "budget-report-service" / "src"

REPORT_SERVICE_URL = os.getenv("REPORT_SERVICE_URL", "http://localhost:8004")
DEFAULT_TIMEOUT = 60.0


class ReportRunError(Exception):
    """Raised when the report run fails outright."""


def trigger_remote(base_url: str, timeout: float) -> Dict[str, Any]:
    """POST /reports/run on the service and return its JSON outcome."""
    try:
        response = httpx.post(f"{base_url.rstrip('/')}/reports/run", timeout=timeout)
    except httpx.RequestError as exc:
        raise ReportRunError(f"Cannot reach the report service at {base_url}: {exc}") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise ReportRunError(f"Report service returned a non-JSON response ({response.status_code})") from exc
    if response.status_code >= 400:
        raise ReportRunError(f"{payload.get('error', 'report_failed')}: {payload.get('details', '')}")
    return payload


def run_local() -> Dict[str, Any]:
    """Run the report in-process and return the outcome as a dict."""
    for path in (REPORT_SERVICE_SRC, SERVICES_ROOT):
        if str(path) not in sys.path:
            sys.path.insert(0, str(path))

    from dataclasses import asdict

    from shared.observability.telemetry import setup_logging
    from shared.report_settings import ReportSettingsError

    from errors import BudgetReportError
    from run_report import run_report

    setup_logging("budget-report-cli")
    try:
        return asdict(run_report())
    except (BudgetReportError, ReportSettingsError) as exc:
        raise ReportRunError(str(exc)) from exc


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate the monthly budget comparison report.")
    parser.add_argument("--url", default=REPORT_SERVICE_URL, help="Budget Report Service base URL")
    parser.add_argument("--local", action="store_true", help="Run in-process instead of calling the service")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="HTTP timeout in seconds")
    parser.add_argument("--json", action="store_true", help="Print the raw outcome as JSON")
    args = parser.parse_args()

    try:
        outcome = run_local() if args.local else trigger_remote(args.url, args.timeout)
    except ReportRunError as exc:
        print(f"✗ Report failed: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(outcome, indent=2))
    else:
        print(f"✓ Wrote '{outcome['sheet_name']}' to {outcome['output_path']}")
        print(f"  {outcome['categories_reported']} of {outcome['categories_parsed']} categories need attention")
        if outcome.get("draft_location"):
            print(f"  Email draft: {outcome['draft_location']}")
        for alert in outcome.get("alerts") or []:
            print(f"⚠ {alert}")

    return 0 if outcome.get("status") == "ok" else 2


if __name__ == "__main__":
    sys.exit(main())
