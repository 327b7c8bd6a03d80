class BudgetReportError(Exception):
    """Base class for failures surfaced to whoever triggered a report run."""

    code = "report_failed"


class LedgerSourceError(BudgetReportError):
    """Raised when the ledger workbook or its budget sheet cannot be opened."""

    code = "missing_source"


class ReportWriteError(BudgetReportError):
    """Raised when the comparison worksheet cannot be written; the run produces no report."""

    code = "report_write_failed"


class DraftDeliveryError(BudgetReportError):
    """Raised when the narrative email draft cannot be created."""

    code = "draft_delivery_failed"


class ReportInProgressError(BudgetReportError):
    """Raised when a report run starts while another one is still writing its outputs."""

    code = "report_in_progress"
