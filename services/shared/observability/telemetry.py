"""
Logging and tracing bootstrap for the budget report service and its CLI.

Every log line is a JSON object. Besides the service name and (when tracing is
on) the trace/span ids, records carry the fields bound in the current log
context: the inbound request id and, while a report run is in flight, the
period and sheet being produced. A line such as

    {"message": {"event": "report_sheet_written", ...}, "request_id": "...",
     "report_period": "March 2025", "report_sheet": "March Budget Comparison"}

can therefore be tied to both the HTTP call and the month it reported on.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from types import MappingProxyType
from uuid import uuid4

from fastapi import FastAPI, Request
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, SpanContext
from pythonjsonlogger import jsonlogger

CORRELATION_ID_HEADER = "x-request-id"
LOG_CONTEXT_FIELDS = ("request_id", "report_period", "report_sheet")

LogContextToken = Token

_EMPTY_CONTEXT: Mapping[str, str] = MappingProxyType({})
_log_context: ContextVar[Mapping[str, str]] = ContextVar("report_log_context", default=_EMPTY_CONTEXT)
_logging_configured = False


def setup_telemetry(app: FastAPI, service_name: str) -> None:
    """
    Configure JSON logging and, when ENABLE_TELEMETRY is set, OTLP tracing for the app.

    Args:
        app: FastAPI app instance that should emit spans/logs.
        service_name: Logical service identifier used for OTLP resources.
    """

    traces_enabled = _env_flag("ENABLE_TELEMETRY")
    service_label = os.getenv("OTEL_SERVICE_NAME", service_name)

    _configure_logging(service_label, traces_enabled)
    if traces_enabled:
        _configure_tracing(service_label, console_export=_env_flag("OTEL_CONSOLE_EXPORT"))
        FastAPIInstrumentor.instrument_app(app)
        LoggingInstrumentor().instrument(set_logging_format=False)


def setup_logging(service_name: str) -> None:
    """JSON logging without tracing, for CLI and in-process report runs."""

    _configure_logging(os.getenv("OTEL_SERVICE_NAME", service_name), traces_enabled=False)


def ensure_request_id(request: Request, header_name: str = CORRELATION_ID_HEADER) -> str:
    """Return the caller's x-request-id, or mint a UUID4 for requests that arrive without one."""

    request_id = request.headers.get(header_name) or getattr(request.state, "request_id", None) or str(uuid4())
    request.state.request_id = request_id
    return request_id


def bind_log_context(**fields: str | None) -> LogContextToken:
    """
    Add fields to the log context of the current task; None values are dropped.

    Returns the token `reset_log_context` needs to restore the previous context.
    """

    unknown = set(fields) - set(LOG_CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown log context fields: {sorted(unknown)}")

    merged = dict(_log_context.get())
    merged.update({key: value for key, value in fields.items() if value is not None})
    return _log_context.set(MappingProxyType(merged))


def reset_log_context(token: LogContextToken | None) -> None:
    if token is not None:
        _log_context.reset(token)


def current_log_context() -> Mapping[str, str]:
    return _log_context.get()


@contextmanager
def report_log_context(period: str, sheet: str) -> Iterator[None]:
    """Tag every record logged inside the block with the report period and sheet."""

    token = bind_log_context(report_period=period, report_sheet=sheet)
    try:
        yield
    finally:
        reset_log_context(token)


def _configure_logging(service_name: str, traces_enabled: bool) -> None:
    global _logging_configured
    if _logging_configured:
        return

    context_fields = " ".join(f"%({name})s" for name in LOG_CONTEXT_FIELDS)
    formatter = jsonlogger.JsonFormatter(
        f"%(asctime)s %(levelname)s %(name)s %(message)s %(service_name)s {context_fields} %(trace_id)s %(span_id)s"
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(_ReportContextFilter(service_name, traces_enabled))

    level_name = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), handlers=[handler], force=True)
    _logging_configured = True


def _configure_tracing(service_name: str, console_export: bool) -> None:
    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    exporter = OTLPSpanExporter(endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318/v1/traces"))
    provider.add_span_processor(BatchSpanProcessor(exporter))
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


class _ReportContextFilter(logging.Filter):
    """Copies the service name, log context fields, and trace ids onto each record."""

    def __init__(self, service_name: str, traces_enabled: bool) -> None:
        super().__init__()
        self._service_name = service_name
        self._traces_enabled = traces_enabled

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self._service_name
        context = _log_context.get()
        for name in LOG_CONTEXT_FIELDS:
            setattr(record, name, context.get(name))

        record.trace_id = None
        record.span_id = None
        if self._traces_enabled:
            span = trace.get_current_span()
            span_context = span.get_span_context() if isinstance(span, Span) else None
            if isinstance(span_context, SpanContext) and span_context.is_valid:
                record.trace_id = format(span_context.trace_id, "032x")
                record.span_id = format(span_context.span_id, "016x")
        return True
