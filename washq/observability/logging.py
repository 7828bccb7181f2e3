"""
Structured logging.

Modules log through the standard library (``logging.getLogger(__name__)``
with ``extra=`` fields); structlog renders every record as JSON or for the
console, adding bound request context and the current trace ids.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from washq.config import get_settings

# Libraries that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx")


def inject_trace_ids(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Copy the active span's trace and span ids into the record."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Route stdlib and structlog records through one renderer on stdout.

    Args:
        level: Log level name; defaults to the configured one.
        log_format: "json" or "console"; defaults to the configured one.
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        inject_trace_ids,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs: Any) -> None:
    """Attach key-value pairs to every record logged from this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
