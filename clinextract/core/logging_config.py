"""
ClinExtract - Structured Logging Configuration
==============================================

Structured logging with:
- JSON output (for log aggregation) or console output (for development)
- Document correlation (document_id bound per run)
- Stage events with duration and outcome
- Standard library integration (captures third-party loggers)

Usage:
    # At application startup
    from clinextract.core.logging_config import configure_logging
    configure_logging(json_output=True)

    # In any module
    from clinextract.core.logging_config import get_logger
    logger = get_logger(__name__)

    logger.info("ocr_page_done", page=3, chars=1200)

    # Time a pipeline stage
    with stage_event(logger, "disease_matching") as event:
        match = matcher.match(text, templates)
        event["outcome"] = "matched" if match else "no_match"

Environment Variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    LOG_FORMAT: json, console (default: json in production, console in dev)
"""

import logging
import logging.config
import os
import re
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

import structlog
from structlog.types import EventDict, WrappedLogger


# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

# Document ID - set for the duration of a processing run
document_id_var: ContextVar[Optional[str]] = ContextVar("document_id", default=None)


def bind_document(document_id: Optional[str]) -> None:
    """Bind document ID to the current context (None clears it)."""
    document_id_var.set(document_id)


# =============================================================================
# CUSTOM PROCESSORS
# =============================================================================

def add_document_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict
) -> EventDict:
    """Add the bound document ID unless the event already carries one."""
    document_id = document_id_var.get()
    if document_id and "document_id" not in event_dict:
        event_dict["document_id"] = document_id
    return event_dict


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict
) -> EventDict:
    """Add service metadata."""
    event_dict["service"] = "clinextract"
    return event_dict


def add_timestamp_iso(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict
) -> EventDict:
    """Add ISO 8601 timestamp with timezone."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def drop_color_codes(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict
) -> EventDict:
    """Remove ANSI color codes from the event for JSON output."""
    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = re.sub(r'\x1b\[[0-9;]*m', '', event)
    return event_dict


# =============================================================================
# CONFIGURATION
# =============================================================================

def configure_logging(
    json_output: Optional[bool] = None,
    log_level: Optional[str] = None,
    include_timestamp: bool = True
) -> None:
    """
    Configure structured logging for the application.

    Args:
        json_output: If True, output JSON. If None, auto-detect from environment.
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var.
        include_timestamp: Include ISO timestamp in logs.
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    if json_output is None:
        log_format = os.getenv("LOG_FORMAT", "").lower()
        if log_format == "json":
            json_output = True
        elif log_format == "console":
            json_output = False
        else:
            env = os.getenv("ENVIRONMENT", "development").lower()
            json_output = env in ("production", "prod", "staging")

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        add_document_context,
        add_service_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        shared_processors.insert(0, add_timestamp_iso)

    if json_output:
        shared_processors.extend([
            drop_color_codes,
            structlog.processors.format_exc_info,
        ])
        final_processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        final_processor = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=shared_processors + [final_processor],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Third-party libraries log through stdlib; render them the same way
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    final_processor,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "structlog",
            },
        },
        "loggers": {
            "": {
                "handlers": ["default"],
                "level": log_level,
                "propagate": True,
            },
            "asyncio": {"level": "WARNING"},
            "asyncpg": {"level": "WARNING"},
            "PIL": {"level": "WARNING"},
        },
    })

    logger = structlog.get_logger("logging_config")
    logger.info(
        "logging_configured",
        format="json" if json_output else "console",
        level=log_level,
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger with context binding support
    """
    return structlog.get_logger(name)


@contextmanager
def stage_event(logger, stage: str, **fields: Any) -> Iterator[Dict[str, Any]]:
    """
    Emit one structured event for a pipeline stage.

    The yielded dict can be filled with extra keys (typically "outcome").
    On exit a `stage_completed` event is logged with the elapsed time; if the
    block raises, a `stage_failed` event is logged and the error propagates.
    """
    event: Dict[str, Any] = {"outcome": "ok"}
    start = time.perf_counter()
    try:
        yield event
    except Exception as e:
        logger.warning(
            "stage_failed",
            stage=stage,
            duration_ms=int((time.perf_counter() - start) * 1000),
            outcome="error",
            error_type=type(e).__name__,
            error=str(e),
            **fields,
        )
        raise
    logger.info(
        "stage_completed",
        stage=stage,
        duration_ms=int((time.perf_counter() - start) * 1000),
        **{**fields, **event},
    )
