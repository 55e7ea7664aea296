# Structured logging for matching requests: correlation id, trace ids and the
# profile/strategy being worked on are attached to every log line.

import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

import structlog
from opentelemetry import trace

# Context variable for correlation ID
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def get_correlation_id() -> str:
    """Get or create correlation ID for the current context"""
    corr_id = correlation_id_ctx.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        correlation_id_ctx.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: str) -> None:
    """Set correlation ID for the current context"""
    correlation_id_ctx.set(corr_id)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add correlation ID to log event"""
    corr_id = correlation_id_ctx.get()
    if corr_id:
        event_dict["correlation_id"] = corr_id
    return event_dict


def add_trace_context(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Add the active span's trace_id/span_id so a log line can be found from its trace."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


@contextmanager
def match_log_context(profile_id: str, archetype: str) -> Iterator[None]:
    """
    Bind the newcomer being matched to every log line in this context.

    Retrieval workers run in a copy of the caller's context, so strategy logs
    carry the profile too.
    """
    with structlog.contextvars.bound_contextvars(
        profile_id=profile_id, archetype=archetype
    ):
        yield


@contextmanager
def strategy_log_context(strategy: str, namespace: str) -> Iterator[None]:
    with structlog.contextvars.bound_contextvars(strategy=strategy, namespace=namespace):
        yield


def setup_logging(log_level: str = "INFO") -> None:
    """
    Setup structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Note:
        When MENTORMATCH_CLI_MODE=1, logs go to stderr so the CLI can keep
        stdout for JSON results.
    """
    stream = sys.stderr if os.environ.get("MENTORMATCH_CLI_MODE") else sys.stdout
    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_correlation_id,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
