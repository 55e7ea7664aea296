# Observability package
from .exemplars import trace_match, trace_strategy_search
from .logging import (
    get_correlation_id,
    get_logger,
    match_log_context,
    set_correlation_id,
    setup_logging,
    strategy_log_context,
)
from .metrics import get_metrics, setup_metrics
from .tracing import setup_tracing

__all__ = [
    "get_logger",
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "setup_tracing",
    "match_log_context",
    "strategy_log_context",
    "setup_metrics",
    "get_metrics",
    "trace_match",
    "trace_strategy_search",
]
