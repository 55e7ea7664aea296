# Prometheus metrics for mentor matching

from typing import Callable

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import Settings
from .logging import get_logger

logger = get_logger(__name__)

# ===== Request metrics =====
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ===== Matching metrics =====
match_requests_total = Counter(
    "match_requests_total",
    "Total mentor match requests",
    ["search_method"],  # vector, fallback
)

match_latency_ms = Histogram(
    "match_latency_ms",
    "End-to-end mentor match latency in milliseconds",
    ["search_method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000),
)

match_results_total = Histogram(
    "match_results_total",
    "Number of matches returned per request",
    buckets=(0, 1, 2, 3, 5, 8, 13),
)

fallback_invocations_total = Counter(
    "fallback_invocations_total",
    "Times the in-memory fallback path was used",
    ["reason"],  # embedding_failure, all_strategies_failed, no_candidates, no_matches
)

# ===== Retrieval metrics =====
strategy_search_total = Counter(
    "strategy_search_total",
    "Retrieval strategy executions",
    ["strategy", "status"],  # status: success, error, timeout
)

strategy_search_latency_ms = Histogram(
    "strategy_search_latency_ms",
    "Retrieval strategy latency in milliseconds",
    ["strategy"],
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500),
)

retrieval_candidates_total = Histogram(
    "retrieval_candidates_total",
    "Candidates per retrieval stage",
    ["stage"],  # retrieved, deduplicated, ranked
    buckets=(0, 1, 2, 5, 10, 20, 50),
)

vector_index_operations_total = Counter(
    "vector_index_operations_total",
    "Vector index operations",
    ["backend", "operation", "status"],
)

# ===== Embedding metrics =====
embedding_request_total = Counter(
    "embedding_request_total",
    "Total embedding requests",
    ["model_id", "operation"],  # operation: documents, query
)

embedding_error_total = Counter(
    "embedding_error_total",
    "Total embedding errors",
    ["model_id", "error_type"],
)

embedding_latency_ms = Histogram(
    "embedding_latency_ms",
    "Embedding generation latency in milliseconds",
    ["model_id", "operation"],
    buckets=(10, 25, 50, 100, 250, 500, 1000, 2500, 5000),
)

# ===== Indexing metrics =====
mentors_indexed_total = Counter(
    "mentors_indexed_total",
    "Mentor vectors written to the index",
    ["namespace"],
)

# ===== Scoring metrics =====
scoring_anomalies_total = Counter(
    "scoring_anomalies_total",
    "Scoring components that could not be computed from mentor data",
    ["component"],
)

service_info = Info("mentormatch_service", "Mentor matching service information")


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP request metrics for Prometheus.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Skip metrics endpoint itself
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = request.url.path

        with http_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).time():
            response = await call_next(request)

        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=response.status_code,
        ).inc()

        return response


def setup_metrics(settings: Settings, version: str = "0.1.0") -> None:
    """
    Setup Prometheus metrics collection.

    Args:
        settings: Application settings
        version: Service version reported in the info metric
    """
    logger.info("Setting up Prometheus metrics")
    service_info.info(
        {
            "version": version,
            "environment": settings.env,
            "service_name": settings.otel_service_name,
        }
    )


def get_metrics() -> bytes:
    """
    Get current metrics in Prometheus exposition format.

    Returns:
        Metrics as bytes
    """
    return generate_latest()
