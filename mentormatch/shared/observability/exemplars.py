# Spans around matching stages, paired with their Prometheus metrics

import time
from contextlib import contextmanager
from opentelemetry import trace
from opentelemetry.trace import SpanKind

from .metrics import strategy_search_latency_ms


@contextmanager
def trace_match(profile_id: str, archetype: str):
    """
    Context manager spanning one match request.

    Yields:
        Span object; callers set ``match.search_method`` and ``match.results``.
    """
    tracer = trace.get_tracer(__name__)

    with tracer.start_as_current_span(
        "mentormatch.match",
        kind=SpanKind.INTERNAL,
        attributes={
            "match.profile_id": profile_id,
            "match.archetype": archetype,
        },
    ) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            raise


@contextmanager
def trace_strategy_search(strategy: str, namespace: str, top_k: int):
    """
    Context manager to trace a single retrieval strategy with latency metrics.

    Yields:
        Span object
    """
    tracer = trace.get_tracer(__name__)
    start_time = time.time()

    with tracer.start_as_current_span(
        f"mentormatch.strategy.{strategy}",
        kind=SpanKind.CLIENT,
        attributes={
            "strategy.name": strategy,
            "strategy.namespace": namespace,
            "strategy.top_k": top_k,
        },
    ) as span:
        try:
            yield span
            span.set_attribute("strategy.status", "success")
        except Exception as e:
            span.set_attribute("strategy.status", "error")
            span.set_attribute("strategy.error", str(e))
            span.record_exception(e)
            raise
        finally:
            strategy_search_latency_ms.labels(strategy=strategy).observe(
                (time.time() - start_time) * 1000
            )
