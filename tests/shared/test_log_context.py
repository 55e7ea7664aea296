import structlog
from opentelemetry.sdk.trace import TracerProvider

from mentormatch.shared.config import Settings
from mentormatch.shared.observability.logging import (
    add_trace_context,
    match_log_context,
    strategy_log_context,
)
from mentormatch.shared.observability.tracing import build_resource


def test_trace_ids_added_inside_span():
    tracer = TracerProvider().get_tracer("test")

    with tracer.start_as_current_span("mentormatch.match") as span:
        event = add_trace_context(None, "info", {"event": "matched"})

    ctx = span.get_span_context()
    assert event["trace_id"] == format(ctx.trace_id, "032x")
    assert event["span_id"] == format(ctx.span_id, "016x")


def test_no_trace_ids_outside_span():
    assert add_trace_context(None, "info", {"event": "matched"}) == {"event": "matched"}


def test_match_and_strategy_context_nest_and_unbind():
    with match_log_context("newcomer-1", "developer"):
        with strategy_log_context("exact-archetype", "mentors-developer"):
            inner = structlog.contextvars.get_contextvars()
        outer = structlog.contextvars.get_contextvars()

    assert inner == {
        "profile_id": "newcomer-1",
        "archetype": "developer",
        "strategy": "exact-archetype",
        "namespace": "mentors-developer",
    }
    assert outer == {"profile_id": "newcomer-1", "archetype": "developer"}
    assert structlog.contextvars.get_contextvars() == {}


def test_trace_resource_names_service_and_environment():
    resource = build_resource(Settings(OTEL_SERVICE_NAME="mentormatch-test"), "1.2.3")

    assert resource.attributes["service.name"] == "mentormatch-test"
    assert resource.attributes["service.version"] == "1.2.3"
    assert resource.attributes["deployment.environment"] == "test"
