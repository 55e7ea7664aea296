# OpenTelemetry tracing for the match API

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ..config import Settings
from .logging import get_logger

logger = get_logger(__name__)

# Health checks and metric scrapes are not traced
UNTRACED_URLS = "health,metrics"


def build_resource(settings: Settings, version: str) -> Resource:
    return Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": version,
            "deployment.environment": settings.env,
        }
    )


def setup_tracing(app, settings: Settings, version: str = "0.1.0") -> TracerProvider:
    """
    Install a tracer provider and instrument the FastAPI app.

    Spans for ``mentormatch.match`` and each retrieval strategy are exported
    over OTLP/HTTP when ``OTEL_EXPORTER_OTLP_ENDPOINT`` is set; otherwise they
    are recorded but not exported. A setup failure leaves matching untraced
    rather than failing startup.
    """
    try:
        provider = TracerProvider(resource=build_resource(settings, version))

        if settings.otel_exporter_otlp_endpoint:
            exporter = OTLPSpanExporter(
                endpoint=f"{settings.otel_exporter_otlp_endpoint}/v1/traces"
            )
            provider.add_span_processor(BatchSpanProcessor(exporter))

        trace.set_tracer_provider(provider)
        FastAPIInstrumentor.instrument_app(app, excluded_urls=UNTRACED_URLS)
        logger.info(
            "Tracing enabled",
            endpoint=settings.otel_exporter_otlp_endpoint or None,
            service=settings.otel_service_name,
        )
        return provider

    except Exception as e:
        logger.error("Failed to setup OpenTelemetry tracing", error=str(e))
        provider = TracerProvider()
        trace.set_tracer_provider(provider)
        return provider
