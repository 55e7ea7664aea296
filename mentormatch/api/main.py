# FastAPI service for mentor matching
# Health, metrics and the match endpoint; the service graph lives on app.state

import contextlib
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from mentormatch import __version__
from mentormatch.services.container import MatchingServices, build_services
from mentormatch.shared.config import Config, Settings, load_config
from mentormatch.shared.errors import InvalidProfile
from mentormatch.shared.observability import (
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
    setup_tracing,
)
from mentormatch.shared.observability.metrics import (
    PrometheusMiddleware,
    get_metrics,
    setup_metrics,
)

from .models import ErrorResponse, HealthResponse, MatchesResponse, MatchRequest

logger = get_logger(__name__)


def create_app(
    config: Optional[Config] = None,
    settings: Optional[Settings] = None,
    services: Optional[MatchingServices] = None,
) -> FastAPI:
    """
    Build the API application.

    Connections are opened in the lifespan handler, not at import, so the
    module can be imported without a vector index or an API key around.
    A prebuilt ``services`` graph is used as-is (tests pass one in).
    """
    if config is None or settings is None:
        loaded_config, loaded_settings = load_config()
        config = config or loaded_config
        settings = settings or loaded_settings

    setup_logging(settings.log_level or config.app.log_level)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting mentormatch API", version=config.app.version)
        try:
            app.state.services = services or build_services(config, settings)
        except Exception as e:
            logger.error("Failed to start mentormatch API", error=str(e))
            raise
        logger.info("mentormatch API started successfully")

        yield

        logger.info("Shutting down mentormatch API")
        try:
            app.state.services.close()
            logger.info("mentormatch API shut down successfully")
        except Exception as e:
            logger.error("Error during shutdown", error=str(e))
        app.state.services = None

    app = FastAPI(
        title=config.app.name,
        version=config.app.version,
        description="Crypto mentor matching service",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.services = None

    if config.monitoring.tracing_enabled:
        setup_tracing(app, settings, version=__version__)

    if config.monitoring.metrics_enabled:
        setup_metrics(settings, version=__version__)
        app.add_middleware(PrometheusMiddleware)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """Add correlation ID to request context"""
        corr_id = request.headers.get("X-Correlation-ID")
        if not corr_id:
            corr_id = get_correlation_id()
        else:
            set_correlation_id(corr_id)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = corr_id
        return response

    @app.exception_handler(InvalidProfile)
    async def invalid_profile_handler(request: Request, exc: InvalidProfile):
        logger.info(
            "Rejected invalid newcomer profile",
            path=request.url.path,
            errors=len(exc.errors),
        )
        body = ErrorResponse(error=str(exc), details=exc.errors)
        return JSONResponse(status_code=422, content=body.model_dump(mode="json"))

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request):
        """Health check endpoint"""
        services: MatchingServices = request.app.state.services
        provider = services.embedding_provider
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=config.app.version,
            embedding={
                "provider": provider.provider_name,
                "model": provider.model_id,
                "dims": provider.dims,
            },
            vector_backend=services.vector_index.backend_name,
            mentor_count=len(services.mentor_store),
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint"""
        return Response(
            content=get_metrics(), media_type="text/plain; version=0.0.4"
        )

    @app.post(
        "/matches",
        response_model=MatchesResponse,
        responses={422: {"model": ErrorResponse}},
    )
    def find_matches(body: MatchRequest, request: Request):
        # Blocking; FastAPI runs sync handlers in its threadpool
        services: MatchingServices = request.app.state.services
        response = services.match_service.match(body.profile, body.preferences)
        return MatchesResponse.from_match_response(response)

    return app


def main() -> None:
    config, _ = load_config()
    uvicorn.run(
        "mentormatch.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=config.app.log_level.lower(),
    )


if __name__ == "__main__":
    main()
