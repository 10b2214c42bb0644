"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics, health
checks and the vectorization pipeline.
"""

from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from geovec import __version__
from geovec.api.routes import router
from geovec.config import Settings, get_settings
from geovec.exceptions import ErrorCode, GeoVecError
from geovec.logging_config import get_logger, setup_logging
from geovec.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from geovec.pipeline.factory import build_pipeline, build_retriever
from geovec.pipeline.ingestion import IngestionQueue
from geovec.pipeline.vectorizer import GeoVectorizer

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the pipeline and retriever unless they were injected, starts the
    ingestion queue when vectorization is enabled, and drains it on shutdown.
    """
    # Startup
    settings: Settings = app.state.settings
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting geovec",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
            "vectorization_enabled": settings.vectorization.enabled,
        },
    )

    async with AsyncExitStack() as stack:
        wanted = settings.vectorization.enabled or settings.embedding.endpoint
        if getattr(app.state, "vectorizer", None) is None and wanted:
            app.state.vectorizer = await build_pipeline(settings, stack)

        vectorizer: GeoVectorizer | None = getattr(app.state, "vectorizer", None)
        if vectorizer is not None and getattr(app.state, "retriever", None) is None:
            app.state.retriever = build_retriever(
                settings,
                vectorizer.embedding_service,
                vectorizer.vector_store,
            )

        if (
            vectorizer is not None
            and vectorizer.is_enabled
            and getattr(app.state, "ingestion", None) is None
        ):
            app.state.ingestion = IngestionQueue(vectorizer, settings.ingestion)

        ingestion = getattr(app.state, "ingestion", None)
        if ingestion is not None:
            await ingestion.start()
            stack.push_async_callback(ingestion.stop)

        yield

        # Shutdown
        logger.info("Shutting down geovec")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to the environment).

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="geovec",
        description="Vectorization and retrieval of map-service responses",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.vectorizer = None
    app.state.ingestion = None
    app.state.retriever = None

    app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(GeoVecError, geovec_exception_handler)

    # Register routes
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics, methods=["GET"], tags=["Observability"])
    app.include_router(router)

    return app


async def geovec_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle GeoVecError exceptions.

    Converts exceptions to structured JSON responses.
    """
    if not isinstance(exc, GeoVecError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "details": {},
                }
            },
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=_get_status_code(exc.code),
        content=exc.to_dict(),
    )


_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INDEX_NOT_FOUND: 404,
    ErrorCode.RECORD_NOT_FOUND: 404,
    ErrorCode.EMBEDDING_SERVICE_ERROR: 502,
    ErrorCode.CONFIGURATION_ERROR: 503,
    ErrorCode.VECTORIZATION_DISABLED: 503,
    ErrorCode.CONNECTION_ERROR: 503,
    ErrorCode.INGESTION_QUEUE_FULL: 503,
}


def _get_status_code(error_code: ErrorCode) -> int:
    """Map error code to HTTP status code."""
    return _STATUS_CODES.get(error_code, 500)


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Kubernetes readiness check.

    A pipeline that is not configured is reported but does not make the
    service unready; a stopped ingestion queue does.

    Returns:
        Readiness status with component checks.
    """
    state = request.app.state
    checks: dict[str, str] = {"config": "ok"}
    checks["pipeline"] = "ok" if getattr(state, "vectorizer", None) is not None else "disabled"
    checks["retrieval"] = "ok" if getattr(state, "retriever", None) is not None else "disabled"

    ingestion: IngestionQueue | None = getattr(state, "ingestion", None)
    if ingestion is not None:
        checks["ingestion"] = "ok" if ingestion.running else "stopped"

    all_ok = all(v in ("ok", "disabled") for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness check.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Create the application instance
app = create_app()
