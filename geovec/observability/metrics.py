"""Prometheus metrics for the geo vectorization service.

Provides metrics instrumentation for:
- HTTP request latency and counts
- Embedding request latency
- Vectorization outcomes per data type
- Vector store operation latency
- Retrieval and fusion results
- Background ingestion queue
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from geovec.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500],
)

# Vectorization Metrics
VECTORIZE_TOTAL = Counter(
    "vectorize_total",
    "Vectorized tool responses",
    ["data_type", "status"],
)

PERSISTENCE_FAILURES_TOTAL = Counter(
    "vectorize_persistence_failures_total",
    "Record saves that failed without failing vectorization",
    ["backend"],
)

# Vector Store Metrics
VECTORSTORE_OPERATION_DURATION = Histogram(
    "vectorstore_operation_duration_seconds",
    "Vector store operation duration",
    ["operation", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

# Retrieval Metrics
RETRIEVAL_RESULTS_RETURNED = Histogram(
    "retrieval_results_returned",
    "Number of results returned per retrieval",
    ["retriever"],
    buckets=[0, 1, 2, 3, 5, 10, 20, 50],
)

RETRIEVAL_TOP_SCORE = Histogram(
    "retrieval_top_score",
    "Top retrieval score per query",
    ["retriever"],
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

FUSION_SECONDARY_ADDED = Histogram(
    "fusion_secondary_added",
    "Secondary results merged into a fused result set",
    buckets=[0, 1, 2, 3, 5, 10],
)

# Ingestion Metrics
INGESTION_QUEUE_DEPTH = Gauge(
    "ingestion_queue_depth",
    "Pending background ingestion jobs",
)

INGESTION_JOBS_TOTAL = Counter(
    "ingestion_jobs_total",
    "Background ingestion jobs by outcome",
    ["outcome"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware."""
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        if path.startswith("/api/v1/"):
            parts = path.split("/")
            if len(parts) >= 4:
                return f"/api/v1/{parts[3]}"
        return path


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


def track_vectorize(data_type: str, success: bool = True) -> None:
    """Count a vectorization attempt for a data type."""
    VECTORIZE_TOTAL.labels(
        data_type=data_type,
        status="success" if success else "error",
    ).inc()


def track_persistence_failure(backend: str) -> None:
    """Count a non-fatal save failure ("local" or "vector_store")."""
    PERSISTENCE_FAILURES_TOTAL.labels(backend=backend).inc()


def track_vectorstore_operation(
    operation: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track a vector store round trip.

    Args:
        operation: Operation name (store, search, filtered_search, ...).
        duration: Duration in seconds.
        success: Whether the operation succeeded.
    """
    VECTORSTORE_OPERATION_DURATION.labels(
        operation=operation,
        status="success" if success else "error",
    ).observe(duration)


def track_retrieval_request(
    retriever: str,
    results_returned: int,
    top_score: float,
) -> None:
    """Track retrieval request metrics.

    Args:
        retriever: Retriever name.
        results_returned: Number of results returned.
        top_score: Highest relevance score.
    """
    RETRIEVAL_RESULTS_RETURNED.labels(retriever=retriever).observe(results_returned)
    if top_score > 0:
        RETRIEVAL_TOP_SCORE.labels(retriever=retriever).observe(top_score)


def track_fusion(secondary_added: int) -> None:
    """Record how many secondary results a fusion merged."""
    FUSION_SECONDARY_ADDED.observe(secondary_added)


def track_ingestion_job(outcome: str, queue_depth: int) -> None:
    """Track a background ingestion event.

    Args:
        outcome: submitted, rejected, succeeded or failed.
        queue_depth: Pending jobs after the event.
    """
    INGESTION_JOBS_TOTAL.labels(outcome=outcome).inc()
    INGESTION_QUEUE_DEPTH.set(queue_depth)
