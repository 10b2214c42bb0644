"""Observability module for metrics and monitoring."""

from geovec.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
    track_embedding_request,
    track_fusion,
    track_ingestion_job,
    track_persistence_failure,
    track_retrieval_request,
    track_vectorize,
    track_vectorstore_operation,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "get_metrics_content_type",
    "track_embedding_request",
    "track_fusion",
    "track_ingestion_job",
    "track_persistence_failure",
    "track_retrieval_request",
    "track_vectorize",
    "track_vectorstore_operation",
]
