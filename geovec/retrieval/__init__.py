"""Retrieval module."""

from geovec.retrieval.fusion import (
    MultiQueryFusionRetriever,
    build_fusion_retriever,
    fuse_results,
    rewrite_queries,
)
from geovec.retrieval.models import RetrievalResult
from geovec.retrieval.retriever import (
    GeoDataRetriever,
    Retriever,
    SemanticRetriever,
    record_to_result,
)

__all__ = [
    "GeoDataRetriever",
    "MultiQueryFusionRetriever",
    "RetrievalResult",
    "Retriever",
    "SemanticRetriever",
    "build_fusion_retriever",
    "fuse_results",
    "record_to_result",
    "rewrite_queries",
]
