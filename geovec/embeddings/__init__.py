"""Embedding service module."""

from geovec.embeddings.models import EmbeddingResult
from geovec.embeddings.service import EmbeddingService, HTTPEmbeddingService

__all__ = [
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
]
