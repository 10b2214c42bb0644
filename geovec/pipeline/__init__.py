"""Vectorization pipeline and background ingestion."""

from geovec.pipeline.factory import build_pipeline, build_retriever
from geovec.pipeline.ingestion import IngestionJob, IngestionQueue
from geovec.pipeline.vectorizer import GeoVectorizer

__all__ = [
    "GeoVectorizer",
    "IngestionJob",
    "IngestionQueue",
    "build_pipeline",
    "build_retriever",
]
