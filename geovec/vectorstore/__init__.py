"""Vector store module."""

from geovec.vectorstore.local import LocalRecordStore
from geovec.vectorstore.models import DataRecord, SearchFilters, SearchResult
from geovec.vectorstore.service import GeoVectorStore, QdrantGeoStore

__all__ = [
    "DataRecord",
    "GeoVectorStore",
    "LocalRecordStore",
    "QdrantGeoStore",
    "SearchFilters",
    "SearchResult",
]
