"""Retriever interface and implementations."""

from abc import ABC, abstractmethod
from typing import Any

from geovec.embeddings.service import EmbeddingService
from geovec.exceptions import ErrorCode, GeoVecError, RetrievalError
from geovec.geodata.models import DataType
from geovec.logging_config import get_logger
from geovec.observability.metrics import track_retrieval_request
from geovec.retrieval.models import RetrievalResult
from geovec.vectorstore.models import DataRecord
from geovec.vectorstore.service import GeoVectorStore, QdrantGeoStore

logger = get_logger(__name__)

KNOWLEDGE_SOURCE = "knowledge_base"
GEO_SOURCE = "geo_data"


class Retriever(ABC):
    """Abstract base class for retrievers.

    Defines the interface for retrieving relevant documents.
    """

    @abstractmethod
    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """Retrieve relevant documents for a query.

        Args:
            query: The search query.
            top_k: Maximum number of results to return.
            filters: Optional metadata filters.

        Returns:
            List of retrieval results ordered by relevance.

        Raises:
            RetrievalError: If retrieval fails.
        """
        ...


class SemanticRetriever(Retriever):
    """General-purpose retriever over a knowledge collection.

    Embeds the query and finds similar vectors in the collection.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: QdrantGeoStore,
        collection: str,
        score_threshold: float = 0.0,
    ) -> None:
        """Initialize the semantic retriever.

        Args:
            embedding_service: Service for generating embeddings.
            vector_store: Store used to query the collection.
            collection: Name of the collection to search.
            score_threshold: Minimum score to include in results.
        """
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._collection = collection
        self._score_threshold = score_threshold

    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """Retrieve documents using semantic similarity."""
        if not query.strip():
            return []

        try:
            embedding_result = await self._embedding_service.embed(query)
            search_results = await self._vector_store.query_collection(
                collection=self._collection,
                vector=embedding_result.embedding,
                limit=top_k,
                filters=filters,
            )
        except Exception as e:
            logger.error(f"Retrieval failed: {e}")
            raise RetrievalError(
                f"Failed to retrieve documents: {e}",
                code=ErrorCode.RETRIEVAL_ERROR,
                details={"query": query[:100], "error": str(e)},
            ) from e

        results = [
            RetrievalResult(
                id=sr.id,
                content=sr.payload.get("content", ""),
                score=sr.score,
                source=KNOWLEDGE_SOURCE,
                metadata=sr.payload,
            )
            for sr in search_results
            if sr.score >= self._score_threshold
        ]

        track_retrieval_request(
            KNOWLEDGE_SOURCE,
            len(results),
            results[0].score if results else 0.0,
        )
        logger.debug(
            f"Retrieved {len(results)} results for query",
            extra={"query_length": len(query), "top_k": top_k},
        )
        return results


class GeoDataRetriever(Retriever):
    """Domain retriever over vectorized map data.

    Searches one data type's index, or every index when no type is given.
    ``filters`` accepts the keys ``geo_info``, ``source_tool`` and
    ``min_confidence``.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: GeoVectorStore,
        data_type: DataType | None = None,
    ) -> None:
        self._embedding_service = embedding_service
        self._vector_store = vector_store
        self._data_type = data_type

    async def retrieve(
        self,
        query: str,
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """Retrieve vectorized map records similar to the query."""
        if not query.strip():
            return []

        try:
            embedding_result = await self._embedding_service.embed(query)
            records = await self._vector_store.filtered_search(
                embedding_result.embedding,
                self._data_type,
                filters,
                top_k,
            )
        except GeoVecError as e:
            logger.error(f"Geo retrieval failed: {e.message}")
            raise RetrievalError(
                f"Failed to retrieve map data: {e.message}",
                details={"query": query[:100], "cause": e.code.value},
            ) from e

        results = [record_to_result(record) for record in records]
        track_retrieval_request(
            GEO_SOURCE,
            len(results),
            results[0].score if results else 0.0,
        )
        return results


def record_to_result(record: DataRecord) -> RetrievalResult:
    """Present a stored record as a retrieval result."""
    return RetrievalResult(
        id=record.id,
        content=record.content_summary or record.text,
        score=record.score or 0.0,
        source=GEO_SOURCE,
        metadata={
            "data_type": record.data_type.value,
            "source_tool": record.source_tool,
            "geo_info": record.geo_info,
            "timestamp": record.timestamp,
            "text": record.text,
            "attributes": record.attributes,
            "original_payload": record.original_payload,
        },
    )
