"""Tests for retrieval module."""

from unittest.mock import AsyncMock

import pytest

from geovec.embeddings.models import EmbeddingResult
from geovec.exceptions import RetrievalError, VectorStoreError
from geovec.geodata.models import DataType
from geovec.retrieval.models import RetrievalResult
from geovec.retrieval.retriever import GeoDataRetriever, SemanticRetriever, record_to_result
from geovec.vectorstore.models import SearchResult
from geovec.vectorstore.service import QdrantGeoStore
from tests.conftest import DIMENSIONS, unit
from tests.test_vectorstore import make_record


def _create_mock_embedding_service(vector: list[float] | None = None) -> AsyncMock:
    """Create mock embedding service."""
    embedding = vector or [0.1, 0.2, 0.3]
    service = AsyncMock()
    service.embed = AsyncMock(
        return_value=EmbeddingResult(
            text="test query",
            embedding=embedding,
            model="test-model",
            dimensions=len(embedding),
        )
    )
    return service


class TestRetrievalResult:
    """Tests for RetrievalResult model."""

    def test_create_result(self) -> None:
        result = RetrievalResult(id="1", content="Hello world", score=0.95, source="doc.txt")
        assert result.content == "Hello world"
        assert result.metadata == {}


class TestSemanticRetriever:
    """Tests for SemanticRetriever."""

    def _create_mock_vector_store(self) -> AsyncMock:
        store = AsyncMock()
        store.query_collection = AsyncMock(return_value=[])
        return store

    async def test_retrieve_empty_query(self) -> None:
        """Empty query returns empty results."""
        embedding_service = _create_mock_embedding_service()
        retriever = SemanticRetriever(
            embedding_service=embedding_service,
            vector_store=self._create_mock_vector_store(),
            collection="knowledge_base",
        )

        assert await retriever.retrieve("  ") == []
        embedding_service.embed.assert_not_called()

    async def test_retrieve_searches_collection(self) -> None:
        """Retriever searches the collection with the embedded query."""
        vector_store = self._create_mock_vector_store()
        retriever = SemanticRetriever(
            embedding_service=_create_mock_embedding_service(),
            vector_store=vector_store,
            collection="knowledge_base",
        )

        await retriever.retrieve("test query", top_k=10, filters={"lang": "en"})

        call_kwargs = vector_store.query_collection.call_args.kwargs
        assert call_kwargs["collection"] == "knowledge_base"
        assert call_kwargs["vector"] == [0.1, 0.2, 0.3]
        assert call_kwargs["limit"] == 10
        assert call_kwargs["filters"] == {"lang": "en"}

    async def test_retrieve_returns_results(self) -> None:
        vector_store = self._create_mock_vector_store()
        vector_store.query_collection = AsyncMock(
            return_value=[
                SearchResult(id="1", score=0.95, payload={"content": "Hello world"}),
                SearchResult(id="2", score=0.85, payload={}),
            ]
        )
        retriever = SemanticRetriever(
            embedding_service=_create_mock_embedding_service(),
            vector_store=vector_store,
            collection="knowledge_base",
        )

        results = await retriever.retrieve("test query")

        assert [r.id for r in results] == ["1", "2"]
        assert results[0].content == "Hello world"
        assert results[0].source == "knowledge_base"
        assert results[1].content == ""

    async def test_retrieve_with_score_threshold(self) -> None:
        vector_store = self._create_mock_vector_store()
        vector_store.query_collection = AsyncMock(
            return_value=[
                SearchResult(id="1", score=0.95, payload={"content": "High"}),
                SearchResult(id="2", score=0.5, payload={"content": "Low"}),
            ]
        )
        retriever = SemanticRetriever(
            embedding_service=_create_mock_embedding_service(),
            vector_store=vector_store,
            collection="knowledge_base",
            score_threshold=0.7,
        )

        results = await retriever.retrieve("test query")

        assert [r.content for r in results] == ["High"]

    async def test_retrieve_error(self) -> None:
        vector_store = self._create_mock_vector_store()
        vector_store.query_collection = AsyncMock(side_effect=VectorStoreError("down"))
        retriever = SemanticRetriever(
            embedding_service=_create_mock_embedding_service(),
            vector_store=vector_store,
            collection="knowledge_base",
        )

        with pytest.raises(RetrievalError):
            await retriever.retrieve("test query")


class TestGeoDataRetriever:
    """Tests for GeoDataRetriever."""

    async def test_retrieves_records(self, geo_store: QdrantGeoStore) -> None:
        await geo_store.store(make_record("poi_1", vector=unit(0), content_summary="POI: Park"))
        await geo_store.store(make_record("poi_2", vector=unit(1)))
        retriever = GeoDataRetriever(
            _create_mock_embedding_service(unit(0)),
            geo_store,
            DataType.POI,
        )

        results = await retriever.retrieve("park nearby", top_k=1)

        assert len(results) == 1
        assert results[0].id == "poi_1"
        assert results[0].content == "POI: Park"
        assert results[0].source == "geo_data"
        assert results[0].metadata["data_type"] == "poi"

    async def test_all_types_with_filters(self, geo_store: QdrantGeoStore) -> None:
        await geo_store.store(make_record("poi_1", DataType.POI, unit(0), geo_info="Xi'an"))
        await geo_store.store(make_record("weather_1", DataType.WEATHER, unit(0), geo_info="Xi'an"))
        await geo_store.store(
            make_record("weather_2", DataType.WEATHER, unit(0), geo_info="Lanzhou")
        )
        retriever = GeoDataRetriever(_create_mock_embedding_service(unit(0)), geo_store)

        results = await retriever.retrieve("weather", top_k=5, filters={"geo_info": "Xi'an"})

        assert {r.id for r in results} == {"poi_1", "weather_1"}

    async def test_empty_query(self) -> None:
        embedding_service = _create_mock_embedding_service()
        retriever = GeoDataRetriever(embedding_service, AsyncMock())

        assert await retriever.retrieve("") == []
        embedding_service.embed.assert_not_called()

    async def test_store_failure_wrapped(self) -> None:
        vector_store = AsyncMock()
        vector_store.filtered_search = AsyncMock(side_effect=VectorStoreError("down"))
        retriever = GeoDataRetriever(_create_mock_embedding_service(), vector_store)

        with pytest.raises(RetrievalError):
            await retriever.retrieve("coffee")

    @pytest.mark.parametrize(
        "filters",
        [
            {"min_confidence": 5},
            {"geo_info": 42},
            {"tool_name": "nope", "city": "Beijing"},
        ],
    )
    async def test_invalid_filters_wrapped(
        self, geo_store: QdrantGeoStore, filters: dict
    ) -> None:
        await geo_store.store(make_record("poi_1", vector=unit(0)))
        retriever = GeoDataRetriever(_create_mock_embedding_service(unit(0)), geo_store)

        with pytest.raises(RetrievalError) as exc_info:
            await retriever.retrieve("coffee", filters=filters)

        assert exc_info.value.details["cause"] == "GEO-1002"


class TestRecordToResult:
    def test_falls_back_to_text(self) -> None:
        record = make_record("x", vector=[0.0] * DIMENSIONS, content_summary="", score=0.4)
        result = record_to_result(record)
        assert result.content == record.text
        assert result.score == 0.4
