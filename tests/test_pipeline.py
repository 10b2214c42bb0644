"""Tests for the vectorization pipeline."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from geovec.config import EmbeddingSettings, Settings, VectorizationSettings
from geovec.embeddings.models import EmbeddingResult
from geovec.exceptions import (
    ConfigurationError,
    EmbeddingError,
    ErrorCode,
    ValidationError,
    VectorStoreError,
)
from geovec.geodata.models import DataType
from geovec.pipeline.vectorizer import GeoVectorizer
from geovec.vectorstore.local import LocalRecordStore
from geovec.vectorstore.service import QdrantGeoStore
from tests.conftest import FIXED_NOW, FakeEmbeddingService


class FailingEmbeddingService(FakeEmbeddingService):
    """Fails for any text mentioning the marker."""

    MARKER = "Broken"

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        if any(self.MARKER in text for text in texts):
            raise EmbeddingError("embedding endpoint returned 500")
        return await super().embed_batch(texts)


class TestIsEnabled:
    def test_enabled(self, vectorizer: GeoVectorizer) -> None:
        assert vectorizer.is_enabled is True

    def test_flag_off(self, embedding_service: FakeEmbeddingService) -> None:
        settings = Settings(
            vectorization=VectorizationSettings(enabled=False),
            embedding=EmbeddingSettings(endpoint="http://embedding.test"),
        )
        assert GeoVectorizer(settings, embedding_service).is_enabled is False

    def test_missing_endpoint(self, embedding_service: FakeEmbeddingService) -> None:
        settings = Settings(vectorization=VectorizationSettings(enabled=True))
        assert GeoVectorizer(settings, embedding_service).is_enabled is False

    def test_empty_storage_path(self, embedding_service: FakeEmbeddingService) -> None:
        settings = Settings(
            vectorization=VectorizationSettings(enabled=True, storage_path=""),
            embedding=EmbeddingSettings(endpoint="http://embedding.test"),
        )
        assert GeoVectorizer(settings, embedding_service).is_enabled is False


class TestVectorize:
    async def test_poi_record(
        self,
        vectorizer: GeoVectorizer,
        embedding_service: FakeEmbeddingService,
        poi_payload: dict,
    ) -> None:
        record = await vectorizer.vectorize("maps_text_search", poi_payload)

        assert record.id == "poi_B000A7BD6C"
        assert record.data_type == DataType.POI
        assert record.source_tool == "maps_text_search"
        assert record.geo_info == "Beijing"
        assert record.content_summary == "2 POI results"
        assert record.attributes["name"] == "Tiananmen"
        assert record.original_payload == poi_payload
        assert record.confidence == 1.0
        assert record.timestamp == int(FIXED_NOW.timestamp())
        assert record.text.startswith("data type: poi. tool: maps_text_search")
        assert embedding_service.calls == [record.text]
        assert len(record.vector) == embedding_service.dimensions

    async def test_persists_to_both_stores(
        self,
        vectorizer: GeoVectorizer,
        geo_store: QdrantGeoStore,
        poi_payload: dict,
    ) -> None:
        record = await vectorizer.vectorize("maps_text_search", poi_payload)

        assert vectorizer.local_store.load(DataType.POI, record.id) == record
        assert await geo_store.count(DataType.POI) == 1

    async def test_disabled(self, settings: Settings, poi_payload: dict) -> None:
        embedding_service = FakeEmbeddingService()
        disabled = settings.model_copy(
            update={"vectorization": VectorizationSettings(enabled=False)}
        )
        vectorizer = GeoVectorizer(disabled, embedding_service)

        with pytest.raises(ConfigurationError) as exc_info:
            await vectorizer.vectorize("maps_text_search", poi_payload)

        assert exc_info.value.code == ErrorCode.VECTORIZATION_DISABLED
        assert embedding_service.calls == []

    async def test_embedding_failure_propagates(self, settings: Settings) -> None:
        vectorizer = GeoVectorizer(settings, FailingEmbeddingService())

        with pytest.raises(EmbeddingError):
            await vectorizer.vectorize("maps_weather", {"city": "Broken"})

    async def test_unknown_tool(self, vectorizer: GeoVectorizer) -> None:
        record = await vectorizer.vectorize("maps_static_map", {"url": "http://x"})

        assert record.data_type == DataType.UNKNOWN
        assert record.text == "data type: unknown. tool: maps_static_map"
        assert record.content_summary == "map data"
        assert record.id.startswith("unknown_")

    async def test_weather_same_day_is_one_record(
        self,
        vectorizer: GeoVectorizer,
        geo_store: QdrantGeoStore,
        weather_payload: dict,
    ) -> None:
        """Repeated same-day weather for a city overwrites a single record."""
        first = await vectorizer.vectorize("maps_weather", weather_payload)
        second = await vectorizer.vectorize("maps_weather", weather_payload)

        assert first.id == second.id == "weather_Beijing_20250601"
        assert await geo_store.count(DataType.WEATHER) == 1
        assert vectorizer.local_store.list_ids(DataType.WEATHER) == ["weather_Beijing_20250601"]

    async def test_vector_store_failure_is_not_fatal(
        self,
        settings: Settings,
        embedding_service: FakeEmbeddingService,
        poi_payload: dict,
    ) -> None:
        vector_store = AsyncMock()
        vector_store.store = AsyncMock(side_effect=VectorStoreError("connection reset"))
        vectorizer = GeoVectorizer(settings, embedding_service, vector_store=vector_store)

        record = await vectorizer.vectorize("maps_text_search", poi_payload)

        assert record.id == "poi_B000A7BD6C"
        vector_store.store.assert_awaited_once()
        assert vectorizer.local_store.list_ids(DataType.POI) == ["poi_B000A7BD6C"]

    async def test_file_failure_is_not_fatal(
        self,
        settings: Settings,
        embedding_service: FakeEmbeddingService,
        geo_store: QdrantGeoStore,
        tmp_path: Path,
        poi_payload: dict,
    ) -> None:
        blocker = tmp_path / "not_a_directory"
        blocker.write_text("", encoding="utf-8")
        vectorizer = GeoVectorizer(
            settings,
            embedding_service,
            local_store=LocalRecordStore(blocker),
            vector_store=geo_store,
        )

        record = await vectorizer.vectorize("maps_text_search", poi_payload)

        assert record.id == "poi_B000A7BD6C"
        assert await geo_store.count(DataType.POI) == 1


class TestSearch:
    async def test_round_trip(self, vectorizer: GeoVectorizer, route_payload: dict) -> None:
        """Searching with a record's own text returns that record first."""
        record = await vectorizer.vectorize("maps_direction_driving", route_payload)
        await vectorizer.vectorize(
            "maps_direction_driving",
            {"origin": "121.47,31.23", "destination": "121.50,31.24"},
        )

        results = await vectorizer.search_similar(record.text, DataType.ROUTE, 5)

        assert results[0].id == record.id
        assert results[0].score == pytest.approx(1.0)

    async def test_filtered(
        self,
        vectorizer: GeoVectorizer,
        weather_payload: dict,
    ) -> None:
        await vectorizer.vectorize("maps_weather", weather_payload)
        await vectorizer.vectorize("maps_weather", {**weather_payload, "city": "Shanghai"})

        results = await vectorizer.search_similar_filtered(
            "weather",
            DataType.WEATHER,
            {"geo_info": "Shanghai"},
        )

        assert [r.id for r in results] == ["weather_Shanghai_20250601"]

    async def test_filtered_all_types(
        self,
        vectorizer: GeoVectorizer,
        poi_payload: dict,
        weather_payload: dict,
    ) -> None:
        await vectorizer.vectorize("maps_text_search", poi_payload)
        await vectorizer.vectorize("maps_weather", weather_payload)

        results = await vectorizer.search_similar_filtered("Beijing", None, {"geo_info": "Beijing"})

        assert {r.data_type for r in results} == {DataType.POI, DataType.WEATHER}

    async def test_filtered_poi_by_city(self, vectorizer: GeoVectorizer) -> None:
        """Two Beijing POIs and one Shanghai POI: the Beijing filter returns both Beijing ones."""
        for poi_id, city, name in [
            ("B001", "Beijing", "Temple of Heaven"),
            ("B002", "Beijing", "Summer Palace"),
            ("B003", "Shanghai", "The Bund"),
        ]:
            await vectorizer.vectorize(
                "maps_text_search",
                {"city": city, "pois": [{"id": poi_id, "name": name}]},
            )

        results = await vectorizer.search_similar_filtered(
            "park", "poi", {"geo_info": "Beijing"}, 5
        )

        assert {r.id for r in results} == {"poi_B001", "poi_B002"}
        assert all(r.geo_info == "Beijing" for r in results)

    async def test_filtered_rejects_unknown_key(self, vectorizer: GeoVectorizer) -> None:
        with pytest.raises(ValidationError):
            await vectorizer.search_similar_filtered("coffee", DataType.POI, {"city": "Beijing"})

    async def test_requires_vector_store(
        self,
        settings: Settings,
        embedding_service: FakeEmbeddingService,
    ) -> None:
        vectorizer = GeoVectorizer(settings, embedding_service)

        with pytest.raises(ConfigurationError):
            await vectorizer.search_similar("coffee", DataType.POI)


class TestProcessBatch:
    async def test_failures_are_isolated(
        self,
        settings: Settings,
        geo_store: QdrantGeoStore,
        weather_payload: dict,
    ) -> None:
        vectorizer = GeoVectorizer(
            settings,
            FailingEmbeddingService(),
            vector_store=geo_store,
            clock=lambda: FIXED_NOW,
        )
        items = [
            weather_payload,
            {"city": "Broken"},
            {**weather_payload, "city": "Chengdu"},
        ]

        records = await vectorizer.process_batch("maps_weather", items)

        assert [r.id for r in records] == [
            "weather_Beijing_20250601",
            "weather_Chengdu_20250601",
        ]

    async def test_disabled_returns_empty(
        self,
        embedding_service: FakeEmbeddingService,
        weather_payload: dict,
    ) -> None:
        vectorizer = GeoVectorizer(Settings(), embedding_service)

        assert await vectorizer.process_batch("maps_weather", [weather_payload]) == []
        assert embedding_service.calls == []

    async def test_empty_batch(self, vectorizer: GeoVectorizer) -> None:
        assert await vectorizer.process_batch("maps_weather", []) == []
