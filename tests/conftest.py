"""Pytest configuration and shared fixtures."""

import hashlib
import math
from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from geovec.api.app import app
from geovec.config import (
    EmbeddingSettings,
    QdrantSettings,
    Settings,
    VectorizationSettings,
)
from geovec.embeddings.models import EmbeddingResult
from geovec.embeddings.service import EmbeddingService
from geovec.pipeline.vectorizer import GeoVectorizer
from geovec.vectorstore.service import QdrantGeoStore

DIMENSIONS = 8
FIXED_NOW = datetime(2025, 6, 1, 9, 30, 0)


def vector_for(text: str, dimensions: int = DIMENSIONS) -> list[float]:
    """Hash each token into a bucket; equal texts give equal unit vectors."""
    vector = [0.0] * dimensions
    for token in text.lower().split():
        digest = hashlib.sha256(token.encode("utf-8")).digest()
        vector[digest[0] % dimensions] += 1.0
    norm = math.sqrt(sum(v * v for v in vector)) or 1.0
    return [v / norm for v in vector]


def unit(index: int, dimensions: int = DIMENSIONS) -> list[float]:
    """Basis vector along ``index``."""
    vector = [0.0] * dimensions
    vector[index] = 1.0
    return vector


class FakeEmbeddingService(EmbeddingService):
    """Deterministic in-process embedding service."""

    def __init__(self, dimensions: int = DIMENSIONS) -> None:
        self._dimensions = dimensions
        self.calls: list[str] = []

    async def embed(self, text: str) -> EmbeddingResult:
        return (await self.embed_batch([text]))[0]

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        self.calls.extend(texts)
        return [
            EmbeddingResult(
                text=text,
                embedding=vector_for(text, self._dimensions),
                model=self.model_name,
                dimensions=self._dimensions,
            )
            for text in texts
        ]

    @property
    def model_name(self) -> str:
        return "fake-embedding"

    @property
    def dimensions(self) -> int:
        return self._dimensions


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with vectorization enabled and an in-process vector store."""
    return Settings(
        vectorization=VectorizationSettings(
            enabled=True,
            storage_path=str(tmp_path / "records"),
        ),
        embedding=EmbeddingSettings(endpoint="http://embedding.test/v1/embeddings"),
        qdrant=QdrantSettings(url=":memory:", vector_dimension=DIMENSIONS),
    )


@pytest.fixture
def embedding_service() -> FakeEmbeddingService:
    return FakeEmbeddingService()


@pytest.fixture
async def geo_store(settings: Settings) -> AsyncGenerator[QdrantGeoStore, None]:
    """QdrantGeoStore backed by an in-process Qdrant."""
    store = QdrantGeoStore(settings.qdrant)
    yield store
    await store.close()


@pytest.fixture
def vectorizer(
    settings: Settings,
    embedding_service: FakeEmbeddingService,
    geo_store: QdrantGeoStore,
) -> GeoVectorizer:
    return GeoVectorizer(
        settings,
        embedding_service,
        vector_store=geo_store,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def poi_payload() -> dict[str, Any]:
    return {
        "city": "Beijing",
        "pois": [
            {
                "id": "B000A7BD6C",
                "name": "Tiananmen",
                "address": "Dongcheng District",
                "type": "scenic spot",
                "typecode": "110202",
                "tel": "",
            },
            {"id": "B0FFG4XKJ3", "name": "Forbidden City", "address": "4 Jingshan Front St"},
        ],
    }


@pytest.fixture
def weather_payload() -> dict[str, Any]:
    return {
        "city": "Beijing",
        "forecasts": [
            {
                "date": "2025-06-01",
                "dayweather": "Sunny",
                "nightweather": "Cloudy",
                "daytemp": "30",
                "nighttemp": "18",
            }
        ],
    }


@pytest.fixture
def route_payload() -> dict[str, Any]:
    return {
        "origin": "116.397,39.909",
        "destination": "116.403,39.924",
        "paths": [{"distance": "2100", "duration": "600", "steps": [{}, {}, {}]}],
    }
