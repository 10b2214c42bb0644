"""Embedding service interface and HTTP implementation."""

import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from geovec.config import EmbeddingSettings
from geovec.embeddings.models import EmbeddingResult
from geovec.exceptions import ConfigurationError, EmbeddingError, ErrorCode
from geovec.logging_config import get_logger
from geovec.observability.metrics import track_embedding_request

logger = get_logger(__name__)


class EmbeddingService(ABC):
    """Abstract base class for embedding services.

    Defines the interface for generating text embeddings.
    """

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            EmbeddingResult with vector.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts.

        Args:
            texts: List of texts to embed.

        Returns:
            List of EmbeddingResult objects.

        Raises:
            EmbeddingError: If embedding fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Get the embedding dimensions."""
        ...


class HTTPEmbeddingService(EmbeddingService):
    """Embedding service using an HTTP API.

    Posts ``{"input": [...], "model": ...}`` to the configured endpoint.
    Understands OpenAI-style responses (``data`` is a list of objects with an
    ``embedding``) and the flat form where ``data`` is a single vector.
    Failures are surfaced once; there is no retry at this layer.
    """

    MODEL_DIMENSIONS = {
        "text-embedding-ada-002": 1536,
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "doubao-embedding-large": 2048,
        "BAAI/bge-large-zh-v1.5": 1024,
    }

    DEFAULT_DIMENSIONS = 1536

    def __init__(
        self,
        settings: EmbeddingSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP embedding service.

        Args:
            settings: Embedding configuration.
            client: HTTP client. Creates new one if not provided.
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._dimensions: int | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    @property
    def dimensions(self) -> int:
        """Get embedding dimensions, learned from the first response if possible."""
        if self._dimensions is not None:
            return self._dimensions
        return self.MODEL_DIMENSIONS.get(self._settings.model, self.DEFAULT_DIMENSIONS)

    def _endpoint(self) -> str:
        if not self._settings.endpoint:
            raise ConfigurationError(
                "Embedding endpoint is not configured",
                details={"setting": "EMBEDDING_ENDPOINT"},
            )
        return self._settings.endpoint

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.api_key is not None:
            token = self._settings.api_key.get_secret_value()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text."""
        results = await self.embed_batch([text])
        if not results:
            raise EmbeddingError(
                "Embedding service returned no vectors",
                details={"text_length": len(text)},
            )
        return results[0]

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts, in configured batch sizes."""
        if not texts:
            return []

        url = self._endpoint()
        client = await self._get_client()

        all_results: list[EmbeddingResult] = []
        batch_size = self._settings.batch_size

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            start = time.perf_counter()
            try:
                batch_results = await self._embed_batch_request(client, url, batch)
            except EmbeddingError:
                track_embedding_request(
                    self.model_name, time.perf_counter() - start, len(batch), success=False
                )
                raise
            track_embedding_request(self.model_name, time.perf_counter() - start, len(batch))
            all_results.extend(batch_results)

        return all_results

    async def _embed_batch_request(
        self,
        client: httpx.AsyncClient,
        url: str,
        texts: list[str],
    ) -> list[EmbeddingResult]:
        """Make embedding request for a batch.

        Raises:
            EmbeddingError: If the request fails or the response is malformed.
        """
        payload = {
            "input": texts,
            "model": self._settings.model,
        }

        try:
            response = await client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Embedding request failed: {e.response.status_code}",
                extra={"url": url, "status": e.response.status_code},
            )
            raise EmbeddingError(
                f"Embedding service returned {e.response.status_code}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Embedding request error: {e}", extra={"url": url})
            raise EmbeddingError(
                f"Failed to connect to embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"url": url},
            ) from e

        try:
            vectors = self._parse_vectors(response.json())
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError(
                f"Invalid response from embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}",
                details={"expected": len(texts), "received": len(vectors)},
            )

        results: list[EmbeddingResult] = []
        for text, embedding in zip(texts, vectors, strict=True):
            if not embedding:
                raise EmbeddingError("Embedding service returned an empty vector")
            if self._dimensions is None:
                self._dimensions = len(embedding)
            results.append(
                EmbeddingResult(
                    text=text,
                    embedding=embedding,
                    model=self._settings.model,
                )
            )
        return results

    @staticmethod
    def _parse_vectors(data: dict[str, Any]) -> list[list[float]]:
        items = data["data"]
        if not isinstance(items, list):
            raise ValueError("'data' is not a list")
        if items and all(isinstance(v, (int, float)) for v in items):
            return [[float(v) for v in items]]
        return [[float(v) for v in item["embedding"]] for item in items]
