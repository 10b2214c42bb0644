"""Vectorization pipeline: raw tool response to stored, searchable record."""

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any

from geovec.config import Settings
from geovec.embeddings.service import EmbeddingService
from geovec.exceptions import ConfigurationError, ErrorCode, GeoVecError
from geovec.geodata.classifier import classify_payload
from geovec.geodata.extractor import extract
from geovec.geodata.models import DataType
from geovec.geodata.normalizer import normalize
from geovec.logging_config import get_logger
from geovec.observability.metrics import track_persistence_failure, track_vectorize
from geovec.vectorstore.local import LocalRecordStore
from geovec.vectorstore.models import DataRecord, SearchFilters
from geovec.vectorstore.service import DEFAULT_LIMIT, GeoVectorStore

logger = get_logger(__name__)


class GeoVectorizer:
    """Turns map-tool responses into stored records and searches them.

    The instance owns its configuration; nothing is read from global state,
    so several differently configured pipelines can live in one process.
    """

    def __init__(
        self,
        settings: Settings,
        embedding_service: EmbeddingService,
        local_store: LocalRecordStore | None = None,
        vector_store: GeoVectorStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the pipeline.

        Args:
            settings: Application settings, fixed for the pipeline's lifetime.
            embedding_service: Service that embeds normalized text.
            local_store: JSON file store (defaults to the configured storage path).
            vector_store: Remote indexed store; searching requires one.
            clock: Source of ingestion time.
        """
        self._settings = settings
        self._embedding_service = embedding_service
        self._local_store = local_store or LocalRecordStore(settings.vectorization.storage_path)
        self._vector_store = vector_store
        self._clock = clock

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def local_store(self) -> LocalRecordStore:
        return self._local_store

    @property
    def embedding_service(self) -> EmbeddingService:
        return self._embedding_service

    @property
    def vector_store(self) -> GeoVectorStore | None:
        return self._vector_store

    @property
    def is_enabled(self) -> bool:
        """Vectorization needs the enable flag, an embedding endpoint and a storage path."""
        return bool(
            self._settings.vectorization.enabled
            and self._settings.embedding.endpoint
            and self._settings.vectorization.storage_path
        )

    async def vectorize(self, source_tool: str, payload: Mapping[str, Any]) -> DataRecord:
        """Embed and persist a tool response.

        Persistence failures are logged; the record is returned regardless.

        Args:
            source_tool: Tool that produced the response.
            payload: Raw JSON object returned by the tool.

        Returns:
            The vectorized record.

        Raises:
            ConfigurationError: If vectorization is disabled.
            EmbeddingError: If the text cannot be embedded.
        """
        if not self.is_enabled:
            raise ConfigurationError(
                "Vectorization is not enabled",
                code=ErrorCode.VECTORIZATION_DISABLED,
                details={"source_tool": source_tool},
            )

        geo_payload = classify_payload(source_tool, payload)
        data_type = geo_payload.data_type
        text = normalize(geo_payload, source_tool)
        logger.info(
            f"Created text representation for {source_tool}",
            extra={"data_type": data_type.value, "text": text},
        )

        try:
            embedding = await self._embedding_service.embed(text)
        except GeoVecError:
            track_vectorize(data_type.value, success=False)
            raise

        now = self._clock()
        extracted = extract(geo_payload, now)
        record = DataRecord(
            id=extracted.id,
            data_type=data_type,
            source_tool=source_tool,
            vector=embedding.embedding,
            text=text,
            geo_info=extracted.geo_info,
            content_summary=extracted.summary,
            attributes=extracted.attributes,
            original_payload=dict(payload) if isinstance(payload, Mapping) else {},
            confidence=1.0,
            timestamp=int(now.timestamp()),
        )

        await self._persist(record)
        track_vectorize(data_type.value)
        return record

    async def _persist(self, record: DataRecord) -> None:
        try:
            path = await asyncio.to_thread(self._local_store.save, record)
            logger.info("Record saved to file", extra={"path": str(path)})
        except GeoVecError as e:
            track_persistence_failure("local")
            logger.warning(
                f"Failed to save record file: {e.message}",
                extra={"id": record.id, "error_code": e.code.value},
            )

        if self._vector_store is None:
            return

        try:
            await self._vector_store.store(record)
        except GeoVecError as e:
            track_persistence_failure("vector_store")
            logger.warning(
                f"Failed to store record in vector store: {e.message}",
                extra={"id": record.id, "error_code": e.code.value},
            )

    async def search_similar(
        self,
        query_text: str,
        data_type: DataType | str,
        limit: int = DEFAULT_LIMIT,
    ) -> list[DataRecord]:
        """Find records of one data type similar to a free-text query.

        Raises:
            ConfigurationError: If no vector store is configured.
            EmbeddingError: If the query cannot be embedded.
            VectorStoreError: If the search fails.
        """
        store = self._require_vector_store()
        embedding = await self._embedding_service.embed(query_text)
        return await store.search(embedding.embedding, data_type, limit)

    async def search_similar_filtered(
        self,
        query_text: str,
        data_type: DataType | str | None,
        filters: SearchFilters | Mapping[str, Any] | None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[DataRecord]:
        """Like ``search_similar`` with attribute predicates.

        An empty ``data_type`` searches every data type.
        """
        store = self._require_vector_store()
        embedding = await self._embedding_service.embed(query_text)
        return await store.filtered_search(embedding.embedding, data_type, filters, limit)

    async def process_batch(
        self,
        source_tool: str,
        items: Sequence[Mapping[str, Any]],
    ) -> list[DataRecord]:
        """Vectorize several responses of one tool, isolating failures per item.

        Returns:
            The records that were vectorized; failed items are logged and skipped.
        """
        if not self.is_enabled:
            logger.info("Vectorization disabled, skipping batch")
            return []

        logger.info(f"Starting batch of {len(items)} items for {source_tool}")
        records: list[DataRecord] = []
        for position, item in enumerate(items, start=1):
            try:
                record = await self.vectorize(source_tool, item)
            except GeoVecError as e:
                logger.warning(
                    f"Failed to vectorize item {position}: {e.message}",
                    extra={"source_tool": source_tool, "error_code": e.code.value},
                )
                continue
            logger.debug(
                f"Vectorized item {position}",
                extra={"data_type": record.data_type.value, "id": record.id},
            )
            records.append(record)

        logger.info(
            f"Finished batch for {source_tool}",
            extra={"items": len(items), "vectorized": len(records)},
        )
        return records

    def _require_vector_store(self) -> GeoVectorStore:
        if self._vector_store is None:
            raise ConfigurationError("No vector store configured for search")
        return self._vector_store
