"""Vector store interface and Qdrant implementation.

Records are partitioned by data type: each type has its own collection
(``<prefix>_<data_type>``) and each record is addressed by the composite key
``<prefix>:<data_type>:<id>``.
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any
from uuid import NAMESPACE_URL, uuid5

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    Range,
    ScoredPoint,
    VectorParams,
)

from geovec.config import QdrantSettings
from geovec.exceptions import ErrorCode, ValidationError, VectorStoreError
from geovec.geodata.models import DataType
from geovec.logging_config import get_logger
from geovec.observability.metrics import track_vectorstore_operation
from geovec.vectorstore.models import DataRecord, SearchFilters, SearchResult

logger = get_logger(__name__)

DEFAULT_LIMIT = 10

DISTANCE_METRICS = {
    "cosine": Distance.COSINE,
    "l2": Distance.EUCLID,
    "ip": Distance.DOT,
}

PAYLOAD_INDEXES = {
    "data_type": PayloadSchemaType.KEYWORD,
    "source_tool": PayloadSchemaType.KEYWORD,
    "geo_info": PayloadSchemaType.KEYWORD,
    "confidence": PayloadSchemaType.FLOAT,
    "timestamp": PayloadSchemaType.INTEGER,
}


class GeoVectorStore(ABC):
    """Abstract base class for per-data-type record stores."""

    @abstractmethod
    async def ensure_index(self, data_type: DataType) -> None:
        """Create the index for a data type if it does not exist.

        Raises:
            VectorStoreError: If the index cannot be checked or created.
        """
        ...

    @abstractmethod
    async def store(self, record: DataRecord) -> None:
        """Insert or overwrite a record.

        Raises:
            VectorStoreError: If the write fails or the vector has the wrong size.
        """
        ...

    @abstractmethod
    async def search(
        self,
        vector: list[float],
        data_type: DataType | str,
        limit: int = DEFAULT_LIMIT,
    ) -> list[DataRecord]:
        """Nearest neighbours within one data type, most similar first."""
        ...

    @abstractmethod
    async def filtered_search(
        self,
        vector: list[float],
        data_type: DataType | str | None,
        filters: SearchFilters | Mapping[str, Any] | None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[DataRecord]:
        """Nearest neighbours restricted by attribute predicates.

        An empty ``data_type`` searches across every data type.
        """
        ...


class QdrantGeoStore(GeoVectorStore):
    """Qdrant-backed record store."""

    def __init__(
        self,
        settings: QdrantSettings,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._distance = DISTANCE_METRICS[settings.distance_metric]
        self._known_indices: set[str] = set()
        self._index_locks: dict[str, asyncio.Lock] = {}

    @classmethod
    async def connect(
        cls,
        settings: QdrantSettings,
        client: AsyncQdrantClient | None = None,
    ) -> "QdrantGeoStore":
        """Create a store and verify the server answers.

        Raises:
            VectorStoreError: If the server cannot be reached.
        """
        store = cls(settings, client)
        qdrant = await store._get_client()
        try:
            await qdrant.get_collections()
        except Exception as e:
            await store.close()
            raise VectorStoreError(
                f"Failed to connect to Qdrant: {e}",
                code=ErrorCode.CONNECTION_ERROR,
                details={"url": settings.url, "error": str(e)},
            ) from e
        logger.info("Connected to Qdrant", extra={"url": settings.url})
        return store

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            if self._settings.url == ":memory:":
                self._client = AsyncQdrantClient(location=":memory:")
            else:
                api_key = None
                if self._settings.api_key:
                    api_key = self._settings.api_key.get_secret_value()
                self._client = AsyncQdrantClient(url=self._settings.url, api_key=api_key)
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    def index_name(self, data_type: DataType | str) -> str:
        return f"{self._settings.index_prefix}_{DataType(data_type).value}"

    def record_key(self, data_type: DataType | str, record_id: str) -> str:
        return f"{self._settings.index_prefix}:{DataType(data_type).value}:{record_id}"

    def point_id(self, data_type: DataType | str, record_id: str) -> str:
        """Deterministic point id for a record key; equal keys overwrite."""
        return str(uuid5(NAMESPACE_URL, self.record_key(data_type, record_id)))

    def forget_index(self, data_type: DataType | str) -> None:
        """Drop the cached existence of an index so the next call re-checks it."""
        self._known_indices.discard(self.index_name(data_type))

    async def ensure_index(self, data_type: DataType) -> None:
        """Create the data type's collection and payload indexes if absent.

        Payload indexes are (re)applied on every uncached check, so an index
        left half-built by an earlier failure is completed.
        """
        name = self.index_name(data_type)
        if name in self._known_indices:
            return

        lock = self._index_locks.setdefault(name, asyncio.Lock())
        async with lock:
            if name in self._known_indices:
                return

            client = await self._get_client()
            try:
                if not await client.collection_exists(name):
                    await self._create_collection(client, name)
                await self._create_payload_indexes(client, name)
            except VectorStoreError:
                raise
            except Exception as e:
                raise VectorStoreError(
                    f"Failed to ensure index: {e}",
                    code=ErrorCode.VECTOR_STORE_ERROR,
                    details={"index": name, "error": str(e)},
                ) from e

            self._known_indices.add(name)

    async def _create_collection(self, client: AsyncQdrantClient, name: str) -> None:
        try:
            await client.create_collection(
                collection_name=name,
                vectors_config=VectorParams(
                    size=self._settings.vector_dimension,
                    distance=self._distance,
                ),
            )
        except Exception:
            # Another process may have created it between the check and here.
            if await client.collection_exists(name):
                return
            raise

        logger.info(
            f"Created index: {name}",
            extra={
                "dimensions": self._settings.vector_dimension,
                "metric": self._settings.distance_metric,
            },
        )

    @staticmethod
    async def _create_payload_indexes(client: AsyncQdrantClient, name: str) -> None:
        # Idempotent: an existing field index with the same schema is kept.
        for field_name, schema in PAYLOAD_INDEXES.items():
            await client.create_payload_index(
                collection_name=name,
                field_name=field_name,
                field_schema=schema,
            )

    async def store(self, record: DataRecord) -> None:
        """Upsert a record under its composite key."""
        if len(record.vector) != self._settings.vector_dimension:
            raise VectorStoreError(
                f"Vector has {len(record.vector)} dimensions, "
                f"index expects {self._settings.vector_dimension}",
                code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                details={"id": record.id, "data_type": record.data_type.value},
            )

        await self.ensure_index(record.data_type)
        client = await self._get_client()
        name = self.index_name(record.data_type)
        key = self.record_key(record.data_type, record.id)

        start = time.perf_counter()
        try:
            await client.upsert(
                collection_name=name,
                points=[
                    PointStruct(
                        id=self.point_id(record.data_type, record.id),
                        vector=record.vector,
                        payload=self._to_payload(record, key),
                    )
                ],
            )
        except Exception as e:
            track_vectorstore_operation("store", time.perf_counter() - start, success=False)
            self.forget_index(record.data_type)
            raise VectorStoreError(
                f"Failed to store record: {e}",
                code=ErrorCode.VECTOR_STORE_ERROR,
                details={"key": key, "error": str(e)},
            ) from e

        track_vectorstore_operation("store", time.perf_counter() - start)
        logger.debug("Stored record", extra={"key": key})

    async def search(
        self,
        vector: list[float],
        data_type: DataType | str,
        limit: int = DEFAULT_LIMIT,
    ) -> list[DataRecord]:
        """KNN search within one data type's index."""
        return await self.filtered_search(vector, _require_type(data_type), None, limit)

    async def filtered_search(
        self,
        vector: list[float],
        data_type: DataType | str | None,
        filters: SearchFilters | Mapping[str, Any] | None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[DataRecord]:
        """KNN search intersected with exact-match and threshold predicates."""
        if limit <= 0:
            limit = DEFAULT_LIMIT
        search_filters = SearchFilters.coerce(filters)
        conditions = _filter_conditions(search_filters)
        operation = "search" if search_filters.is_empty() else "filtered_search"

        if data_type:
            resolved = _require_type(data_type)
            await self.ensure_index(resolved)
            conditions.append(
                FieldCondition(key="data_type", match=MatchValue(value=resolved.value))
            )
            indices = [self.index_name(resolved)]
        else:
            indices = await self._existing_indices()

        query_filter = Filter(must=conditions) if conditions else None  # type: ignore[arg-type]

        start = time.perf_counter()
        try:
            batches = await asyncio.gather(
                *(self._query(name, vector, limit, query_filter) for name in indices)
            )
        except Exception as e:
            track_vectorstore_operation(operation, time.perf_counter() - start, success=False)
            raise VectorStoreError(
                f"Failed to search: {e}",
                code=ErrorCode.VECTOR_STORE_ERROR,
                details={"indices": indices, "error": str(e)},
            ) from e
        track_vectorstore_operation(operation, time.perf_counter() - start)

        records = [self._to_record(point) for batch in batches for point in batch]
        records.sort(key=lambda r: r.score or 0.0, reverse=True)
        return records[:limit]

    async def query_collection(
        self,
        collection: str,
        vector: list[float],
        limit: int = DEFAULT_LIMIT,
        filters: dict[str, Any] | None = None,
    ) -> list[SearchResult]:
        """Search an arbitrary collection and return raw payloads.

        Used for collections this store does not manage, such as a general
        knowledge base.
        """
        client = await self._get_client()

        try:
            query_filter = None
            if filters:
                query_filter = Filter(
                    must=[  # type: ignore[arg-type]
                        FieldCondition(key=k, match=MatchValue(value=v))
                        for k, v in filters.items()
                    ]
                )

            results = await client.query_points(
                collection_name=collection,
                query=vector,
                limit=limit,
                query_filter=query_filter,
                with_payload=True,
            )
        except Exception as e:
            raise VectorStoreError(
                f"Failed to search: {e}",
                code=ErrorCode.VECTOR_STORE_ERROR,
                details={"collection": collection, "error": str(e)},
            ) from e

        return [
            SearchResult(
                id=str(point.id),
                score=self._similarity(point.score),
                payload=dict(point.payload) if point.payload else {},
            )
            for point in results.points
        ]

    async def count(self, data_type: DataType | str) -> int:
        """Number of records stored for a data type."""
        client = await self._get_client()
        name = self.index_name(data_type)
        try:
            if not await client.collection_exists(name):
                return 0
            result = await client.count(collection_name=name, exact=True)
        except Exception as e:
            raise VectorStoreError(
                f"Failed to count records: {e}",
                details={"index": name, "error": str(e)},
            ) from e
        return result.count

    async def _existing_indices(self) -> list[str]:
        client = await self._get_client()
        try:
            response = await client.get_collections()
        except Exception as e:
            raise VectorStoreError(
                f"Failed to list indices: {e}",
                code=ErrorCode.VECTOR_STORE_ERROR,
                details={"error": str(e)},
            ) from e
        managed = {self.index_name(data_type) for data_type in DataType}
        return sorted(c.name for c in response.collections if c.name in managed)

    async def _query(
        self,
        name: str,
        vector: list[float],
        limit: int,
        query_filter: Filter | None,
    ) -> list[ScoredPoint]:
        client = await self._get_client()
        response = await client.query_points(
            collection_name=name,
            query=vector,
            limit=limit,
            query_filter=query_filter,
            with_payload=True,
        )
        return response.points

    def _similarity(self, raw_score: float | None) -> float:
        """Convert a Qdrant score so that higher always means more similar."""
        if raw_score is None:
            return 0.0
        if self._distance == Distance.EUCLID:
            return 1.0 - raw_score
        return raw_score

    @staticmethod
    def _to_payload(record: DataRecord, key: str) -> dict[str, Any]:
        return {
            "key": key,
            "record_id": record.id,
            "content": record.text,
            "source_tool": record.source_tool,
            "data_type": record.data_type.value,
            "geo_info": record.geo_info,
            "content_summary": record.content_summary,
            "timestamp": record.timestamp,
            "confidence": record.confidence,
            "attributes": json.dumps(record.attributes, ensure_ascii=False),
            "original_payload": json.dumps(record.original_payload, ensure_ascii=False),
        }

    def _to_record(self, point: ScoredPoint) -> DataRecord:
        payload = dict(point.payload) if point.payload else {}
        return DataRecord(
            id=payload.get("record_id") or str(point.id),
            data_type=_parse_type(payload.get("data_type")),
            source_tool=payload.get("source_tool", ""),
            text=payload.get("content", ""),
            geo_info=payload.get("geo_info", ""),
            content_summary=payload.get("content_summary", ""),
            attributes=_decode_object(payload.get("attributes")),
            original_payload=_decode_object(payload.get("original_payload")),
            confidence=payload.get("confidence", 1.0),
            timestamp=int(payload.get("timestamp", 0)),
            score=self._similarity(point.score),
        )


def _require_type(data_type: DataType | str) -> DataType:
    try:
        return DataType(data_type)
    except ValueError as e:
        raise ValidationError(
            f"Unknown data type: {data_type}",
            details={"data_type": str(data_type)},
        ) from e


def _parse_type(value: Any) -> DataType:
    try:
        return DataType(value)
    except ValueError:
        return DataType.UNKNOWN


def _filter_conditions(filters: SearchFilters) -> list[FieldCondition]:
    conditions: list[FieldCondition] = []
    if filters.geo_info:
        conditions.append(FieldCondition(key="geo_info", match=MatchValue(value=filters.geo_info)))
    if filters.source_tool:
        conditions.append(
            FieldCondition(key="source_tool", match=MatchValue(value=filters.source_tool))
        )
    if filters.min_confidence is not None:
        conditions.append(FieldCondition(key="confidence", range=Range(gte=filters.min_confidence)))
    return conditions


def _decode_object(raw: Any) -> dict[str, Any]:
    """Decode a JSON-encoded object field; anything unusable becomes {}."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored field is not valid JSON")
        return {}
    return decoded if isinstance(decoded, dict) else {}
