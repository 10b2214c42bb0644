"""API routes for vectorization, search and retrieval."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, Field

from geovec.exceptions import ConfigurationError, ErrorCode, IngestionError, ValidationError
from geovec.geodata.models import DataType
from geovec.geodata.tool_result import parse_tool_result
from geovec.logging_config import get_logger
from geovec.pipeline.ingestion import IngestionQueue
from geovec.pipeline.vectorizer import GeoVectorizer
from geovec.retrieval.models import RetrievalResult
from geovec.retrieval.retriever import Retriever
from geovec.vectorstore.models import DataRecord, SearchFilters

logger = get_logger(__name__)


# Create router
router = APIRouter(prefix="/api/v1", tags=["Geo"])


class VectorizeRequest(BaseModel):
    """Request body for synchronous vectorization."""

    tool: str = Field(min_length=1, description="Map tool that produced the payload")
    payload: dict[str, Any] = Field(description="Raw JSON response of the tool")


class RecordResponse(BaseModel):
    """A vectorized record without its embedding."""

    id: str
    data_type: DataType
    source_tool: str
    geo_info: str
    content_summary: str
    text: str
    attributes: dict[str, Any]
    timestamp: int
    score: float | None = None


class IngestRequest(BaseModel):
    """Request body for background ingestion of a raw tool result."""

    tool: str = Field(min_length=1, description="Map tool that produced the result")
    result: str | dict[str, Any] = Field(
        description="Tool result: MCP content envelope or bare JSON object",
    )


class IngestResponse(BaseModel):
    """Response from background ingestion."""

    queued: bool = Field(description="Whether the result was queued")
    pending: int = Field(description="Jobs waiting in the queue")


class SearchRequest(BaseModel):
    """Request body for similarity search."""

    query: str = Field(min_length=1, description="Free-text query")
    data_type: DataType | None = Field(
        default=None,
        description="Restrict to one data type; all types when omitted",
    )
    geo_info: str | None = Field(default=None, description="Exact geo_info match")
    source_tool: str | None = Field(default=None, description="Exact source_tool match")
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    limit: int = Field(default=10, ge=1, le=100, description="Number of results")


class SearchResponse(BaseModel):
    """Response from similarity search."""

    results: list[RecordResponse]


class RetrieveRequest(BaseModel):
    """Request body for fused knowledge and map-data retrieval."""

    query: str = Field(min_length=1, description="Free-text query")
    top_k: int = Field(default=10, ge=1, le=100, description="Number of results")
    geo_info: str | None = Field(default=None, description="Map-data geo_info match")
    source_tool: str | None = Field(default=None, description="Map-data source_tool match")
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    def filters(self) -> dict[str, Any] | None:
        values = {
            "geo_info": self.geo_info,
            "source_tool": self.source_tool,
            "min_confidence": self.min_confidence,
        }
        return {k: v for k, v in values.items() if v is not None} or None


class RetrieveResponse(BaseModel):
    """Response from fused retrieval."""

    results: list[RetrievalResult]


def record_to_response(record: DataRecord) -> RecordResponse:
    """Convert a stored record to its API representation."""
    return RecordResponse(
        id=record.id,
        data_type=record.data_type,
        source_tool=record.source_tool,
        geo_info=record.geo_info,
        content_summary=record.content_summary,
        text=record.text,
        attributes=record.attributes,
        timestamp=record.timestamp,
        score=record.score,
    )


def _get_vectorizer(request: Request) -> GeoVectorizer:
    vectorizer: GeoVectorizer | None = getattr(request.app.state, "vectorizer", None)
    if vectorizer is None:
        logger.warning("Vectorization pipeline not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Vectorization pipeline not configured",
                "message": "Set VECTORIZATION_ENABLED and EMBEDDING_ENDPOINT to enable it",
            },
        )
    return vectorizer


def _get_retriever(request: Request) -> Retriever:
    retriever: Retriever | None = getattr(request.app.state, "retriever", None)
    if retriever is None:
        logger.warning("Retriever not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Retriever not configured",
                "message": "Retrieval requires EMBEDDING_ENDPOINT and a reachable Qdrant",
            },
        )
    return retriever


def _get_ingestion(request: Request) -> IngestionQueue:
    ingestion: IngestionQueue | None = getattr(request.app.state, "ingestion", None)
    if ingestion is None:
        logger.warning("Ingestion queue not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Ingestion queue not configured",
                "message": "Background ingestion requires the vectorization pipeline",
            },
        )
    return ingestion


@router.post("/vectorize", response_model=RecordResponse)
async def vectorize_endpoint(body: VectorizeRequest, request: Request) -> RecordResponse:
    """Vectorize one tool response and return the stored record."""
    vectorizer = _get_vectorizer(request)
    record = await vectorizer.vectorize(body.tool, body.payload)
    return record_to_response(record)


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ingest_endpoint(body: IngestRequest, request: Request) -> IngestResponse:
    """Queue a raw tool result for background vectorization."""
    vectorizer = _get_vectorizer(request)
    ingestion = _get_ingestion(request)

    if not vectorizer.is_enabled:
        raise ConfigurationError(
            "Vectorization is not enabled",
            code=ErrorCode.VECTORIZATION_DISABLED,
        )

    payload = parse_tool_result(body.result)
    if payload is None:
        raise ValidationError(
            "Tool result carries no JSON object",
            details={"tool": body.tool},
        )

    if not ingestion.submit(body.tool, payload):
        raise IngestionError(
            "Ingestion queue cannot accept the result",
            code=ErrorCode.INGESTION_QUEUE_FULL,
            details={"pending": ingestion.pending, "running": ingestion.running},
        )

    return IngestResponse(queued=True, pending=ingestion.pending)


@router.post("/search", response_model=SearchResponse)
async def search_endpoint(body: SearchRequest, request: Request) -> SearchResponse:
    """Search vectorized records by similarity to a free-text query."""
    vectorizer = _get_vectorizer(request)
    filters = SearchFilters(
        geo_info=body.geo_info,
        source_tool=body.source_tool,
        min_confidence=body.min_confidence,
    )
    records = await vectorizer.search_similar_filtered(
        body.query,
        body.data_type,
        filters,
        body.limit,
    )
    return SearchResponse(results=[record_to_response(r) for r in records])


@router.post("/retrieve", response_model=RetrieveResponse)
async def retrieve_endpoint(body: RetrieveRequest, request: Request) -> RetrieveResponse:
    """Retrieve knowledge-base documents fused with vectorized map data."""
    retriever = _get_retriever(request)
    results = await retriever.retrieve(body.query, body.top_k, body.filters())
    return RetrieveResponse(results=results)
