"""Vector store data models."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from geovec.exceptions import ValidationError
from geovec.geodata.models import DataType


class DataRecord(BaseModel):
    """A vectorized geo response.

    Attributes:
        id: Record identifier, stable when the payload has a natural key.
        data_type: Classified data type.
        source_tool: Tool that produced the payload.
        vector: Embedding of ``text``; empty on search results.
        text: Normalized text that was embedded.
        geo_info: Geographic locator, exact-match filter field.
        content_summary: Short synopsis, also used as display text.
        attributes: Bounded type-specific fields.
        original_payload: Full raw response, never searched.
        confidence: Reserved weighting, always 1.0 for now.
        timestamp: Ingestion time in unix seconds.
        score: Similarity, only set on search results.
    """

    id: str = Field(min_length=1, description="Record identifier")
    data_type: DataType = Field(description="Classified data type")
    source_tool: str = Field(default="", description="Originating tool")
    vector: list[float] = Field(default_factory=list, description="Embedding vector")
    text: str = Field(default="", description="Normalized text")
    geo_info: str = Field(default="", description="Geographic locator")
    content_summary: str = Field(default="", description="Content synopsis")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Type attributes")
    original_payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Raw tool response",
    )
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Confidence")
    timestamp: int = Field(description="Ingestion time, unix seconds")
    score: float | None = Field(default=None, description="Similarity score")


class SearchFilters(BaseModel):
    """Predicates applied on top of a KNN search.

    Attributes:
        geo_info: Exact geographic locator.
        source_tool: Exact originating tool.
        min_confidence: Minimum confidence, inclusive.
    """

    model_config = ConfigDict(extra="forbid")

    geo_info: str | None = Field(default=None, description="Exact geo_info match")
    source_tool: str | None = Field(default=None, description="Exact source_tool match")
    min_confidence: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Minimum confidence",
    )

    @classmethod
    def coerce(cls, filters: "SearchFilters | Mapping[str, Any] | None") -> "SearchFilters":
        """Build filters from a model, a plain mapping, or nothing.

        Raises:
            ValidationError: If a key is unknown or a value is out of range.
        """
        if filters is None:
            return cls()
        if isinstance(filters, SearchFilters):
            return filters
        try:
            return cls.model_validate(dict(filters))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid search filters: {e.error_count()} error(s)",
                details={
                    "fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()],
                    "error": str(e),
                },
            ) from e

    def is_empty(self) -> bool:
        return not self.geo_info and not self.source_tool and self.min_confidence is None


class SearchResult(BaseModel):
    """Result from a plain collection similarity search.

    Attributes:
        id: Point identifier.
        score: Similarity score (higher is more similar).
        payload: Stored metadata.
    """

    id: str = Field(description="Point identifier")
    score: float = Field(description="Similarity score")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Point metadata",
    )
