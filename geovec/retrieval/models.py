"""Retrieval data models."""

from typing import Any

from pydantic import BaseModel, Field


class RetrievalResult(BaseModel):
    """Result from a retrieval operation.

    Attributes:
        id: Identifier used to deduplicate results across retrievers.
        content: The retrieved text content.
        score: Relevance score (higher is more relevant).
        source: Which retriever produced the result.
        metadata: Additional metadata from the stored record.
    """

    id: str = Field(description="Result identifier")
    content: str = Field(description="Retrieved text content")
    score: float = Field(description="Relevance score")
    source: str = Field(description="Producing retriever")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata",
    )
