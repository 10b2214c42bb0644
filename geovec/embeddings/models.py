"""Embedding data models."""

from typing import Any

from pydantic import BaseModel, Field, model_validator


class EmbeddingResult(BaseModel):
    """One embedded text.

    ``dimensions`` may be omitted, in which case it is taken from the vector;
    an explicit value must equal the vector length.
    """

    text: str = Field(description="Text that was embedded")
    embedding: list[float] = Field(min_length=1, description="Embedding vector")
    model: str = Field(description="Embedding model name")
    dimensions: int = Field(gt=0, description="Vector length")

    @model_validator(mode="before")
    @classmethod
    def _default_dimensions(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("dimensions") is None:
            embedding = data.get("embedding")
            if isinstance(embedding, list):
                return {**data, "dimensions": len(embedding)}
        return data

    @model_validator(mode="after")
    def _check_dimensions(self) -> "EmbeddingResult":
        if self.dimensions != len(self.embedding):
            raise ValueError(
                f"dimensions ({self.dimensions}) does not match "
                f"embedding length ({len(self.embedding)})"
            )
        return self
