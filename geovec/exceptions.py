"""Application exception hierarchy.

All custom exceptions inherit from GeoVecError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "GEO-1000"
    CONFIGURATION_ERROR = "GEO-1001"
    VALIDATION_ERROR = "GEO-1002"
    VECTORIZATION_DISABLED = "GEO-1003"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "GEO-3000"
    EMBEDDING_DIMENSION_MISMATCH = "GEO-3001"

    # Vector store errors (4xxx)
    VECTOR_STORE_ERROR = "GEO-4000"
    INDEX_NOT_FOUND = "GEO-4001"
    CONNECTION_ERROR = "GEO-4002"
    RECORD_NOT_FOUND = "GEO-4003"
    PERSISTENCE_ERROR = "GEO-4004"

    # Retrieval errors (6xxx)
    RETRIEVAL_ERROR = "GEO-6000"

    # Ingestion errors (7xxx)
    INGESTION_ERROR = "GEO-7000"
    INGESTION_QUEUE_FULL = "GEO-7001"


class GeoVecError(Exception):
    """Base exception for all geovec errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(GeoVecError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class ValidationError(GeoVecError):
    """Input validation error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class EmbeddingError(GeoVecError):
    """Embedding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class VectorStoreError(GeoVecError):
    """Vector store or record persistence error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VECTOR_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class RetrievalError(GeoVecError):
    """Retrieval operation error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RETRIEVAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class IngestionError(GeoVecError):
    """Background ingestion error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INGESTION_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
