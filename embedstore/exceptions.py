"""Store exception hierarchy.

All custom exceptions inherit from EmbedStoreError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "ESR-1000"
    CONFIGURATION_ERROR = "ESR-1001"
    INVALID_REQUEST = "ESR-1002"

    # Schema errors (2xxx)
    SCHEMA_ERROR = "ESR-2000"
    RESERVED_COLUMN = "ESR-2001"
    INVALID_DIMENSIONS = "ESR-2002"
    INVALID_IDENTIFIER = "ESR-2003"

    # Ingestion errors (3xxx)
    INGEST_ERROR = "ESR-3000"
    EMPTY_EMBEDDINGS = "ESR-3001"
    VECTOR_DIMENSION_MISMATCH = "ESR-3002"
    UNSUPPORTED_COLUMN_VALUE = "ESR-3003"

    # Filter errors (4xxx)
    FILTER_ERROR = "ESR-4000"
    FILTER_UNSUPPORTED_VALUE = "ESR-4001"
    FILTER_SERIALIZATION = "ESR-4002"
    FILTER_INVALID_KEY = "ESR-4003"

    # Embedding errors (5xxx)
    EMBEDDING_SERVICE_ERROR = "ESR-5000"
    EMBEDDING_DIMENSION_MISMATCH = "ESR-5001"

    # Datastore errors (6xxx)
    DATASTORE_ERROR = "ESR-6000"
    TRANSACTION_ERROR = "ESR-6001"


class EmbedStoreError(Exception):
    """Base exception for all store errors.

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
        """Convert exception to a serializable dictionary."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(EmbedStoreError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class InvalidRequestError(EmbedStoreError):
    """Search request rejected before any I/O."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.INVALID_REQUEST, details)


class SchemaError(EmbedStoreError):
    """Malformed or colliding table schema."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SCHEMA_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class IngestError(EmbedStoreError):
    """Batch ingestion failed and was rolled back."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INGEST_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class FilterError(EmbedStoreError):
    """Malformed search filter or unsupported filter value."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.FILTER_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmbeddingError(EmbedStoreError):
    """Embedding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class DatastoreError(EmbedStoreError):
    """Underlying storage engine failure."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DATASTORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
