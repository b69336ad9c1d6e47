"""Application exception hierarchy.

All custom exceptions inherit from LandSearchError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any, Self


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "LAND-1000"
    CONFIGURATION_ERROR = "LAND-1001"
    VALIDATION_ERROR = "LAND-1002"

    # Lookup errors (2xxx)
    PLOT_NOT_FOUND = "LAND-2000"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "LAND-3000"
    EMBEDDING_DIMENSION_MISMATCH = "LAND-3001"

    # Store errors (4xxx)
    QUERY_ERROR = "LAND-4000"
    COLLECTION_NOT_FOUND = "LAND-4001"
    COLLECTION_EXISTS = "LAND-4002"
    PERSISTENCE_ERROR = "LAND-4003"
    DUPLICATE_RECORD = "LAND-4004"

    # Ingestion errors (5xxx)
    INGEST_ERROR = "LAND-5000"
    CSV_ROW_INVALID = "LAND-5001"

    # LLM errors (6xxx)
    LLM_SERVICE_ERROR = "LAND-6000"
    LLM_TIMEOUT = "LAND-6001"
    LLM_RATE_LIMIT = "LAND-6002"
    LLM_INVALID_REPLY = "LAND-6003"


class LandSearchError(Exception):
    """Base exception for all land search errors.

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

    def add_context(self, **context: Any) -> Self:
        """Attach operation context to the error without changing its kind.

        Existing keys are kept; context only fills in what is missing.

        Returns:
            The same exception, for use in ``raise err.add_context(...)``.
        """
        for key, value in context.items():
            self.details.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(LandSearchError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(LandSearchError):
    """Input validation error, raised before any store query."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class NotFoundError(LandSearchError):
    """A lookup by identifier found no record."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.PLOT_NOT_FOUND, details)


class EmbeddingError(LandSearchError):
    """Embedding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class QueryError(LandSearchError):
    """The store rejected or failed a filter or similarity query."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.QUERY_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class PersistenceError(LandSearchError):
    """The store could not persist a record."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PERSISTENCE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class IngestError(LandSearchError):
    """Source data could not be turned into plot records."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INGEST_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class LLMError(LandSearchError):
    """LLM service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
