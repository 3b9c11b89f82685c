"""
Custom exceptions for the report ingestion pipeline with structured error context.

Every exception carries a context dictionary (report id, document id, URL,
status code, ...) so failures can be logged and diagnosed without halting
the batch they occurred in.

Exception Hierarchy:
    IngestionException (base)
    ├── AuthError
    ├── FetchError
    │   └── RetryExhaustedError
    ├── CatalogError
    ├── DocumentError
    │   ├── MissingDocumentUrlError
    │   ├── EmptyDocumentError
    │   ├── UnsupportedCompressionError
    │   └── MalformedDocumentError
    ├── PersistenceError
    └── RunInProgressError
"""

from typing import Optional, Dict, Any
from datetime import datetime


class IngestionException(Exception):
    """
    Base exception for all ingestion-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (report id, url, timestamp, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Authentication
# ============================================================================

class AuthError(IngestionException):
    """
    Raised when the refresh-token exchange fails.

    Fatal to an ingestion run. Context should include:
        - token_url: The token endpoint
        - status_code: HTTP status code (if a response was received)
    """
    pass


# ============================================================================
# HTTP fetch errors
# ============================================================================

class FetchError(IngestionException):
    """
    Raised when an outbound GET fails for any reason other than rate limiting.

    Context should include:
        - url: The URL that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated)
    """
    pass


class RetryExhaustedError(FetchError):
    """
    Raised when the upstream keeps answering HTTP 429 after every retry.

    Context should include:
        - url: The URL that was rate limited
        - retry_count: Number of retries performed
    """
    pass


# ============================================================================
# Catalog errors
# ============================================================================

class CatalogError(IngestionException):
    """A catalog page could not be fetched or understood."""
    pass


# ============================================================================
# Document errors (contained per report)
# ============================================================================

class DocumentError(IngestionException):
    """Base exception for report document resolution and download failures."""
    pass


class MissingDocumentUrlError(DocumentError):
    """The document metadata response carried no download URL."""
    pass


class EmptyDocumentError(DocumentError):
    """The downloaded document body was zero-length."""
    pass


class UnsupportedCompressionError(DocumentError):
    """
    The document uses a compression algorithm this pipeline cannot decode.

    Context should include:
        - compression_algorithm: The algorithm reported by the API
    """
    pass


class MalformedDocumentError(DocumentError):
    """The document could not be decompressed, decoded or parsed as JSON."""
    pass


# ============================================================================
# Persistence / orchestration
# ============================================================================

class PersistenceError(IngestionException):
    """
    Raised when the bulk insert into the traffic report table fails.

    Context should include:
        - operation: Type of database operation (INSERT)
        - table_name: Name of the table
        - row_count: Number of rows in the failed batch
    """
    pass


class RunInProgressError(IngestionException):
    """An ingestion run was triggered while another one is still running."""
    pass
