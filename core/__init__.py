"""
Core utilities and configuration for the traffic report ingestion service.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Database connection and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import async_session_maker, get_session
    from core.exceptions import AuthError, FetchError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Get database session
    async with async_session_maker() as session:
        # Perform database operations
        pass
"""

__all__ = [
    "settings",
    "get_session",
    "check_database_connection",
    "setup_logging",
    # Exceptions
    "IngestionException",
    "AuthError",
    "FetchError",
    "RetryExhaustedError",
    "CatalogError",
    "DocumentError",
    "MissingDocumentUrlError",
    "EmptyDocumentError",
    "UnsupportedCompressionError",
    "MalformedDocumentError",
    "PersistenceError",
    "RunInProgressError",
]
