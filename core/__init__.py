"""
Core utilities and configuration for the npm package ingestion pipeline.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Engine, session factory and dialect-aware upsert helpers
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import create_default_engine, build_session_maker
    from core.exceptions import SearchQueryError, MetadataFetchError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Open a session
    engine = create_default_engine()
    session_maker = build_session_maker(engine)
    async with session_maker() as session:
        # Perform database operations
        pass
"""

from core.config import settings
from core.database import build_engine, build_session_maker, create_default_engine, dialect_insert
from core.exceptions import (
    IngestionError,
    RegistryError,
    SearchQueryError,
    MetadataFetchError,
    BatchFetchError,
    PersistenceError,
    UpsertError,
    ConfigurationError,
    PackageConfigError,
    MissingCategoryError,
)
from core.logging import setup_logging

__all__ = [
    "settings",
    "build_engine",
    "build_session_maker",
    "create_default_engine",
    "dialect_insert",
    "setup_logging",
    # Exceptions
    "IngestionError",
    "RegistryError",
    "SearchQueryError",
    "MetadataFetchError",
    "BatchFetchError",
    "PersistenceError",
    "UpsertError",
    "ConfigurationError",
    "PackageConfigError",
    "MissingCategoryError",
]
