"""
Custom exceptions for the package ingestion pipeline with structured error context.

Every failure in a run surfaces as one of these exceptions, propagates
through the batch and transaction drivers, and rolls the run back. Each
exception carries context information for debugging which package,
query or table caused the abort.

Exception Hierarchy:
    IngestionError (base)
    ├── RegistryError
    │   ├── SearchQueryError
    │   └── MetadataFetchError
    ├── BatchFetchError
    ├── PersistenceError
    │   └── UpsertError
    └── ConfigurationError
        ├── PackageConfigError
        └── MissingCategoryError
"""

from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime


class IngestionError(Exception):
    """
    Base exception for all ingestion-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (package, query, table, etc.)
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

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
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
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Registry Errors
# ============================================================================

class RegistryError(IngestionError):
    """Base exception for npm registry failures."""
    pass


class SearchQueryError(RegistryError):
    """
    Exception raised when an identity-scoped search query fails.

    Context should include:
        - search_type: author, maintainer or publisher
        - identity: The identity being searched
        - offset: Page offset of the failing request
        - status_code: HTTP status code (if applicable)
    """
    pass


class MetadataFetchError(RegistryError):
    """
    Exception raised when a package's metadata cannot be fetched or parsed.

    Context should include:
        - package_name: The package whose metadata failed
        - status_code: HTTP status code (if applicable)
    """
    pass


# ============================================================================
# Batch Errors
# ============================================================================

class BatchFetchError(IngestionError):
    """
    Exception raised when one or more fetch tasks of a batch fail and the
    collect-all policy is active.

    Attributes:
        failures: (package_name, exception) pairs in batch order
    """

    def __init__(
        self,
        message: str,
        failures: List[Tuple[str, BaseException]],
        context: Optional[Dict[str, Any]] = None
    ):
        context = dict(context or {})
        context["failed_packages"] = [name for name, _ in failures]
        first = failures[0][1] if failures else None
        super().__init__(
            message,
            context=context,
            original_exception=first if isinstance(first, Exception) else None
        )
        self.failures = failures


# ============================================================================
# Persistence Errors
# ============================================================================

class PersistenceError(IngestionError):
    """
    Exception raised when database operations fail.

    Context should include:
        - operation: Type of database operation (INSERT, UPDATE, DELETE)
        - table_name: Name of the table
    """
    pass


class UpsertError(PersistenceError):
    """
    Exception raised when a package upsert fails.

    Context should include:
        - package_name: Name of the package being upserted
    """
    pass


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(IngestionError):
    """Base exception for invalid or inconsistent static configuration."""
    pass


class PackageConfigError(ConfigurationError):
    """
    Exception raised when the whitelist/blacklist file cannot be loaded.

    Context should include:
        - path: Path of the configuration file
    """
    pass


class MissingCategoryError(ConfigurationError):
    """
    Exception raised when a whitelisted category has no resolvable identifier.

    Context should include:
        - category: The category name that could not be resolved
        - package_name: The package referencing it
    """
    pass
