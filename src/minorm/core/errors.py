"""
Structured error types for minorm.

Provides a small hierarchy of typed errors with categories and structured
context.  Errors raised by the database driver itself are **not** wrapped:
they propagate unmodified to the caller of a materialising call.  The types
here cover mistakes made on the ORM side of the boundary (bad
configuration, malformed entity definitions, statements that cannot be
rendered).

Manifesto:
    - **Typed hierarchy:** One subclass per kind of mistake
    - **Rich context:** Errors carry table, entity and operation metadata
    - **Error chaining:** Preserve original exceptions as ``cause``
    - **Driver errors untouched:** ``sqlite3.Error`` / SQLAlchemy errors
      reach the caller exactly as the driver raised them

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                        OrmError                            │
        │               (category, context, cause)                   │
        ├───────────────────────────────────────────────────────────┤
        │                                                            │
        │  ConfigError          ValidationError      DatabaseError   │
        │  (CONFIG)             (VALIDATION)         (DATABASE)      │
        │      │                     │                               │
        │  MissingConfigError   QueryBuildError                      │
        │  InvalidConfigError   EntityDefinitionError                │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> error = QueryBuildError("no table set").with_context(operation="insert")
    >>> error.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> error.to_dict()["context"]
    {'operation': 'insert'}

Tags:
    error-handling, exception-hierarchy, error-context, minorm
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    DATABASE = "DATABASE"         # Statement execution, connection
    VALIDATION = "VALIDATION"     # Unrenderable queries, bad entity kinds
    CONFIG = "CONFIG"             # Missing or invalid settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an :class:`OrmError`.

    Attributes:
        table: Table the failing operation targeted
        entity: Entity kind name
        operation: Builder or repository operation (``insert``, ``find``...)
        sql: Rendered statement, when one exists
        metadata: Additional key-value pairs
    """

    table: str | None = None
    entity: str | None = None
    operation: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["table", "entity", "operation", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class OrmError(Exception):
    """
    Base exception for all minorm errors.

    Subclasses set ``default_category``; callers may override it per
    instance.  ``with_context`` adds metadata fluently and ``to_dict``
    serialises the error for structured logging.

    Examples:
        >>> try:
        ...     raise KeyError("table")
        ... except KeyError as e:
        ...     error = OrmError("lookup failed", cause=e)
        >>> error.cause
        KeyError('table')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> OrmError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryBuildError("no table").with_context(operation="delete")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(OrmError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid value for {key}: {value!r}")


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(OrmError):
    """Caller supplied something the ORM cannot work with."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class QueryBuildError(ValidationError):
    """Builder state cannot be rendered into a statement."""

    pass


class EntityDefinitionError(ValidationError):
    """Entity kind is missing its table, columns or primary key."""

    pass


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(OrmError):
    """Database could not be opened.

    Raised by the connection factory only; errors from executing a
    statement propagate as the driver raised them.
    """

    default_category = ErrorCategory.DATABASE


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error.

    ``sqlite3`` driver errors are categorised as ``DATABASE``.
    """
    if isinstance(error, OrmError):
        return error.category
    if isinstance(error, sqlite3.Error):
        return ErrorCategory.DATABASE
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    if isinstance(error, (KeyError, AttributeError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "OrmError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "ValidationError",
    "QueryBuildError",
    "EntityDefinitionError",
    "DatabaseError",
    "categorize_error",
]
