"""Custom exceptions for qapisql.

Every compilation failure is surfaced as one of these structured errors.
Compilation is all-or-nothing: when one of them is raised no partial SQL
fragment is returned.
"""

from typing import Any, Dict


# Base exception
class QapiError(Exception):
    """Base exception for all qapisql errors.

    Attributes:
        message: Error message
        details: Additional error context as key-value pairs
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        """Initialize exception with message and additional details.

        Args:
            message: Human-readable error message
            **kwargs: Additional context (e.g., entity, field, path, value)
        """
        self.message = message
        self.details: Dict[str, Any] = kwargs
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the complete error message with details."""
        if not self.details:
            return self.message

        details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        if self.message:
            return f"{self.message} ({details_str})"
        return details_str

    def __repr__(self) -> str:
        """Return detailed representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# Query parameter parsing
class QueryParseError(QapiError):
    """Raised when request query parameters cannot be parsed.

    Example:
        >>> raise QueryParseError("Query not found")
    """


class UnsupportedOperatorError(QueryParseError):
    """Raised when a filter operator does not parse or cannot be applied.

    Example:
        >>> raise UnsupportedOperatorError("Invalid operator", param="Name^^x")
    """


class InvalidFilterError(QueryParseError):
    """Raised when a filter param is malformed (too short, empty name or value).

    Example:
        >>> raise InvalidFilterError("Filter name or value can't be empty", param="Name=")
    """


class InvalidSortError(QueryParseError):
    """Raised when a sort param is malformed.

    Example:
        >>> raise InvalidSortError("Sort param can only start with - or +", param="*Name")
    """


# Schema exceptions
class SchemaError(QapiError):
    """Base exception for entity schema problems."""


class FieldNotFoundError(SchemaError):
    """Raised when a path segment names a field absent from the entity.

    Example:
        >>> raise FieldNotFoundError("Can't find field", entity="User", field="Nmae", path="Nmae")
    """


class InvalidSchemaError(SchemaError):
    """Raised when relation tags are malformed or form a cycle.

    Example:
        >>> raise InvalidSchemaError("Relation cycle detected", entity="Category", field="Parent")
    """


# Join exceptions
class JoinError(QapiError):
    """Base exception for join registry problems."""


class JoinNotFoundError(JoinError):
    """Raised when no join configuration is registered for a relation path.

    Example:
        >>> raise JoinNotFoundError("No join configuration found", path="Profile")
    """


class InvalidJoinConfigError(JoinError):
    """Raised when a join configuration lacks the keys its relation type needs.

    Example:
        >>> raise InvalidJoinConfigError("local_key and foreign_key are required", path="Profile")
    """


# Value conversion
class TypeConversionError(QapiError):
    """Raised when a filter value cannot be converted to the column kind.

    Example:
        >>> raise TypeConversionError("Cannot convert value", filter="Age", value="abc", kind="int")
    """
