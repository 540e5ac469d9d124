"""
errors.py - Domain-specific exceptions for local_changes.

All exceptions inherit from TrackingError for unified handling.
Each exception type represents a distinct failure mode.
"""

from typing import Any


class TrackingError(Exception):
    """Base exception for all local_changes errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


class InvariantViolationError(TrackingError):
    """
    Raised when the change log is found in an inconsistent state.

    For example a uid that is pending deletion while still carrying
    pending insert or update entries.
    """

    def __init__(self, invariant: str, details: str) -> None:
        super().__init__(
            f"Invariant violation: {invariant}. {details}",
            context={"invariant": invariant, "details": details},
        )
        self.invariant = invariant
        self.details = details


class SchemaError(TrackingError):
    """
    Raised when an existing log table cannot be brought to the desired layout.

    SQLite cannot change a primary key in place or add a NOT NULL column
    without a default, so these mismatches are surfaced instead of repaired.
    """

    def __init__(self, message: str, expected: Any = None, actual: Any = None) -> None:
        context = {}
        if expected is not None:
            context["expected"] = expected
        if actual is not None:
            context["actual"] = actual
        super().__init__(message, context=context)
        self.expected = expected
        self.actual = actual


class DatabaseError(TrackingError):
    """
    Raised when a database operation fails unexpectedly.

    This wraps SQLite errors with additional context about
    what operation was being attempted.
    """

    def __init__(
        self, message: str, operation: str | None = None, sql: str | None = None
    ) -> None:
        context = {}
        if operation is not None:
            context["operation"] = operation
        if sql is not None:
            # Truncate long SQL for readability
            context["sql"] = sql[:200] + "..." if len(sql) > 200 else sql
        super().__init__(message, context=context)
        self.operation = operation
        self.sql = sql


class InstallationError(DatabaseError):
    """Raised when capture rules cannot be attached to a mirrored table."""

    def __init__(self, message: str, table_name: str, sql: str | None = None) -> None:
        super().__init__(message, operation="install_tracking", sql=sql)
        self.context["table_name"] = table_name
        self.table_name = table_name


class ValidationError(TrackingError):
    """
    Raised when input validation fails.

    This includes unsafe identifiers, missing identifier columns,
    or tables that cannot carry capture rules.
    """

    def __init__(
        self, message: str, field: str | None = None, value: Any = None
    ) -> None:
        context = {}
        if field is not None:
            context["field"] = field
        if value is not None:
            context["value"] = repr(value)[:100]
        super().__init__(message, context=context)
        self.field = field
        self.value = value
