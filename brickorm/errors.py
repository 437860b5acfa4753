"""Custom exception hierarchy for brickORM.

All public errors inherit from BrickORMError so callers can catch the base
class for any brickORM-specific failure.  Errors are raised immediately;
nothing in the package retries or falls back silently.
"""
from __future__ import annotations

from typing import Any


class BrickORMError(Exception):
    """Base exception for all brickORM errors."""


class ConfigurationError(BrickORMError):
    """Raised when entity metadata or wiring cannot support an operation.

    Typical causes: an entity type without key columns used for a by-key
    lookup, update, or instance delete; a composite-key type passed to a
    single-key lookup; an entity type that cannot be resolved for a query.

    Args:
        message: Human-readable description.
        entity: The entity type involved, when known.
    """

    def __init__(self, message: str, entity: type | None = None) -> None:
        super().__init__(message)
        self.entity = entity


class ArgumentError(BrickORMError, ValueError):
    """Raised when a caller-supplied argument is missing or malformed.

    Args:
        message: Human-readable description.
        argument: Name of the offending argument or key.
    """

    def __init__(self, message: str, argument: str | None = None) -> None:
        super().__init__(message)
        self.argument = argument


class UnsupportedExpressionError(BrickORMError):
    """Raised when a predicate shape cannot be translated to SQL.

    Args:
        message: Human-readable description.
        expression: The predicate node that was rejected.
    """

    def __init__(self, message: str, expression: Any = None) -> None:
        super().__init__(message)
        self.expression = expression


class ResourceStateError(BrickORMError):
    """Raised when the connection or transaction is not in a usable state.

    Examples: using a disposed manager, rolling back with no active
    transaction.
    """


class MultipleResultsError(BrickORMError):
    """Raised when a single-row query returns more than one row.

    Args:
        message: Human-readable description.
        count: Number of rows returned.
    """

    def __init__(self, message: str, count: int) -> None:
        super().__init__(message)
        self.count = count
