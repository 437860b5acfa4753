"""Collaborator contracts consumed by the connection manager.

The manager never talks to a driver directly.  It drives a
:class:`PhysicalConnection` (open/close/begin) and hands compiled SQL to an
:class:`Executor`, which binds parameters and maps rows.  Both are
structural protocols; :mod:`brickorm.connection.engine` provides SQLAlchemy
implementations.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Protocol


class ConnectionState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    BROKEN = "broken"


class IsolationLevel(str, Enum):
    """Transaction isolation levels; values are the SQL spelling."""

    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"
    SNAPSHOT = "SNAPSHOT"


class TransactionResource(Protocol):
    """A physical database transaction."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


class PhysicalConnection(Protocol):
    """A single database connection owned by a manager."""

    @property
    def state(self) -> ConnectionState: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def begin(self, isolation_level: IsolationLevel | None = None) -> TransactionResource: ...

    def dispose(self) -> None: ...


class Executor(Protocol):
    """Runs compiled SQL and maps result rows onto entity types."""

    def execute(
        self,
        sql: str,
        params: Mapping[str, Any],
        transaction: TransactionResource | None = None,
    ) -> int: ...

    def query(
        self,
        entity_type: type,
        sql: str,
        params: Mapping[str, Any],
        transaction: TransactionResource | None = None,
    ) -> Sequence[Any]: ...

    def query_single_or_default(
        self,
        entity_type: type,
        sql: str,
        params: Mapping[str, Any],
        transaction: TransactionResource | None = None,
    ) -> Any | None: ...
