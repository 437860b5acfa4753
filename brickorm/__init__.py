"""brickORM – typed query expressions and entities to parameterized SQL.

Build Statements. Don't Concatenate Them.

Public API
----------
``SqlQuery``
    Immutable, chainable query description; ``to_sql()`` returns
    ``(sql, params)``.

``ConnectionManager``
    Owns one connection and at most one transaction; CRUD entry points
    (``query``, ``get_by_id``, ``get_by_keys``, ``insert``, ``update``,
    ``delete``) compile and dispatch through an executor.

``create_dialect``
    Look up a registered dialect (``sqlserver``, ``postgres``, ``sqlite``).

Re-exported types
-----------------
Entity metadata (``entity``, ``Column``, ``Generated``), predicates
(``member``, ``parse_predicate`` and the node classes), ``Options``,
``CompiledSQL``, the dialects, and all error classes.

Extensibility
-------------
New dialects can be registered via::

    from brickorm.compile.registry import DialectFactory

    @DialectFactory.register("mysql")
    class MySQLDialect(SqlDialect):
        ...
"""

from __future__ import annotations

from typing import Any

from brickorm.compile.base import CompiledSQL, ParamStyle, SqlDialect
from brickorm.compile.postgres import CaseFolding, PostgresDialect
from brickorm.compile.registry import DialectFactory
from brickorm.compile.sqlite import SQLiteDialect
from brickorm.compile.sqlserver import SqlServerDialect
from brickorm.compile.statements import StatementBuilder
from brickorm.connection.manager import ConnectionManager
from brickorm.connection.protocols import ConnectionState, IsolationLevel
from brickorm.connection.transaction import Transaction, TransactionState
from brickorm.errors import (
    ArgumentError,
    BrickORMError,
    ConfigurationError,
    MultipleResultsError,
    ResourceStateError,
    UnsupportedExpressionError,
)
from brickorm.query import SqlQuery
from brickorm.schema.entity import Column, EntityMetadata, Generated, entity, metadata_for
from brickorm.schema.expressions import (
    Comparison,
    ComparisonOp,
    Constant,
    Logical,
    LogicalOp,
    Member,
    Membership,
    Not,
    member,
    parse_predicate,
)
from brickorm.schema.options import Options

# ---------------------------------------------------------------------------
# Register built-in dialects with DialectFactory
# ---------------------------------------------------------------------------

DialectFactory.register_class("sqlserver", SqlServerDialect)
DialectFactory.register_class("postgres", PostgresDialect)
DialectFactory.register_class("sqlite", SQLiteDialect)

__all__ = [
    # Core API
    "SqlQuery",
    "ConnectionManager",
    "create_dialect",
    # Entities
    "entity",
    "Column",
    "Generated",
    "EntityMetadata",
    "metadata_for",
    "Options",
    # Predicates
    "member",
    "parse_predicate",
    "Member",
    "Constant",
    "Comparison",
    "ComparisonOp",
    "Logical",
    "LogicalOp",
    "Membership",
    "Not",
    # Compilation
    "CompiledSQL",
    "StatementBuilder",
    "DialectFactory",
    "SqlDialect",
    "ParamStyle",
    "SqlServerDialect",
    "PostgresDialect",
    "CaseFolding",
    "SQLiteDialect",
    # Connections
    "ConnectionState",
    "IsolationLevel",
    "Transaction",
    "TransactionState",
    # Errors
    "BrickORMError",
    "ConfigurationError",
    "ArgumentError",
    "UnsupportedExpressionError",
    "ResourceStateError",
    "MultipleResultsError",
]


def create_dialect(name: str, **kwargs: Any) -> SqlDialect:
    """Instantiate the dialect registered under ``name``.

    Example::

        dialect = brickorm.create_dialect("postgres", case_folding="lower_snake")

    Args:
        name: Registered target name.
        **kwargs: Dialect constructor options.

    Returns:
        A fresh :class:`SqlDialect`.

    Raises:
        ConfigurationError: If ``name`` is not registered.
    """
    return DialectFactory.create(name, **kwargs)
