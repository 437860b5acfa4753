"""Dialect abstractions: CompiledSQL, ParamStyle and the SqlDialect ABC.

The Template Method pattern (GoF) is used:
- ``SqlDialect`` defines the skeleton for every statement shape (SELECT,
  INSERT, UPDATE, DELETE) and the identifier quoting rules.
- ``SqlServerDialect``, ``PostgresDialect`` and ``SQLiteDialect`` override
  the dialect-specific steps (quote characters, paging clause, identity
  retrieval, boolean literals, case folding).
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from brickorm.errors import ArgumentError
from brickorm.schema.options import Options
from brickorm.schema.sql_ast import FunctionSource, OrderTerm, SqlSelectNode


@dataclass
class CompiledSQL:
    """The output of a successful compilation.

    Unpacks as the ``(sql, params)`` pair::

        sql, params = query.to_sql()

    Attributes:
        sql: The compiled SQL string with named placeholders.
        params: Parameter name → value, in encounter order.  Names carry no
            placeholder prefix; the prefix only appears in ``sql``.
        dialect: The dialect name that rendered ``sql``.
    """

    sql: str
    params: dict[str, Any]
    dialect: str

    def __iter__(self) -> Iterator[Any]:
        yield self.sql
        yield self.params

    @property
    def values(self) -> list[Any]:
        """Parameter values in placeholder order."""
        return list(self.params.values())


class ParamStyle(str, Enum):
    """Placeholder syntax for named parameters."""

    AT = "at"  # @name
    PYFORMAT = "pyformat"  # %(name)s
    NAMED = "named"  # :name

    def render(self, name: str) -> str:
        if self is ParamStyle.AT:
            return f"@{name}"
        if self is ParamStyle.PYFORMAT:
            return f"%({name})s"
        return f":{name}"


_FUNCTION_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class SqlDialect(ABC):
    """Abstract base for backend-specific SQL renderers.

    Dialects hold no per-statement state; the only configuration is the
    parameter style (and case folding for PostgreSQL), fixed at
    construction.

    Args:
        param_style: Placeholder syntax; defaults to the dialect's
            ``default_param_style``.
    """

    quote_start: ClassVar[str] = '"'
    quote_end: ClassVar[str] = '"'
    default_param_style: ClassVar[ParamStyle] = ParamStyle.AT
    # Multi-statement SQL goes to the driver in one call.
    supports_batches: ClassVar[bool] = False

    def __init__(self, param_style: ParamStyle | str | None = None) -> None:
        self.param_style = ParamStyle(param_style) if param_style else self.default_param_style

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect name (e.g. ``'postgres'``)."""

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def fold_identifier(self, name: str) -> str:
        """Return ``name`` as it is stored by the backend (no folding by default)."""
        return name

    def is_quoted(self, name: str) -> bool:
        return (
            len(name) >= 2 and name.startswith(self.quote_start) and name.endswith(self.quote_end)
        )

    def quote_identifier(self, name: str) -> str:
        """Quote a single identifier, doubling embedded closing quotes.

        Already-quoted identifiers are returned unchanged, which makes the
        operation idempotent.  ``None`` and ``""`` pass through.
        """
        if not name or self.is_quoted(name):
            return name
        folded = self.fold_identifier(name)
        escaped = folded.replace(self.quote_end, self.quote_end * 2)
        return f"{self.quote_start}{escaped}{self.quote_end}"

    def format_column(self, name: str) -> str:
        return self.quote_identifier(name)

    def format_table(self, name: str) -> str:
        """Quote each ``.``-separated segment of a (qualified) table name."""
        if not name:
            return name
        return ".".join(self.quote_identifier(part) for part in name.split("."))

    def format_select_column(self, column: str, qualifier: str | None = None) -> str:
        """Render one entry of the SELECT list."""
        if qualifier:
            return self.format_table(f"{qualifier}.{column}")
        return self.format_column(column)

    # ------------------------------------------------------------------
    # Parameters and literals
    # ------------------------------------------------------------------

    def param_placeholder(self, name: str) -> str:
        """Return the SQL placeholder for a named parameter."""
        return self.param_style.render(name)

    def parameter_placeholder(self, index: int) -> str:
        """Return the placeholder for the ``index``-th generated parameter."""
        return self.param_placeholder(f"p{index}")

    def boolean_literal(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def literal(self, value: Any) -> str:
        """Render a Python value as an inline SQL literal.

        Used only for table-valued function arguments; strings are escaped
        by doubling single quotes.  Under ``PYFORMAT`` the driver treats
        ``%`` as a placeholder marker, so it is doubled as well.
        """
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return self.boolean_literal(value)
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        text = value.isoformat() if isinstance(value, (date, datetime, time)) else str(value)
        escaped = text.replace("'", "''")
        if self.param_style is ParamStyle.PYFORMAT:
            escaped = escaped.replace("%", "%%")
        return f"'{escaped}'"

    def format_function(self, source: FunctionSource) -> str:
        """Render a table-valued function call.

        Raises:
            ArgumentError: If the function name is not a plain identifier.
        """
        if not _FUNCTION_NAME.match(source.name):
            raise ArgumentError(
                f"Invalid function name '{source.name}'.", argument="function"
            )
        args = ", ".join(self.literal(arg) for arg in source.args)
        return f"{source.name}({args})"

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def select_statement(self, ast: SqlSelectNode, params: Sequence[Any] | None = None) -> str:
        """Render a SELECT from the dialect-neutral AST.

        Args:
            ast: The statement description.
            params: Ordered parameter values.  The built-in dialects bind by
                name and do not need them; positional dialects may.

        Returns:
            ``SELECT <cols|*> FROM <table|fn(args)> [JOIN] [WHERE] [ORDER BY] [paging]``.
        """
        qualifier = ast.table if ast.joins and ast.table else None
        columns = ", ".join(self.format_select_column(c, qualifier) for c in ast.columns) or "*"
        source = self.format_function(ast.function) if ast.function else self.format_table(ast.table)

        parts = [f"SELECT {columns}", f"FROM {source}"]
        for join in ast.joins:
            parts.append(
                f"{join.kind} JOIN {self.format_table(join.table)} "
                f"ON {self.format_table(join.left_column)} = {self.format_table(join.right_column)}"
            )
        if ast.where_sql:
            parts.append(f"WHERE {ast.where_sql}")
        if ast.order_by:
            terms = ", ".join(self._order_term(t, qualifier) for t in ast.order_by)
            parts.append(f"ORDER BY {terms}")
        paging = self.paging_clause(ast)
        if paging:
            parts.append(paging)
        return " ".join(parts)

    def _order_term(self, term: OrderTerm, qualifier: str | None) -> str:
        column = self.format_table(f"{qualifier}.{term.column}") if qualifier else self.format_column(term.column)
        return f"{column} DESC" if term.descending else column

    @abstractmethod
    def paging_clause(self, ast: SqlSelectNode) -> str:
        """Return the paging clause for ``ast.skip`` / ``ast.take``, or ``""``.

        A zero ``take`` must still render an explicit clause.
        """

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _equalities(self, values: Mapping[str, str]) -> str:
        return " AND ".join(
            f"{self.format_column(column)} = {self.param_placeholder(param)}"
            for column, param in values.items()
        )

    def insert_statement(
        self,
        table: str,
        columns: Sequence[str],
        param_names: Sequence[str],
        options: Options | None = None,
    ) -> str:
        """Render ``INSERT INTO t (cols) VALUES (placeholders)``.

        Args:
            table: Target table name.
            columns: Column names, in order.
            param_names: Parameter names matching ``columns`` one to one.
            options: Statement options; the read-back is appended by the
                statement builder, not here.
        """
        target = self.format_table(table)
        if not columns:
            return f"INSERT INTO {target} DEFAULT VALUES"
        cols = ", ".join(self.format_column(c) for c in columns)
        values = ", ".join(self.param_placeholder(p) for p in param_names)
        return f"INSERT INTO {target} ({cols}) VALUES ({values})"

    def update_statement(
        self,
        table: str,
        set_values: Mapping[str, str],
        where_values: Mapping[str, str],
        options: Options | None = None,
        primary_keys: Mapping[str, str] | None = None,
        *,
        where_sql: str | None = None,
    ) -> str:
        """Render ``UPDATE t SET ... WHERE ...`` with an optional read-back.

        Args:
            table: Target table name.
            set_values: Column → parameter name for the SET list.
            where_values: Column → parameter name, ANDed equalities.
            options: When ``select_after_mutation`` is set and
                ``primary_keys`` is non-empty, a ``SELECT *`` scoped by key
                equality is appended.
            primary_keys: Key column → parameter name for the read-back.
            where_sql: Pre-rendered condition replacing ``where_values``.
        """
        assignments = ", ".join(
            f"{self.format_column(column)} = {self.param_placeholder(param)}"
            for column, param in set_values.items()
        )
        sql = f"UPDATE {self.format_table(table)} SET {assignments}"
        condition = where_sql or self._equalities(where_values)
        if condition:
            sql += f" WHERE {condition}"
        if options is not None and options.select_after_mutation and primary_keys:
            readback = SqlSelectNode(table=table, where_sql=self._equalities(primary_keys))
            sql += f"; {self.select_statement(readback)}"
        return sql

    def delete_statement(
        self,
        table: str,
        where_values: Mapping[str, str],
        *,
        where_sql: str | None = None,
    ) -> str:
        """Render ``DELETE FROM t [WHERE ...]``.

        ``where_sql`` is a pre-rendered condition replacing ``where_values``.
        """
        sql = f"DELETE FROM {self.format_table(table)}"
        condition = where_sql or self._equalities(where_values)
        if condition:
            sql += f" WHERE {condition}"
        return sql

    @abstractmethod
    def identity_value_expression(self, table: str, column: str) -> str:
        """Return an expression yielding the last generated identity value.

        The result is embedded directly in a WHERE clause, so it must not
        rely on a bind parameter.
        """
