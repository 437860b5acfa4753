"""INSERT / UPDATE / DELETE generation from entities and metadata.

``StatementBuilder`` decides *which* columns and parameters take part in a
mutation; the injected :class:`~brickorm.compile.base.SqlDialect` decides
how they are spelled.  Table names resolve uniformly as
``Options.table_name`` > declared table > type name.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import BaseModel

from brickorm.compile.base import CompiledSQL, SqlDialect
from brickorm.compile.context import CompilationContext, ParameterSet
from brickorm.compile.predicate import PredicateTranslator
from brickorm.errors import ArgumentError, ConfigurationError
from brickorm.schema.entity import Column, EntityMetadata, metadata_for
from brickorm.schema.options import DEFAULT_OPTIONS, Options
from brickorm.schema.sql_ast import SqlSelectNode

logger = structlog.get_logger()


@dataclass(frozen=True)
class KeyInfo:
    """A primary-key column of a concrete entity.

    Attributes:
        column: Column name.
        value: Current member value (``None`` for unsaved identity keys).
        identity: Whether the database generates the value on insert.
    """

    column: str
    value: Any
    identity: bool


def member_values(obj: Any) -> dict[str, Any]:
    """Return the public member values of a mapping, dataclass, model or object.

    Raises:
        ArgumentError: If ``obj`` is ``None``.
    """
    if obj is None:
        raise ArgumentError("Key values must not be None.", argument="keys")
    if isinstance(obj, Mapping):
        return dict(obj)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, BaseModel):
        return dict(obj)
    return {k: v for k, v in vars(obj).items() if not k.startswith("_")}


class StatementBuilder:
    """Builds parameterized mutation statements.

    Args:
        dialect: Renderer for the target backend.
    """

    def __init__(self, dialect: SqlDialect) -> None:
        self._dialect = dialect

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def key_info(self, entity: Any) -> list[KeyInfo]:
        """Return the key columns of ``entity`` with their current values."""
        meta = metadata_for(type(entity))
        return [
            KeyInfo(col.column_name, getattr(entity, col.name, None), col.is_identity)
            for col in meta.key_columns
        ]

    def build_insert(self, entity: Any, options: Options | None = None) -> CompiledSQL:
        """Compile an INSERT for ``entity``.

        Identity and computed columns are left out of the value list.  With
        ``select_after_mutation``, a ``SELECT *`` follows, matching each key
        either to its bound value or to the dialect's identity expression.
        """
        opts = options or DEFAULT_OPTIONS
        meta = metadata_for(type(entity))
        table = opts.resolve_table(meta.table_name)
        params = ParameterSet()

        columns: list[str] = []
        names: list[str] = []
        for col, value in meta.values(entity):
            if col.is_generated:
                continue
            columns.append(col.column_name)
            names.append(params.add_named(col.column_name, value))
        bound = dict(zip(columns, names))

        sql = self._dialect.insert_statement(table, columns, names, opts)
        keys = self.key_info(entity)
        if opts.select_after_mutation and keys:
            sql = f"{sql}; {self._readback(table, keys, params, bound)}"
        return self._compiled(sql, params)

    def build_update(
        self,
        entity: Any,
        where: Any = None,
        options: Options | None = None,
    ) -> CompiledSQL:
        """Compile an UPDATE for ``entity``.

        Without ``where``, the statement matches on the entity's key columns.
        With ``where`` (a single member-vs-constant comparison), the entity's
        non-key members are written to every row matching it.

        Raises:
            ConfigurationError: If key matching is needed but the entity has
                no key columns, or nothing is left to update.
            UnsupportedExpressionError: If ``where`` is not a single
                comparison.
        """
        opts = options or DEFAULT_OPTIONS
        meta = metadata_for(type(entity))
        table = opts.resolve_table(meta.table_name)
        params = ParameterSet()
        keys = meta.key_columns
        if where is None and not keys:
            raise ConfigurationError(
                f"Entity '{meta.name}' has no key columns; cannot update by key.",
                entity=type(entity),
            )

        set_values: dict[str, str] = {}
        for col, value in meta.values(entity):
            if col.key or col.is_generated:
                continue
            set_values[col.column_name] = params.add_named(col.column_name, value)
        if not set_values:
            raise ConfigurationError(
                f"Entity '{meta.name}' has no updatable columns.", entity=type(entity)
            )

        where_values: dict[str, str] = {}
        where_sql = None
        if where is None:
            for col in keys:
                where_values[col.column_name] = params.add_named(
                    col.column_name, getattr(entity, col.name, None)
                )
            primary_keys = dict(where_values)
        else:
            translator = PredicateTranslator(CompilationContext(self._dialect, meta), params)
            translator.split_comparison(where)
            where_sql = translator.translate(where)
            primary_keys = {}
            if opts.select_after_mutation:
                for col in keys:
                    primary_keys[col.column_name] = params.add_named(
                        col.column_name, getattr(entity, col.name, None)
                    )

        sql = self._dialect.update_statement(
            table, set_values, where_values, opts, primary_keys, where_sql=where_sql
        )
        return self._compiled(sql, params)

    def build_delete(
        self,
        entity_type: type,
        where: Any = None,
        *,
        keys: Any = None,
        options: Options | None = None,
    ) -> CompiledSQL:
        """Compile a DELETE against ``entity_type``'s table.

        Args:
            entity_type: The mapped entity type.
            where: Predicate node or dict-grammar mapping.
            keys: Member → value mapping (or an object whose public members
                are used) combined into an equality-AND condition.  Ignored
                when ``where`` is given.
            options: Statement options.

        With neither ``where`` nor ``keys`` every row is deleted.
        """
        opts = options or DEFAULT_OPTIONS
        meta = metadata_for(entity_type)
        table = opts.resolve_table(meta.table_name)
        params = ParameterSet()

        where_values: dict[str, str] = {}
        where_sql = None
        if where is not None:
            ctx = CompilationContext(self._dialect, meta)
            where_sql = PredicateTranslator(ctx, params).translate(where)
        elif keys is not None:
            for name, value in member_values(keys).items():
                column = meta.column_for(name)
                where_values[column] = params.add_named(column, value)

        sql = self._dialect.delete_statement(table, where_values, where_sql=where_sql)
        if not where_sql and not where_values:
            logger.warning("delete_without_where", table=table)
        return self._compiled(sql, params)

    def build_delete_entity(self, entity: Any, options: Options | None = None) -> CompiledSQL:
        """Compile a DELETE matching ``entity`` by its key columns.

        Raises:
            ConfigurationError: If the entity type has no key columns.
        """
        meta = metadata_for(type(entity))
        keys = self.require_keys(meta, type(entity))
        values = {col.name: getattr(entity, col.name, None) for col in keys}
        return self.build_delete(type(entity), keys=values, options=options)

    @staticmethod
    def require_keys(meta: EntityMetadata, entity_type: type) -> list[Column]:
        """Return ``meta``'s key columns, raising if there are none."""
        keys = meta.key_columns
        if not keys:
            raise ConfigurationError(
                f"Entity '{meta.name}' has no key columns.", entity=entity_type
            )
        return keys

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _readback(
        self,
        table: str,
        keys: list[KeyInfo],
        params: ParameterSet,
        bound: dict[str, str],
    ) -> str:
        terms = []
        for key in keys:
            if key.identity:
                value_sql = self._dialect.identity_value_expression(table, key.column)
            else:
                name = bound.get(key.column) or params.add_named(key.column, key.value)
                value_sql = self._dialect.param_placeholder(name)
            terms.append(f"{self._dialect.format_column(key.column)} = {value_sql}")
        node = SqlSelectNode(
            table=table,
            where_sql=" AND ".join(terms),
            primary_keys=[k.column for k in keys],
        )
        return self._dialect.select_statement(node)

    def _compiled(self, sql: str, params: ParameterSet) -> CompiledSQL:
        logger.debug("statement_compiled", sql=sql, dialect=self._dialect.dialect_name)
        return CompiledSQL(sql=sql, params=dict(params.params), dialect=self._dialect.dialect_name)
