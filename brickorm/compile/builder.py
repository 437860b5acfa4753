"""Query chain → SqlSelectNode → parameterized SELECT.

``QueryBuilder`` walks a query chain once, from the outermost node back to
the root, collecting paging, function source, ordering, joins and filters.
The collected intent is resolved against the entity metadata and rendered
by the injected :class:`~brickorm.compile.base.SqlDialect`.

Resolution rules
----------------
* Skip / Take / function source: the last call wins.
* Ordering and joins: applied in declaration order (each unwrapped term
  is inserted at the front).
* Filters: ``(outer) AND (inner)``; parameters are numbered outer first.
* Entity type: explicit ``where(..., entity=...)`` > query root > the
  caller-supplied element type.
"""

from __future__ import annotations

import structlog

from brickorm.compile.base import CompiledSQL, SqlDialect
from brickorm.compile.context import CompilationContext, ParameterSet
from brickorm.compile.predicate import PredicateTranslator
from brickorm.errors import ConfigurationError
from brickorm.schema.entity import metadata_for
from brickorm.schema.options import DEFAULT_OPTIONS, Options
from brickorm.schema.query_chain import (
    FunctionNode,
    JoinNode,
    OrderNode,
    QueryNode,
    RootNode,
    SkipNode,
    TakeNode,
    WhereNode,
)
from brickorm.schema.sql_ast import FunctionSource, JoinDescriptor, OrderTerm, SqlSelectNode

logger = structlog.get_logger()


class QueryBuilder:
    """Compiles query chains to parameterized SELECT statements.

    Args:
        dialect: Dialect-specific renderer.
    """

    def __init__(self, dialect: SqlDialect) -> None:
        self._dialect = dialect

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(
        self,
        node: QueryNode,
        element_type: type | None = None,
        options: Options | None = None,
    ) -> CompiledSQL:
        """Compile the chain ending at ``node``.

        Args:
            node: Outermost node of the query chain.
            element_type: Fallback entity type when neither a filter nor the
                root names one.
            options: Statement options (``table_name`` overrides the table).

        Returns:
            :class:`~brickorm.compile.base.CompiledSQL` with ``sql`` and
            ``params``.

        Raises:
            ConfigurationError: If the entity type cannot be resolved.
            UnsupportedExpressionError: If a filter cannot be translated.
        """
        params = ParameterSet()
        ast = self.build_ast(node, params, element_type, options)
        sql = self._dialect.select_statement(ast, params.values())
        logger.debug("query_compiled", sql=sql, dialect=self._dialect.dialect_name)
        return CompiledSQL(sql=sql, params=dict(params.params), dialect=self._dialect.dialect_name)

    def build_ast(
        self,
        node: QueryNode,
        params: ParameterSet,
        element_type: type | None = None,
        options: Options | None = None,
    ) -> SqlSelectNode:
        """Resolve the chain into a :class:`SqlSelectNode`, filling ``params``."""
        skip = take = None
        function = None
        orders: list[OrderNode] = []
        joins: list[JoinNode] = []
        filters: list[WhereNode] = []
        filter_type = None

        current = node
        while not isinstance(current, RootNode):
            if isinstance(current, SkipNode):
                skip = current.count if skip is None else skip
            elif isinstance(current, TakeNode):
                take = current.count if take is None else take
            elif isinstance(current, FunctionNode):
                if function is None:
                    function = FunctionSource(name=current.name, args=current.args)
            elif isinstance(current, OrderNode):
                orders.insert(0, current)
            elif isinstance(current, JoinNode):
                joins.insert(0, current)
            elif isinstance(current, WhereNode):
                filters.append(current)
                filter_type = filter_type or current.entity_type
            else:
                raise ConfigurationError(f"Unknown query node: {type(current).__name__}")
            current = current.source

        entity_type = filter_type or current.entity_type or element_type
        if entity_type is None:
            raise ConfigurationError("Cannot resolve the entity type of the query.")
        meta = metadata_for(entity_type)
        table = (options or DEFAULT_OPTIONS).resolve_table(meta.table_name)
        qualifier = table if joins and function is None else None

        translator = PredicateTranslator(CompilationContext(self._dialect, meta, qualifier), params)
        where_sql = None
        conditions = [translator.translate(f.predicate) for f in filters]
        for condition in reversed(conditions):
            where_sql = condition if where_sql is None else f"({condition}) AND ({where_sql})"

        join_descriptors = []
        for join in joins:
            inner = metadata_for(join.inner_type)
            join_descriptors.append(
                JoinDescriptor(
                    table=inner.table_name,
                    left_column=f"{table}.{meta.column_for(join.outer_key)}",
                    right_column=f"{inner.table_name}.{inner.column_for(join.inner_key)}",
                )
            )

        return SqlSelectNode(
            table=None if function else table,
            function=function,
            columns=[c.column_name for c in meta.mapped_columns],
            where_sql=where_sql,
            primary_keys=[c.column_name for c in meta.key_columns],
            skip=skip,
            take=take,
            order_by=[
                OrderTerm(column=meta.column_for(o.member), descending=o.descending)
                for o in orders
            ],
            joins=join_descriptors,
        )
