"""Chainable, immutable query description.

``SqlQuery`` accumulates intent (filters, ordering, paging, joins, a
function source) without executing anything.  Every call returns a new
query sharing the previous chain::

    adults = SqlQuery(PostgresDialect(), Person).where(member("Age") >= 18)
    page = adults.order_by("LastName").then_by("FirstName").skip(20).take(10)
    sql, params = page.to_sql()

``adults`` is unchanged by the second line.  Mutation statements for the
same entity type are available through :meth:`SqlQuery.to_insert_sql`,
:meth:`SqlQuery.to_update_sql` and :meth:`SqlQuery.to_delete_sql`.
"""
from __future__ import annotations

from typing import Any

from brickorm.compile.base import CompiledSQL, SqlDialect
from brickorm.compile.builder import QueryBuilder
from brickorm.compile.statements import StatementBuilder
from brickorm.errors import ArgumentError, ConfigurationError
from brickorm.schema.expressions import Member
from brickorm.schema.options import Options
from brickorm.schema.query_chain import (
    FunctionNode,
    JoinNode,
    OrderNode,
    QueryNode,
    RootNode,
    SkipNode,
    TakeNode,
    WhereNode,
    entity_type_of,
)


def _member_name(member: Member | str) -> str:
    return member.name if isinstance(member, Member) else member


def _count(value: int, argument: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ArgumentError(f"'{argument}' must be a non-negative integer.", argument=argument)
    return value


class SqlQuery:
    """Immutable query over one entity type.

    Args:
        dialect: Renderer used by :meth:`to_sql`.
        entity_type: Element type of the query.
        node: Existing chain to continue; a fresh root by default.
    """

    def __init__(
        self,
        dialect: SqlDialect,
        entity_type: type | None = None,
        node: QueryNode | None = None,
    ) -> None:
        self._dialect = dialect
        self.entity_type = entity_type
        self._node = node if node is not None else RootNode(entity_type)

    @property
    def node(self) -> QueryNode:
        """The outermost node of the chain."""
        return self._node

    @property
    def dialect(self) -> SqlDialect:
        return self._dialect

    @property
    def element_type(self) -> type | None:
        """Entity type the query materializes, honouring explicit filter types."""
        return entity_type_of(self._node, self.entity_type)

    def _chain(self, node: QueryNode) -> SqlQuery:
        return SqlQuery(self._dialect, self.entity_type, node)

    # ------------------------------------------------------------------
    # Chain operations
    # ------------------------------------------------------------------

    def where(self, predicate: Any, entity: type | None = None) -> SqlQuery:
        """Filter by ``predicate``; ``entity`` pins the entity type explicitly."""
        return self._chain(WhereNode(self._node, predicate, entity))

    def order_by(self, member: Member | str) -> SqlQuery:
        return self._chain(OrderNode(self._node, _member_name(member)))

    def order_by_descending(self, member: Member | str) -> SqlQuery:
        return self._chain(OrderNode(self._node, _member_name(member), descending=True))

    def then_by(self, member: Member | str) -> SqlQuery:
        return self._then(member, descending=False)

    def then_by_descending(self, member: Member | str) -> SqlQuery:
        return self._then(member, descending=True)

    def _then(self, member: Member | str, descending: bool) -> SqlQuery:
        if not isinstance(self._node, OrderNode):
            raise ArgumentError("then_by must directly follow an ordering.", argument="member")
        return self._chain(OrderNode(self._node, _member_name(member), descending=descending))

    def skip(self, count: int) -> SqlQuery:
        return self._chain(SkipNode(self._node, _count(count, "skip")))

    def take(self, count: int) -> SqlQuery:
        return self._chain(TakeNode(self._node, _count(count, "take")))

    def join(
        self,
        inner_type: type,
        outer_key: Member | str,
        inner_key: Member | str,
    ) -> SqlQuery:
        """Inner-join ``inner_type`` on ``outer.outer_key = inner.inner_key``."""
        return self._chain(
            JoinNode(self._node, inner_type, _member_name(outer_key), _member_name(inner_key))
        )

    def from_function(self, name: str, *args: Any) -> SqlQuery:
        """Read from the table-valued function ``name(args...)``."""
        return self._chain(FunctionNode(self._node, name, tuple(args)))

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    def to_sql(self, options: Options | None = None) -> CompiledSQL:
        """Compile the chain to a parameterized SELECT."""
        return QueryBuilder(self._dialect).build(self._node, self.entity_type, options)

    def to_insert_sql(self, entity: Any, options: Options | None = None) -> CompiledSQL:
        return StatementBuilder(self._dialect).build_insert(entity, options)

    def to_update_sql(
        self,
        entity: Any,
        where: Any = None,
        options: Options | None = None,
    ) -> CompiledSQL:
        return StatementBuilder(self._dialect).build_update(entity, where, options)

    def to_delete_sql(
        self,
        where: Any = None,
        *,
        entity: Any = None,
        keys: Any = None,
        options: Options | None = None,
    ) -> CompiledSQL:
        """Compile a DELETE by predicate, by key values, or for an instance.

        Raises:
            ConfigurationError: If no entity type is known, or ``entity`` has
                no key columns.
        """
        builder = StatementBuilder(self._dialect)
        if entity is not None:
            return builder.build_delete_entity(entity, options)
        if self.entity_type is None:
            raise ConfigurationError("A delete needs an entity type.")
        return builder.build_delete(self.entity_type, where, keys=keys, options=options)

    def __repr__(self) -> str:
        name = self.entity_type.__name__ if self.entity_type else None
        return f"SqlQuery(entity={name}, dialect={self._dialect.dialect_name!r})"
