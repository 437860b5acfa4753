"""SQL-AST: the dialect-neutral description of a SELECT statement.

Nodes are plain pydantic models with no rendering behaviour; dialects turn
them into SQL text (see :meth:`brickorm.compile.base.SqlDialect.select_statement`).
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OrderTerm(BaseModel):
    """One ``ORDER BY`` term.

    Attributes:
        column: Column name (unquoted).
        descending: ``True`` for ``DESC``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    column: str
    descending: bool = False


class JoinDescriptor(BaseModel):
    """An equality join against another table.

    Attributes:
        table: Joined table name.
        left_column: Qualified column on the base table (``"Person.Id"``).
        right_column: Qualified column on the joined table.
        kind: Join kind; only ``INNER`` is supported.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    table: str
    left_column: str
    right_column: str
    kind: Literal["INNER"] = "INNER"


class FunctionSource(BaseModel):
    """A table-valued function used as the ``FROM`` source.

    Attributes:
        name: Function name, optionally schema-qualified.
        args: Literal arguments rendered inline.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    args: tuple[Any, ...] = ()


class SqlSelectNode(BaseModel):
    """Dialect-neutral SELECT description.

    Attributes:
        table: Source table; mutually exclusive with ``function``.
        function: Table-valued function source.
        columns: Selected column names; empty renders ``*``.
        where_sql: Rendered WHERE condition (placeholders already embedded).
        primary_keys: Key column names of the selected entity.
        skip: Rows to skip.
        take: Rows to return.
        order_by: Ordering terms in declaration order.
        joins: Join descriptors in declaration order.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    table: str | None = None
    function: FunctionSource | None = None
    columns: list[str] = Field(default_factory=list)
    where_sql: str | None = None
    primary_keys: list[str] = Field(default_factory=list)
    skip: int | None = Field(default=None, ge=0)
    take: int | None = Field(default=None, ge=0)
    order_by: list[OrderTerm] = Field(default_factory=list)
    joins: list[JoinDescriptor] = Field(default_factory=list)

    @model_validator(mode="after")
    def _single_source(self) -> SqlSelectNode:
        if self.table is not None and self.function is not None:
            raise ValueError("A SELECT reads from a table or a function, not both.")
        if self.table is None and self.function is None:
            raise ValueError("A SELECT needs a table or a function source.")
        return self

    @property
    def is_paged(self) -> bool:
        return self.skip is not None or self.take is not None
