"""Statically declared entity metadata.

Every entity type is described by an :class:`EntityMetadata`: the table it
lives in and an ordered list of :class:`Column` mappings carrying the key,
generation and not-mapped flags.  Metadata is declared once on the class and
resolved (then cached) by :func:`metadata_for`::

    @entity(
        Column(name="Id", key=True, generated=Generated.IDENTITY),
        Column(name="Email", column="email_address"),
        table="Person",
    )
    @dataclass
    class Person:
        Id: int | None = None
        Email: str = ""
        Age: int = 0

Fields of dataclasses and pydantic models that are not listed become plain
columns, in field declaration order.  A class may also assign a complete
``EntityMetadata`` to ``__entity__`` directly.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from brickorm.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------


class Generated(str, Enum):
    """How the database produces a column's value."""

    NONE = "none"
    IDENTITY = "identity"
    COMPUTED = "computed"


class Column(BaseModel):
    """Mapping of one entity member to a table column.

    Attributes:
        name: Member (attribute) name on the entity.
        column: Column name override; defaults to ``name``.
        key: Whether the column is part of the primary key.
        generated: Identity / computed generation mode.
        not_mapped: Excludes the member from every statement.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    column: str | None = None
    key: bool = False
    generated: Generated = Generated.NONE
    not_mapped: bool = False

    @property
    def column_name(self) -> str:
        """Returns the column name used in SQL."""
        return self.column or self.name

    @property
    def is_identity(self) -> bool:
        return self.generated is Generated.IDENTITY

    @property
    def is_generated(self) -> bool:
        """True for identity and computed columns."""
        return self.generated is not Generated.NONE


# ---------------------------------------------------------------------------
# Entity metadata
# ---------------------------------------------------------------------------


def _normalize(name: str) -> str:
    return name.replace("_", "").lower()


class EntityMetadata(BaseModel):
    """Resolved schema description of an entity type.

    Attributes:
        name: The entity type name (last-resort table name).
        table: Declared table name, if any.
        columns: Ordered column mappings, including not-mapped members.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    table: str | None = None
    columns: list[Column] = Field(default_factory=list)

    @property
    def table_name(self) -> str:
        """Declared table name, falling back to the type name."""
        return self.table or self.name

    @property
    def mapped_columns(self) -> list[Column]:
        return [c for c in self.columns if not c.not_mapped]

    @property
    def key_columns(self) -> list[Column]:
        return [c for c in self.mapped_columns if c.key]

    def column(self, member: str) -> Column | None:
        """Return the mapping for ``member``, or ``None`` if undeclared."""
        for col in self.columns:
            if col.name == member:
                return col
        return None

    def column_for(self, member: str) -> str:
        """Resolve a member name to its column name.

        Undeclared members map to a column of the same name.
        """
        col = self.column(member)
        return col.column_name if col is not None else member

    def values(self, instance: Any) -> Iterator[tuple[Column, Any]]:
        """Yield ``(column, current value)`` for every mapped member."""
        for col in self.mapped_columns:
            yield col, getattr(instance, col.name, None)

    def materialize(self, entity_type: type, row: Mapping[str, Any]) -> Any:
        """Build an ``entity_type`` instance from a result row.

        Row keys are matched to members by column name, ignoring case and
        underscores, so ``first_name`` and ``FIRSTNAME`` both populate a
        ``FirstName`` member.  Row keys with no matching member are ignored.

        Args:
            entity_type: Class to instantiate.
            row: Column name → value mapping for one result row.

        Returns:
            The populated instance.
        """
        lookup: dict[str, str] = {}
        for col in self.mapped_columns:
            lookup.setdefault(_normalize(col.column_name), col.name)
            lookup.setdefault(_normalize(col.name), col.name)

        values: dict[str, Any] = {}
        for key, value in row.items():
            member = lookup.get(_normalize(str(key)))
            if member is not None and member not in values:
                values[member] = value

        if dataclasses.is_dataclass(entity_type) or issubclass(entity_type, BaseModel):
            return entity_type(**values)
        instance = entity_type()
        for member, value in values.items():
            setattr(instance, member, value)
        return instance


# ---------------------------------------------------------------------------
# Declaration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntityDeclaration:
    """Columns and table declared with :func:`entity`.

    Resolved against the class's fields lazily, so the decorator may sit
    above or below ``@dataclass``.
    """

    columns: tuple[Column, ...]
    table: str | None = None


def entity(*columns: Column, table: str | None = None) -> Callable[[type], type]:
    """Class decorator declaring table and column metadata.

    Args:
        *columns: Column mappings overriding or extending the class fields.
        table: Declared table name.

    Returns:
        A decorator that attaches the declaration and returns the class.
    """

    def decorator(cls: type) -> type:
        cls.__entity__ = EntityDeclaration(columns=tuple(columns), table=table)
        _CACHE.pop(cls, None)
        return cls

    return decorator


_CACHE: dict[type, EntityMetadata] = {}


def _field_names(entity_type: type) -> list[str] | None:
    if dataclasses.is_dataclass(entity_type):
        return [f.name for f in dataclasses.fields(entity_type)]
    if isinstance(entity_type, type) and issubclass(entity_type, BaseModel):
        return list(entity_type.model_fields)
    return None


def _resolve(entity_type: type) -> EntityMetadata:
    declared = entity_type.__dict__.get("__entity__")
    if isinstance(declared, EntityMetadata):
        return declared

    fields = _field_names(entity_type)
    if declared is None and fields is None:
        raise ConfigurationError(
            f"Type '{entity_type.__name__}' has no entity metadata. "
            "Decorate it with @entity or make it a dataclass or pydantic model.",
            entity=entity_type,
        )

    explicit = {c.name: c for c in declared.columns} if declared else {}
    columns = [explicit.pop(name, None) or Column(name=name) for name in fields or []]
    columns.extend(explicit.values())
    return EntityMetadata(
        name=entity_type.__name__,
        table=declared.table if declared else None,
        columns=columns,
    )


def metadata_for(entity_type: type) -> EntityMetadata:
    """Return the cached :class:`EntityMetadata` for ``entity_type``.

    Raises:
        ConfigurationError: If the type declares no metadata and has no
            dataclass or pydantic fields to derive it from.
    """
    meta = _CACHE.get(entity_type)
    if meta is None:
        meta = _CACHE[entity_type] = _resolve(entity_type)
    return meta
