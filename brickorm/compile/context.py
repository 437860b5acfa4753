"""Compilation context and parameter accumulator.

``CompilationContext`` packages the static inputs of one translation
(dialect, entity metadata, column qualifier); ``ParameterSet`` is the
mutable per-statement parameter state threaded through every builder so
that placeholder names stay unique across the whole statement.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from brickorm.compile.base import SqlDialect
from brickorm.schema.entity import EntityMetadata

_UNSAFE = re.compile(r"\W")


@dataclass(frozen=True)
class CompilationContext:
    """Immutable context for a single translation.

    Attributes:
        dialect: Renderer for placeholders and identifiers.
        metadata: Entity metadata used to resolve member names to columns;
            ``None`` leaves member names unchanged.
        qualifier: Table name prefixed to columns (set when joins make
            bare column names ambiguous).
    """

    dialect: SqlDialect
    metadata: EntityMetadata | None = None
    qualifier: str | None = None

    def format_member(self, column: str) -> str:
        if self.qualifier:
            return self.dialect.format_table(f"{self.qualifier}.{column}")
        return self.dialect.format_column(column)


@dataclass
class ParameterSet:
    """Ordered parameter name → value mapping for one statement.

    Generated names are ``p0``, ``p1``, ...; named parameters keep a
    sanitized form of their hint (``FirstName``), suffixed on collision.
    Insertion order is preserved, so ``values()`` lists parameters in the
    order their placeholders were emitted.
    """

    params: dict[str, Any] = field(default_factory=dict)
    _counter: int = 0

    def add_value(self, value: Any) -> str:
        """Store ``value`` under the next generated name and return it."""
        name = f"p{self._counter}"
        while name in self.params:
            self._counter += 1
            name = f"p{self._counter}"
        self._counter += 1
        self.params[name] = value
        return name

    def add_named(self, hint: str, value: Any) -> str:
        """Store ``value`` under a name derived from ``hint`` and return it."""
        base = _UNSAFE.sub("_", hint) or "param"
        if base[0].isdigit():
            base = f"_{base}"
        name, suffix = base, 1
        while name in self.params:
            name = f"{base}_{suffix}"
            suffix += 1
        self.params[name] = value
        return name

    def values(self) -> list[Any]:
        return list(self.params.values())

    def __len__(self) -> int:
        return len(self.params)
