"""Immutable query-chain nodes.

Each :class:`~brickorm.query.SqlQuery` call wraps the previous node,
so a query is a singly linked list from the outermost call back to a
:class:`RootNode`.  Nodes are never mutated; sharing a prefix between two
queries is safe.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RootNode:
    entity_type: type | None = None


@dataclass(frozen=True)
class WhereNode:
    source: Any
    predicate: Any
    entity_type: type | None = None


@dataclass(frozen=True)
class OrderNode:
    """``order_by`` / ``then_by`` term."""

    source: Any
    member: str
    descending: bool = False


@dataclass(frozen=True)
class SkipNode:
    source: Any
    count: int


@dataclass(frozen=True)
class TakeNode:
    source: Any
    count: int


@dataclass(frozen=True)
class JoinNode:
    source: Any
    inner_type: type
    outer_key: str
    inner_key: str


@dataclass(frozen=True)
class FunctionNode:
    source: Any
    name: str
    args: tuple[Any, ...] = ()


QueryNode = RootNode | WhereNode | OrderNode | SkipNode | TakeNode | JoinNode | FunctionNode


def entity_type_of(node: QueryNode, fallback: type | None = None) -> type | None:
    """Resolve the element type of a chain.

    The first filter carrying an explicit entity type wins, then the root's
    type, then ``fallback``.
    """
    current = node
    while not isinstance(current, RootNode):
        if isinstance(current, WhereNode) and current.entity_type is not None:
            return current.entity_type
        current = current.source
    return current.entity_type or fallback
