"""Predicate AST for WHERE clauses.

Predicates are small immutable trees built from four node kinds:

* :class:`Comparison` – ``member OP constant`` (either side may hold the member)
* :class:`Logical`    – binary ``AND`` / ``OR``
* :class:`Membership` – ``member IN (values...)``
* :class:`Not`        – negation (translatable only around a membership)

Trees are normally built with operator sugar on :class:`Member`::

    pred = (member("Age") > 18) & member("Status").in_(["new", "open"])

or parsed from the dict grammar used in JSON configuration::

    parse_predicate({
        "AND": [
            {"GT": [{"col": "Age"}, {"value": 18}]},
            {"IN": [{"col": "Status"}, ["new", "open"]]},
        ]
    })
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from brickorm.errors import UnsupportedExpressionError

# ---------------------------------------------------------------------------
# Operator enums
# ---------------------------------------------------------------------------


class ComparisonOp(str, Enum):
    """Binary comparison operators; the value is the SQL token."""

    EQ = "="
    NE = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="

    def mirrored(self) -> ComparisonOp:
        """Return the operator with operands swapped (``a < b`` ⇔ ``b > a``)."""
        return _MIRRORED.get(self, self)


_MIRRORED = {
    ComparisonOp.GT: ComparisonOp.LT,
    ComparisonOp.LT: ComparisonOp.GT,
    ComparisonOp.GTE: ComparisonOp.LTE,
    ComparisonOp.LTE: ComparisonOp.GTE,
}


class LogicalOp(str, Enum):
    AND = "AND"
    OR = "OR"


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class Predicate:
    """Base class for boolean nodes; provides ``&``, ``|`` and ``~``."""

    def __and__(self, other: Predicate) -> Logical:
        return Logical(LogicalOp.AND, self, other)

    def __or__(self, other: Predicate) -> Logical:
        return Logical(LogicalOp.OR, self, other)

    def __invert__(self) -> Not:
        return Not(self)


@dataclass(frozen=True)
class Constant:
    """A literal value bound as a parameter."""

    value: Any


@dataclass(frozen=True, eq=False)
class Member:
    """Reference to an entity member.

    Comparison operators build :class:`Comparison` nodes instead of
    returning booleans, so ``Member`` compares by identity only.
    """

    name: str

    __hash__ = object.__hash__

    def __eq__(self, other: Any) -> Comparison:  # type: ignore[override]
        return Comparison(ComparisonOp.EQ, self, other)

    def __ne__(self, other: Any) -> Comparison:  # type: ignore[override]
        return Comparison(ComparisonOp.NE, self, other)

    def __gt__(self, other: Any) -> Comparison:
        return Comparison(ComparisonOp.GT, self, other)

    def __ge__(self, other: Any) -> Comparison:
        return Comparison(ComparisonOp.GTE, self, other)

    def __lt__(self, other: Any) -> Comparison:
        return Comparison(ComparisonOp.LT, self, other)

    def __le__(self, other: Any) -> Comparison:
        return Comparison(ComparisonOp.LTE, self, other)

    def in_(self, values: Iterable[Any]) -> Membership:
        return Membership(self, values)

    def not_in(self, values: Iterable[Any]) -> Not:
        return Not(Membership(self, values))


Operand = Union[Member, Constant]


def to_operand(value: Any) -> Any:
    """Wrap plain Python values as :class:`Constant`; pass nodes through."""
    if isinstance(value, (Member, Constant, Predicate)):
        return value
    return Constant(value)


@dataclass(frozen=True, init=False)
class Comparison(Predicate):
    """``left OP right``; one side must be a member, the other a constant."""

    op: ComparisonOp
    left: Any
    right: Any

    def __init__(self, op: ComparisonOp | str, left: Any, right: Any) -> None:
        object.__setattr__(self, "op", ComparisonOp(op))
        object.__setattr__(self, "left", to_operand(left))
        object.__setattr__(self, "right", to_operand(right))


@dataclass(frozen=True)
class Logical(Predicate):
    op: LogicalOp
    left: Predicate
    right: Predicate


@dataclass(frozen=True, init=False)
class Membership(Predicate):
    """``member IN (values...)``; values are snapshotted into a tuple."""

    member: Member
    values: tuple[Any, ...]

    def __init__(self, member: Member | str, values: Iterable[Any]) -> None:
        if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            raise UnsupportedExpressionError(
                "Membership test requires a collection of values.", expression=values
            )
        object.__setattr__(self, "member", Member(member) if isinstance(member, str) else member)
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class Not(Predicate):
    operand: Predicate


def member(name: str) -> Member:
    """Shorthand for ``Member(name)``."""
    return Member(name)


# ---------------------------------------------------------------------------
# Dict grammar
# ---------------------------------------------------------------------------

_DICT_COMPARISONS: dict[str, ComparisonOp] = {
    "EQ": ComparisonOp.EQ,
    "NE": ComparisonOp.NE,
    "GT": ComparisonOp.GT,
    "GTE": ComparisonOp.GTE,
    "LT": ComparisonOp.LT,
    "LTE": ComparisonOp.LTE,
}


def _parse_operand(raw: Any) -> Any:
    if isinstance(raw, dict) and len(raw) == 1:
        if "col" in raw:
            return Member(raw["col"])
        if "value" in raw:
            return Constant(raw["value"])
    raise UnsupportedExpressionError(
        f"Operand must be {{'col': ...}} or {{'value': ...}}, got {raw!r}.", expression=raw
    )


def parse_predicate(raw: dict[str, Any]) -> Predicate:
    """Build a predicate tree from the dict grammar.

    Supported keys: ``EQ``, ``NE``, ``GT``, ``GTE``, ``LT``, ``LTE`` (two
    operands), ``AND`` / ``OR`` (two or more predicates, folded left),
    ``IN`` / ``NOT_IN`` (``[{"col": ...}, [values...]]``) and ``NOT``.

    Raises:
        UnsupportedExpressionError: On any other shape.
    """
    if not isinstance(raw, dict) or len(raw) != 1:
        raise UnsupportedExpressionError(f"Invalid predicate shape: {raw!r}", expression=raw)
    op, args = next(iter(raw.items()))

    if op in _DICT_COMPARISONS:
        if not isinstance(args, list) or len(args) != 2:
            raise UnsupportedExpressionError(f"'{op}' takes exactly two operands.", expression=raw)
        return Comparison(_DICT_COMPARISONS[op], _parse_operand(args[0]), _parse_operand(args[1]))

    if op in ("AND", "OR"):
        if not isinstance(args, list) or len(args) < 2:
            raise UnsupportedExpressionError(f"'{op}' takes two or more predicates.", expression=raw)
        result = parse_predicate(args[0])
        for item in args[1:]:
            result = Logical(LogicalOp(op), result, parse_predicate(item))
        return result

    if op in ("IN", "NOT_IN"):
        if not isinstance(args, list) or len(args) != 2:
            raise UnsupportedExpressionError(
                f"'{op}' takes a column and a list of values.", expression=raw
            )
        target = _parse_operand(args[0])
        if not isinstance(target, Member):
            raise UnsupportedExpressionError(f"'{op}' must test a column.", expression=raw)
        test = Membership(target, args[1])
        return Not(test) if op == "NOT_IN" else test

    if op == "NOT":
        return Not(parse_predicate(args))

    raise UnsupportedExpressionError(f"Unknown predicate operator '{op}'.", expression=raw)
