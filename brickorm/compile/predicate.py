"""Predicate AST → SQL boolean expression.

``PredicateTranslator`` is a recursive-descent walker over
:mod:`brickorm.schema.expressions` nodes.  Constants are appended to the
shared :class:`~brickorm.compile.context.ParameterSet` in encounter order
(left to right, depth first), so ``a > 1 AND b IN (2, 3)`` binds
``[1, 2, 3]``.
"""
from __future__ import annotations

from typing import Any

from brickorm.compile.context import CompilationContext, ParameterSet
from brickorm.errors import UnsupportedExpressionError
from brickorm.schema.expressions import (
    Comparison,
    ComparisonOp,
    Constant,
    Logical,
    Member,
    Membership,
    Not,
    parse_predicate,
)


class PredicateTranslator:
    """Compiles predicate trees to SQL fragments.

    Args:
        ctx: Static translation context (dialect + entity metadata).
        params: Shared parameter accumulator for the statement.
    """

    def __init__(self, ctx: CompilationContext, params: ParameterSet) -> None:
        self._ctx = ctx
        self._params = params

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def translate(self, predicate: Any) -> str:
        """Compile ``predicate`` (a node or a dict-grammar mapping) to SQL.

        Raises:
            UnsupportedExpressionError: For any shape other than logical
                AND/OR, member-vs-constant comparison, membership and
                negated membership.
        """
        if isinstance(predicate, dict):
            predicate = parse_predicate(predicate)
        if isinstance(predicate, Logical):
            left = self.translate(predicate.left)
            right = self.translate(predicate.right)
            return f"({left}) {predicate.op.value} ({right})"
        if isinstance(predicate, Comparison):
            return self._comparison(predicate)
        if isinstance(predicate, Membership):
            return self._membership(predicate, negated=False)
        if isinstance(predicate, Not) and isinstance(predicate.operand, Membership):
            return self._membership(predicate.operand, negated=True)
        raise UnsupportedExpressionError(
            f"Unsupported predicate: {predicate!r}", expression=predicate
        )

    def split_comparison(self, predicate: Any) -> tuple[str, ComparisonOp, Any]:
        """Return ``(column, operator, value)`` for a single comparison.

        The operator is normalized so the column is on the left.

        Raises:
            UnsupportedExpressionError: If ``predicate`` is not a single
                member-vs-constant comparison.
        """
        if isinstance(predicate, dict):
            predicate = parse_predicate(predicate)
        if not isinstance(predicate, Comparison):
            raise UnsupportedExpressionError(
                "Only a single binary comparison is supported here.", expression=predicate
            )
        target, op, constant = self._orient(predicate)
        return self._resolve_column(target), op, constant.value

    # ------------------------------------------------------------------
    # Node compilers
    # ------------------------------------------------------------------

    @staticmethod
    def _orient(node: Comparison) -> tuple[Member, ComparisonOp, Constant]:
        if isinstance(node.left, Member) and isinstance(node.right, Constant):
            return node.left, node.op, node.right
        if isinstance(node.left, Constant) and isinstance(node.right, Member):
            return node.right, node.op.mirrored(), node.left
        raise UnsupportedExpressionError(
            "A comparison needs one member and one constant operand.", expression=node
        )

    def _comparison(self, node: Comparison) -> str:
        target, op, constant = self._orient(node)
        column = self._column(target)
        if constant.value is None:
            if op is ComparisonOp.EQ:
                return f"{column} IS NULL"
            if op is ComparisonOp.NE:
                return f"{column} IS NOT NULL"
            raise UnsupportedExpressionError(
                f"Cannot compare with NULL using '{op.value}'.", expression=node
            )
        placeholder = self._ctx.dialect.param_placeholder(self._params.add_value(constant.value))
        return f"{column} {op.value} {placeholder}"

    def _membership(self, node: Membership, negated: bool) -> str:
        column = self._column(node.member)
        if not node.values:
            # IN () is not valid SQL; an empty set matches nothing.
            return "1 = 1" if negated else "1 = 0"
        placeholders = ", ".join(
            self._ctx.dialect.param_placeholder(self._params.add_value(v)) for v in node.values
        )
        keyword = "NOT IN" if negated else "IN"
        return f"{column} {keyword} ({placeholders})"

    # ------------------------------------------------------------------
    # Column resolution
    # ------------------------------------------------------------------

    def _resolve_column(self, target: Member) -> str:
        meta = self._ctx.metadata
        if meta is None:
            return target.name
        mapping = meta.column(target.name)
        if mapping is not None and mapping.not_mapped:
            raise UnsupportedExpressionError(
                f"Member '{target.name}' is not mapped to a column.", expression=target
            )
        return meta.column_for(target.name)

    def _column(self, target: Member) -> str:
        return self._ctx.format_member(self._resolve_column(target))
