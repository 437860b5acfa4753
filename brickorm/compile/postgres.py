"""PostgreSQL dialect with optional identifier case folding."""
from __future__ import annotations

from enum import Enum

from brickorm.compile.base import ParamStyle, SqlDialect
from brickorm.schema.sql_ast import SqlSelectNode


class CaseFolding(str, Enum):
    """How member names are mapped onto PostgreSQL identifiers."""

    NONE = "none"
    LOWER = "lower"
    LOWER_SNAKE = "lower_snake"


def to_lower_snake_case(name: str) -> str:
    """Convert ``CreateDateUTC`` to ``create_date_utc``.

    An underscore is inserted before an upper-case letter that follows a
    lower-case letter or digit; whitespace, ``-`` and ``.`` become ``_``.
    """
    out: list[str] = []
    prev_lower_or_digit = False
    for ch in name:
        if ch.isupper():
            if prev_lower_or_digit:
                out.append("_")
            out.append(ch.lower())
            prev_lower_or_digit = False
        elif ch.isspace() or ch in "-.":
            out.append("_")
            prev_lower_or_digit = False
        else:
            out.append(ch)
            prev_lower_or_digit = ch.islower() or ch.isdigit()
    return "".join(out)


class PostgresDialect(SqlDialect):
    """Renders PostgreSQL SQL.

    Identifiers are double-quoted (``"`` doubled).  Paging uses
    ``LIMIT m OFFSET n``.  With ``case_folding`` enabled, member names are
    folded before quoting and SELECT lists alias the folded column back to
    the member name (``"first_name" AS "FirstName"``) so rows map onto
    entities unchanged.

    Args:
        param_style: Placeholder syntax; ``@name`` by default,
            ``ParamStyle.PYFORMAT`` for psycopg.
        case_folding: Identifier folding mode.
    """

    def __init__(
        self,
        param_style: ParamStyle | str | None = None,
        case_folding: CaseFolding | str = CaseFolding.NONE,
    ) -> None:
        super().__init__(param_style)
        self.case_folding = CaseFolding(case_folding)

    @property
    def dialect_name(self) -> str:
        return "postgres"

    def fold_identifier(self, name: str) -> str:
        if self.case_folding is CaseFolding.LOWER:
            return name.lower()
        if self.case_folding is CaseFolding.LOWER_SNAKE:
            return to_lower_snake_case(name)
        return name

    def format_select_column(self, column: str, qualifier: str | None = None) -> str:
        rendered = super().format_select_column(column, qualifier)
        if not column or self.is_quoted(column) or self.fold_identifier(column) == column:
            return rendered
        alias = column.replace('"', '""')
        return f'{rendered} AS "{alias}"'

    def paging_clause(self, ast: SqlSelectNode) -> str:
        parts = []
        if ast.take is not None:
            parts.append(f"LIMIT {ast.take}")
        if ast.skip is not None:
            parts.append(f"OFFSET {ast.skip}")
        return " ".join(parts)

    def identity_value_expression(self, table: str, column: str) -> str:
        table_ref = self.format_table(table).replace("'", "''")
        column_ref = self.fold_identifier(column).replace("'", "''")
        return f"currval(pg_get_serial_sequence('{table_ref}', '{column_ref}'))"
