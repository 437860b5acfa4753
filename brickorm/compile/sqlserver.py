"""SQL Server dialect."""
from __future__ import annotations

from brickorm.compile.base import SqlDialect
from brickorm.schema.sql_ast import SqlSelectNode


class SqlServerDialect(SqlDialect):
    """Renders T-SQL.

    Identifiers are bracket-quoted (``[dbo].[Person]``, ``]`` doubled).
    Paging uses ``OFFSET n ROWS FETCH NEXT m ROWS ONLY``, which T-SQL only
    accepts after an ``ORDER BY``; unordered pages get
    ``ORDER BY (SELECT NULL)``.
    """

    quote_start = "["
    quote_end = "]"
    supports_batches = True

    @property
    def dialect_name(self) -> str:
        return "sqlserver"

    def boolean_literal(self, value: bool) -> str:
        return "1" if value else "0"

    def paging_clause(self, ast: SqlSelectNode) -> str:
        if not ast.is_paged:
            return ""
        parts = [] if ast.order_by else ["ORDER BY (SELECT NULL)"]
        parts.append(f"OFFSET {ast.skip or 0} ROWS")
        if ast.take is not None:
            parts.append(f"FETCH NEXT {ast.take} ROWS ONLY")
        return " ".join(parts)

    def identity_value_expression(self, table: str, column: str) -> str:
        return "SCOPE_IDENTITY()"
