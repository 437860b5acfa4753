"""SQLite dialect."""
from __future__ import annotations

from brickorm.compile.base import ParamStyle, SqlDialect
from brickorm.schema.sql_ast import SqlSelectNode


class SQLiteDialect(SqlDialect):
    """Renders SQLite SQL.

    Parameter style: ``:name`` – compatible with Python's built-in
    ``sqlite3`` named-parameter execution (``cursor.execute(sql, dict)``).

    Note: SQLite only accepts ``OFFSET`` after a ``LIMIT``; a skip without a
    take renders ``LIMIT -1 OFFSET n``.
    """

    default_param_style = ParamStyle.NAMED

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def paging_clause(self, ast: SqlSelectNode) -> str:
        if not ast.is_paged:
            return ""
        clause = f"LIMIT {ast.take if ast.take is not None else -1}"
        if ast.skip is not None:
            clause += f" OFFSET {ast.skip}"
        return clause

    def identity_value_expression(self, table: str, column: str) -> str:
        return "last_insert_rowid()"
