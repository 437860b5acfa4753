"""SQLAlchemy-backed connection and executor.

:class:`EngineConnection` adapts a SQLAlchemy :class:`~sqlalchemy.engine.Engine`
to the :class:`~brickorm.connection.protocols.PhysicalConnection` protocol;
:class:`SQLAlchemyExecutor` runs compiled statements on it with
``exec_driver_sql`` (the SQL text already carries driver placeholders, so it
bypasses SQLAlchemy's own compiler) and maps rows onto entities.  Batches
for dialects that support them go to the DBAPI cursor in one call.

Install the optional dependency before using this module::

    pip install "brickorm[sqlalchemy]"

Example::

    from sqlalchemy import create_engine

    engine = create_engine("sqlite://")
    db = ConnectionManager(EngineConnection(engine), SQLiteDialect())
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from brickorm.connection.protocols import ConnectionState, IsolationLevel, TransactionResource
from brickorm.errors import MultipleResultsError, ResourceStateError
from brickorm.schema.entity import metadata_for

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = structlog.get_logger()


def split_statements(sql: str) -> list[str]:
    """Split a batch on ``;`` outside quoted text.

    Single quotes, double quotes and ``[...]`` brackets are honoured, with
    doubled quote characters treated as escapes.  Empty statements are
    dropped.
    """
    statements: list[str] = []
    current: list[str] = []
    closing: str | None = None
    for ch in sql:
        if closing is not None:
            current.append(ch)
            if ch == closing:
                closing = None
        elif ch in "'\"":
            closing = ch
            current.append(ch)
        elif ch == "[":
            closing = "]"
            current.append(ch)
        elif ch == ";":
            statements.append("".join(current))
            current = []
        else:
            current.append(ch)
    statements.append("".join(current))
    return [s.strip() for s in statements if s.strip()]


class EngineConnection:
    """One SQLAlchemy connection checked out from ``engine`` at a time.

    Args:
        engine: Engine to check connections out from.  The engine (and its
            pool) stays owned by the caller.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._conn: Connection | None = None

    @property
    def state(self) -> ConnectionState:
        if self._conn is None or self._conn.closed:
            return ConnectionState.CLOSED
        if self._conn.invalidated:
            return ConnectionState.BROKEN
        return ConnectionState.OPEN

    @property
    def raw(self) -> Connection:
        """The live SQLAlchemy connection.

        Raises:
            ResourceStateError: If the connection is not open.
        """
        if self._conn is None or self._conn.closed:
            raise ResourceStateError("The connection is not open.")
        return self._conn

    def open(self) -> None:
        self._conn = self._engine.connect()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def begin(self, isolation_level: IsolationLevel | None = None) -> TransactionResource:
        conn = self.raw
        if isolation_level is not None:
            conn.execution_options(isolation_level=IsolationLevel(isolation_level).value)
        return conn.begin()

    def dispose(self) -> None:
        self.close()


class SQLAlchemyExecutor:
    """Executes compiled SQL on an :class:`EngineConnection`.

    Statements run outside a transaction are committed immediately, so the
    connection never carries an implicit transaction between calls.

    Args:
        connection: The connection the manager opens and closes.
        batches: Send multi-statement SQL to the driver in one call and
            walk its result sets.  Otherwise the batch is split and each
            statement runs on its own.
    """

    def __init__(self, connection: EngineConnection, batches: bool = False) -> None:
        self._connection = connection
        self._batches = batches

    def _run(
        self,
        sql: str,
        params: Mapping[str, Any],
        transaction: TransactionResource | None,
    ) -> tuple[list[dict[str, Any]] | None, int]:
        conn = self._connection.raw
        try:
            if self._batches:
                rows, affected = self._run_batch(conn, sql, params)
            else:
                rows, affected = self._run_split(conn, sql, params)
            if transaction is None:
                conn.commit()
        except Exception:
            if transaction is None:
                conn.rollback()
            raise
        return rows, affected

    def _run_split(
        self, conn: Connection, sql: str, params: Mapping[str, Any]
    ) -> tuple[list[dict[str, Any]] | None, int]:
        rows: list[dict[str, Any]] | None = None
        affected = 0
        for statement in split_statements(sql):
            logger.debug("executing_statement", sql=statement)
            result = conn.exec_driver_sql(statement, dict(params) if params else None)
            if result.returns_rows:
                rows = [dict(row) for row in result.mappings()]
            elif result.rowcount > 0:
                affected += result.rowcount
        return rows, affected

    def _run_batch(
        self, conn: Connection, sql: str, params: Mapping[str, Any]
    ) -> tuple[list[dict[str, Any]] | None, int]:
        # The DBAPI cursor joins the SQLAlchemy transaction only once one is begun.
        if not conn.in_transaction():
            conn.begin()
        rows: list[dict[str, Any]] | None = None
        affected = 0
        logger.debug("executing_batch", sql=sql)
        cursor = conn.connection.cursor()
        try:
            if params:
                cursor.execute(sql, dict(params))
            else:
                cursor.execute(sql)
            while True:
                if cursor.description is not None:
                    names = [column[0] for column in cursor.description]
                    rows = [dict(zip(names, row)) for row in cursor.fetchall()]
                elif cursor.rowcount > 0:
                    affected += cursor.rowcount
                if not cursor.nextset():
                    break
        finally:
            cursor.close()
        return rows, affected

    def _mapped(self, entity_type: type, rows: list[dict[str, Any]] | None) -> Iterator[Any]:
        meta = metadata_for(entity_type)
        for row in rows or []:
            yield meta.materialize(entity_type, row)

    def execute(
        self,
        sql: str,
        params: Mapping[str, Any],
        transaction: TransactionResource | None = None,
    ) -> int:
        """Run ``sql`` and return the affected row count."""
        _, affected = self._run(sql, params, transaction)
        return affected

    def query(
        self,
        entity_type: type,
        sql: str,
        params: Mapping[str, Any],
        transaction: TransactionResource | None = None,
    ) -> list[Any]:
        """Run ``sql`` and map the rows of its last result set."""
        rows, _ = self._run(sql, params, transaction)
        return list(self._mapped(entity_type, rows))

    def query_single_or_default(
        self,
        entity_type: type,
        sql: str,
        params: Mapping[str, Any],
        transaction: TransactionResource | None = None,
    ) -> Any | None:
        """Run ``sql`` and map its single row, or return ``None``.

        Raises:
            MultipleResultsError: If more than one row comes back.
        """
        results = self.query(entity_type, sql, params, transaction)
        if len(results) > 1:
            raise MultipleResultsError(
                f"Expected at most one row, got {len(results)}.", count=len(results)
            )
        return results[0] if results else None
