"""Connection and transaction lifecycle manager.

``ConnectionManager`` owns one physical connection and at most one physical
transaction.  Its CRUD entry points compile SQL through the query facade
and statement builder, then hand ``(sql, params)`` to an executor.

Connection scoping
------------------
Every entry point acquires the connection on entry and releases it on exit
only if that call opened it.  Inside a transaction the connection is
already open, so consecutive calls share it.

Nested transactions
-------------------
Nesting is reference counted over a single physical transaction (no
savepoints).  Each ``begin_transaction`` pushes a depth-tagged handle;
``commit`` pops one level and only the outermost level commits physically.
``rollback`` at any level rolls back the whole unit of work and resets the
depth to zero.

Usage::

    with ConnectionManager(EngineConnection(engine), PostgresDialect()) as db:
        with db.begin_transaction():
            person = db.insert(Person(FirstName="Joe"), Options(SelectAfterMutation=True))
            db.update(person)
            db.commit()
"""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from brickorm.compile.base import CompiledSQL, SqlDialect
from brickorm.compile.statements import StatementBuilder, member_values
from brickorm.connection.protocols import (
    ConnectionState,
    Executor,
    IsolationLevel,
    PhysicalConnection,
    TransactionResource,
)
from brickorm.connection.transaction import Transaction, TransactionState
from brickorm.errors import ArgumentError, ConfigurationError, ResourceStateError
from brickorm.query import SqlQuery
from brickorm.schema.entity import metadata_for
from brickorm.schema.expressions import Member, Predicate
from brickorm.schema.options import DEFAULT_OPTIONS, Options

logger = structlog.get_logger()


class ConnectionManager:
    """Single-connection unit-of-work manager.

    Not thread-safe; use one manager (and one connection) per thread.

    Args:
        connection: The physical connection to manage.
        dialect: SQL renderer for the connection's backend.
        executor: Statement runner; defaults to a
            :class:`~brickorm.connection.engine.SQLAlchemyExecutor` over
            ``connection``, batching when the dialect supports it.
    """

    def __init__(
        self,
        connection: PhysicalConnection,
        dialect: SqlDialect,
        executor: Executor | None = None,
    ) -> None:
        if executor is None:
            from brickorm.connection.engine import SQLAlchemyExecutor

            executor = SQLAlchemyExecutor(connection, batches=dialect.supports_batches)
        self._connection: PhysicalConnection | None = connection
        self._dialect = dialect
        self._executor = executor
        self._statements = StatementBuilder(dialect)
        self._state = TransactionState.IDLE
        self._handles: list[Transaction] = []
        self._owns_connection = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def dialect(self) -> SqlDialect:
        return self._dialect

    @property
    def connection(self) -> PhysicalConnection:
        return self._require_connection()

    @property
    def state(self) -> ConnectionState:
        return self._require_connection().state

    @property
    def transaction_state(self) -> TransactionState:
        return self._state

    @property
    def transaction_depth(self) -> int:
        return len(self._handles)

    @property
    def transaction(self) -> Transaction | None:
        """The outermost transaction handle, if a transaction is active."""
        return self._handles[0] if self._handles else None

    @property
    def is_disposed(self) -> bool:
        return self._connection is None

    def _require_connection(self) -> PhysicalConnection:
        if self._connection is None:
            raise ResourceStateError("The connection manager has been disposed.")
        return self._connection

    def _active_resource(self) -> TransactionResource | None:
        return self._handles[0].resource if self._handles else None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def open(self) -> bool:
        """Open the connection if needed.

        A broken connection is closed and reopened.

        Returns:
            ``True`` if this call opened the connection, ``False`` if it was
            already open.

        Raises:
            ResourceStateError: If the manager has been disposed.
        """
        connection = self._require_connection()
        if connection.state is ConnectionState.BROKEN:
            logger.warning("connection_broken_reopening")
            connection.close()
        if connection.state is ConnectionState.CLOSED:
            connection.open()
            logger.debug("connection_opened")
            return True
        return False

    def close(self) -> None:
        """Close the connection.

        Raises:
            ResourceStateError: If a transaction is still active.
        """
        if self._handles:
            raise ResourceStateError("Cannot close the connection while a transaction is active.")
        self._close_connection()

    def _close_connection(self) -> None:
        connection = self._require_connection()
        if connection.state is not ConnectionState.CLOSED:
            connection.close()
            logger.debug("connection_closed")

    @contextmanager
    def _connection_scope(self) -> Iterator[PhysicalConnection]:
        opened = self.open()
        try:
            yield self._require_connection()
        finally:
            if opened:
                self._close_connection()

    def dispose(self) -> None:
        """Release any transaction, close and dispose the connection.

        The manager is unusable afterwards; calling ``dispose`` again is a
        no-op.
        """
        if self._connection is None:
            return
        try:
            if self._handles:
                self._state = TransactionState.RELEASING
                try:
                    self._handles[0].close()
                finally:
                    self._finish("transaction_released")
            self._close_connection()
            self._connection.dispose()
        finally:
            self._connection = None
        logger.debug("connection_disposed")

    def __enter__(self) -> ConnectionManager:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin_transaction(self, isolation_level: IsolationLevel | str | None = None) -> Transaction:
        """Begin a transaction, or one more nesting level of the active one.

        Args:
            isolation_level: Isolation for a new physical transaction;
                ignored for nested levels.

        Returns:
            A :class:`Transaction` handle tagged with its depth.

        Raises:
            ResourceStateError: If the manager is disposed or a commit,
                rollback or release is in progress.
        """
        self._require_connection()
        if self._state not in (TransactionState.IDLE, TransactionState.ACTIVE):
            raise ResourceStateError(f"Cannot begin a transaction while {self._state.value}.")

        if not self._handles:
            level = IsolationLevel(isolation_level) if isolation_level else None
            opened = self.open()
            try:
                resource = self._require_connection().begin(level)
            except Exception:
                if opened:
                    self._close_connection()
                raise
            self._owns_connection = opened
            self._state = TransactionState.ACTIVE
            logger.info(
                "transaction_begun",
                isolation_level=level.value if level else None,
            )
        else:
            resource = self._handles[0].resource
            logger.debug("transaction_nested", depth=len(self._handles) + 1)

        handle = Transaction(
            resource,
            depth=len(self._handles) + 1,
            on_commit=self._handle_committed,
            on_rollback=self._handle_rolled_back,
            on_close=self._handle_closed,
        )
        self._handles.append(handle)
        return handle

    def commit(self) -> None:
        """Commit one nesting level.

        A no-op without an active transaction or while a commit, rollback
        or release is already in progress.  Above depth 1 only the depth is
        decremented; at depth 1 the physical transaction is committed and
        released.  If the physical commit fails the transaction stays
        active so the caller can roll back.
        """
        if self._state is not TransactionState.ACTIVE or not self._handles:
            return
        if len(self._handles) > 1:
            self._handles.pop().mark_completed()
            logger.debug("transaction_commit_deferred", depth=len(self._handles))
            return

        self._state = TransactionState.COMMITTING
        try:
            self._handles[0].commit()
        except Exception:
            self._state = TransactionState.ACTIVE
            raise
        self._finish("transaction_committed")

    def rollback(self) -> None:
        """Roll back the whole unit of work and reset the depth to zero.

        Re-entrant calls (from a handle callback) are ignored.

        Raises:
            ResourceStateError: If no transaction is active.
        """
        if self._state is TransactionState.ROLLING_BACK:
            return
        if not self._handles:
            raise ResourceStateError("No active transaction to roll back.")
        self._state = TransactionState.ROLLING_BACK
        try:
            self._handles[0].rollback()
        finally:
            self._finish("transaction_rolled_back")

    def _finish(self, event: str) -> None:
        for handle in self._handles:
            handle.mark_completed()
        self._handles.clear()
        self._state = TransactionState.IDLE
        owned, self._owns_connection = self._owns_connection, False
        if owned and self._connection is not None:
            self._close_connection()
        logger.info(event)

    # Handle callbacks. Work initiated by the manager itself moves the state
    # off ACTIVE first, so the callbacks it triggers are ignored here.

    def _handle_committed(self, handle: Transaction) -> None:
        if self._state is not TransactionState.ACTIVE:
            return
        if handle.is_root:
            self._finish("transaction_committed")
        elif handle in self._handles:
            self._handles.remove(handle)

    def _handle_rolled_back(self, handle: Transaction) -> None:
        if self._state is not TransactionState.ACTIVE:
            return
        self._state = TransactionState.ROLLING_BACK
        self._finish("transaction_rolled_back")

    def _handle_closed(self, handle: Transaction) -> None:
        if self._state is not TransactionState.ACTIVE or handle.completed:
            return
        if handle.is_root:
            self._state = TransactionState.RELEASING
            self._finish("transaction_released")
        else:
            logger.warning("transaction_abandoned", depth=handle.depth)
            self.rollback()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def select(self, entity_type: type) -> SqlQuery:
        """Start a query over ``entity_type`` in this manager's dialect."""
        return SqlQuery(self._dialect, entity_type)

    def query(
        self,
        source: SqlQuery | type,
        where: Any = None,
        options: Options | None = None,
    ) -> list[Any]:
        """Run a query and return the mapped entities.

        Args:
            source: A prepared :class:`SqlQuery` or an entity type.
            where: Optional extra filter.
            options: Statement options.
        """
        query = source if isinstance(source, SqlQuery) else self.select(source)
        if where is not None:
            query = query.where(where)
        entity_type = query.element_type
        compiled = query.to_sql(options)
        with self._connection_scope():
            return list(
                self._executor.query(
                    entity_type, compiled.sql, compiled.params, self._active_resource()
                )
            )

    def get_by_id(self, entity_type: type, key: Any, options: Options | None = None) -> Any | None:
        """Fetch one entity by its single key column.

        Raises:
            ConfigurationError: If the type has no key or a composite key.
        """
        meta = metadata_for(entity_type)
        keys = StatementBuilder.require_keys(meta, entity_type)
        if len(keys) > 1:
            raise ConfigurationError(
                f"Entity '{meta.name}' has a composite key; use get_by_keys.",
                entity=entity_type,
            )
        return self._single(entity_type, Member(keys[0].name) == key, options)

    def get_by_keys(
        self,
        entity_type: type,
        key_values: Any,
        options: Options | None = None,
    ) -> Any | None:
        """Fetch one entity by all of its key columns.

        Args:
            entity_type: The mapped entity type.
            key_values: Mapping or object carrying a value for every key
                member.
            options: Statement options.

        Raises:
            ArgumentError: If ``key_values`` is ``None`` or lacks a key.
            ConfigurationError: If the type has no key columns.
        """
        values = member_values(key_values)
        meta = metadata_for(entity_type)
        predicate: Predicate | None = None
        for col in StatementBuilder.require_keys(meta, entity_type):
            if col.name not in values:
                raise ArgumentError(f"Missing value for key '{col.name}'.", argument=col.name)
            term = Member(col.name) == values[col.name]
            predicate = term if predicate is None else predicate & term
        return self._single(entity_type, predicate, options)

    def _single(self, entity_type: type, predicate: Any, options: Options | None) -> Any | None:
        compiled = self.select(entity_type).where(predicate).to_sql(options)
        with self._connection_scope():
            return self._executor.query_single_or_default(
                entity_type, compiled.sql, compiled.params, self._active_resource()
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(
        self,
        entity: Any,
        options: Options | None = None,
        result_type: type | None = None,
    ) -> Any | None:
        """Insert ``entity``.

        Returns:
            With ``select_after_mutation``, the stored row mapped onto
            ``result_type`` (default: the entity's type); otherwise ``None``.
        """
        compiled = self._statements.build_insert(entity, options)
        return self._mutate(compiled, options, result_type or type(entity))

    def update(
        self,
        entity: Any,
        where: Any = None,
        options: Options | None = None,
    ) -> Any | None:
        """Update ``entity`` by key, or the rows matching ``where``.

        Returns:
            With ``select_after_mutation``, the re-read row; otherwise ``None``.
        """
        compiled = self._statements.build_update(entity, where, options)
        return self._mutate(compiled, options, type(entity))

    def delete(
        self,
        target: Any,
        where: Any = None,
        *,
        keys: Any = None,
        options: Options | None = None,
    ) -> int:
        """Delete rows.

        ``target`` is either an entity instance (deleted by key) or an
        entity type combined with ``where`` or ``keys``.

        Returns:
            The affected row count reported by the executor.
        """
        if isinstance(target, type):
            compiled = self._statements.build_delete(target, where, keys=keys, options=options)
        else:
            compiled = self._statements.build_delete_entity(target, options)
        with self._connection_scope():
            return self._executor.execute(compiled.sql, compiled.params, self._active_resource())

    def _mutate(self, compiled: CompiledSQL, options: Options | None, result_type: type) -> Any | None:
        readback = (options or DEFAULT_OPTIONS).select_after_mutation
        with self._connection_scope():
            if readback:
                return self._executor.query_single_or_default(
                    result_type, compiled.sql, compiled.params, self._active_resource()
                )
            self._executor.execute(compiled.sql, compiled.params, self._active_resource())
            return None
