"""Transaction handle and lifecycle states.

A manager holds at most one physical transaction.  Nested
``begin_transaction`` calls return additional :class:`Transaction` handles
over the same resource, tagged with their nesting depth.  Only the depth-1
handle commits or releases the resource; every handle reports back to the
manager through callbacks, so the handle never needs a reference to the
manager itself.
"""
from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from brickorm.connection.protocols import TransactionResource
from brickorm.errors import ResourceStateError

#: ``callback(handle)`` invoked after the handle forwarded an operation.
TransactionCallback = Callable[["Transaction"], None]


class TransactionState(str, Enum):
    """Manager-side transaction lifecycle.

    ``IDLE → ACTIVE → COMMITTING | ROLLING_BACK | RELEASING → IDLE``.
    Commit and rollback are only honoured from ``ACTIVE``; a callback that
    arrives while the manager is already committing, rolling back or
    releasing is ignored.
    """

    IDLE = "idle"
    ACTIVE = "active"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"
    RELEASING = "releasing"


class Transaction:
    """Depth-tagged handle over a shared transaction resource.

    Usable as a context manager; leaving the block closes the handle.
    Closing a handle that was neither committed nor rolled back abandons the
    unit of work (the resource is rolled back).

    Args:
        resource: The physical transaction.
        depth: Nesting depth this handle was created at (1 = outermost).
        on_commit: Called after :meth:`commit`.
        on_rollback: Called after :meth:`rollback`.
        on_close: Called after :meth:`close`.
    """

    def __init__(
        self,
        resource: TransactionResource,
        depth: int = 1,
        on_commit: TransactionCallback | None = None,
        on_rollback: TransactionCallback | None = None,
        on_close: TransactionCallback | None = None,
    ) -> None:
        self._resource = resource
        self._depth = depth
        self._on_commit = on_commit
        self._on_rollback = on_rollback
        self._on_close = on_close
        self._completed = False
        self._closed = False

    @property
    def resource(self) -> TransactionResource:
        return self._resource

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def is_root(self) -> bool:
        return self._depth == 1

    @property
    def completed(self) -> bool:
        """True once committed or rolled back through this handle."""
        return self._completed

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_completed(self) -> None:
        """Record that the manager completed this nesting level."""
        self._completed = True

    def _ensure_usable(self) -> None:
        if self._completed or self._closed:
            raise ResourceStateError("Transaction has already been completed.")

    def commit(self) -> None:
        """Commit; only the outermost handle commits the resource."""
        self._ensure_usable()
        if self.is_root:
            self._resource.commit()
        self._completed = True
        if self._on_commit is not None:
            self._on_commit(self)

    def rollback(self) -> None:
        """Roll back the shared resource, whatever this handle's depth."""
        self._ensure_usable()
        self._resource.rollback()
        self._completed = True
        if self._on_rollback is not None:
            self._on_rollback(self)

    def close(self) -> None:
        """Release the handle; the outermost one releases the resource."""
        if self._closed:
            return
        self._closed = True
        if self.is_root and not self._completed:
            self._resource.close()
        if self._on_close is not None:
            self._on_close(self)

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Transaction(depth={self._depth}, completed={self._completed}, closed={self._closed})"
