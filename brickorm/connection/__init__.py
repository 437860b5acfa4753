"""brickORM connection layer: connection/transaction lifecycle and execution."""
from brickorm.connection.manager import ConnectionManager
from brickorm.connection.protocols import (
    ConnectionState,
    Executor,
    IsolationLevel,
    PhysicalConnection,
    TransactionResource,
)
from brickorm.connection.transaction import Transaction, TransactionState

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "Executor",
    "IsolationLevel",
    "PhysicalConnection",
    "Transaction",
    "TransactionResource",
    "TransactionState",
]
