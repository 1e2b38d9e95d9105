"""Database infrastructure: engine, sessions, mixins and transaction scope."""

from .session import Base, async_session, create_tables, local_session
from .transaction import DocumentLockManager, Transaction, document_locks, insert_or_fetch

__all__ = [
    "Base",
    "DocumentLockManager",
    "Transaction",
    "async_session",
    "create_tables",
    "document_locks",
    "insert_or_fetch",
    "local_session",
]
