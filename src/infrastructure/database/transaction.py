"""Explicit transaction scope and per-document serialization helpers."""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..logging import get_logger

logger = get_logger(__name__)


class Transaction:
    """Commit-or-rollback scope around a unit of work on one session.

    Leaving the block normally commits; leaving it through any exception
    (including cancellation) rolls back everything written inside it and
    re-raises.

    Example:
        ```python
        async with Transaction(db):
            db.add(row)
            await db.flush()
        ```
    """

    def __init__(self, db: AsyncSession):
        self._db = db

    async def __aenter__(self) -> AsyncSession:
        return self._db

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            try:
                await self._db.commit()
            except BaseException:
                await self._db.rollback()
                raise
            return False

        logger.debug(f"Rolling back transaction after {exc_type.__name__}")
        await self._db.rollback()
        return False


Row = TypeVar("Row")


async def insert_or_fetch(db: AsyncSession, row: Row, fetch: Callable[[], Awaitable[Optional[Row]]]) -> Row:
    """Insert ``row`` under a savepoint, or return the row another writer inserted first.

    A unique-key collision only rolls back the savepoint; the enclosing
    transaction stays usable and ``fetch`` loads the committed row.

    Raises:
        IntegrityError: If the insert fails and ``fetch`` finds nothing
    """
    try:
        async with db.begin_nested():
            db.add(row)
            await db.flush()
    except IntegrityError:
        existing = await fetch()
        if existing is None:
            raise
        logger.info(f"Concurrent insert of {type(row).__name__} detected, using the stored row")
        return existing
    return row


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class DocumentLockManager:
    """Registry of per-key asyncio locks.

    Used to serialize uploads that target the same (dossier, document type)
    within one process. Entries are dropped as soon as nobody holds or waits
    for them.
    """

    def __init__(self) -> None:
        self._entries: Dict[Hashable, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable, enabled: bool = True) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        Args:
            key: Identity of the protected resource
            enabled: When False the block runs without locking
        """
        if not enabled:
            yield
            return

        entry = self._entries.get(key)
        if entry is None:
            entry = _LockEntry()
            self._entries[key] = entry
        entry.users += 1

        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]


document_locks = DocumentLockManager()
