"""Tests for the transaction scope and per-document locks."""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database import DocumentLockManager, Transaction, insert_or_fetch
from src.modules.dossier.models import Dossier


@pytest.mark.asyncio
async def test_transaction_commits_on_success(db_session: AsyncSession):
    async with Transaction(db_session) as db:
        db.add(Dossier(uuid="11111111-1111-1111-1111-111111111111", schema_name="default"))

    result = await db_session.execute(select(Dossier))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(db_session: AsyncSession):
    """Test that nothing written in a failed scope is persisted."""
    with pytest.raises(ValueError):
        async with Transaction(db_session) as db:
            db.add(Dossier(uuid="22222222-2222-2222-2222-222222222222", schema_name="default"))
            await db.flush()
            raise ValueError("abort")

    result = await db_session.execute(select(Dossier))
    assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_insert_or_fetch_returns_stored_row_on_conflict(db_session: AsyncSession):
    """Test that a duplicate insert yields the stored row and keeps the outer transaction usable."""
    uuid = "33333333-3333-3333-3333-333333333333"

    async def fetch():
        result = await db_session.execute(select(Dossier).where(Dossier.uuid == uuid))
        return result.scalar_one_or_none()

    async with Transaction(db_session) as db:
        stored = await insert_or_fetch(db, Dossier(uuid=uuid, schema_name="default"), fetch)
        stored_id = stored.id

    async with Transaction(db_session) as db:
        again = await insert_or_fetch(db, Dossier(uuid=uuid, schema_name="other"), fetch)
        db.add(Dossier(uuid="44444444-4444-4444-4444-444444444444", schema_name="default"))

    assert again.id == stored_id
    assert again.schema_name == "default"
    result = await db_session.execute(select(Dossier))
    assert len(result.scalars().all()) == 2


@pytest.mark.asyncio
async def test_insert_or_fetch_reraises_when_nothing_is_stored(db_session: AsyncSession):
    async def fetch():
        return None

    with pytest.raises(IntegrityError):
        async with Transaction(db_session) as db:
            await insert_or_fetch(db, Dossier(uuid=None, schema_name="default"), fetch)


@pytest.mark.asyncio
async def test_lock_serializes_same_key():
    locks = DocumentLockManager()
    events = []

    async def worker(name: str):
        async with locks.hold(("dossier", "passport")):
            events.append(f"{name}-start")
            await asyncio.sleep(0.01)
            events.append(f"{name}-end")

    await asyncio.gather(worker("a"), worker("b"))

    assert events in (
        ["a-start", "a-end", "b-start", "b-end"],
        ["b-start", "b-end", "a-start", "a-end"],
    )
    assert locks._entries == {}


@pytest.mark.asyncio
async def test_lock_does_not_block_other_keys():
    locks = DocumentLockManager()

    async def nested():
        async with locks.hold(("dossier", "passport")):
            async with locks.hold(("dossier", "contract")):
                return "done"

    assert await asyncio.wait_for(nested(), timeout=1) == "done"


@pytest.mark.asyncio
async def test_disabled_lock_lets_holders_overlap():
    locks = DocumentLockManager()
    events = []

    async def worker(name: str):
        async with locks.hold(("dossier", "passport"), enabled=False):
            events.append(f"{name}-start")
            await asyncio.sleep(0.01)
            events.append(f"{name}-end")

    await asyncio.gather(worker("a"), worker("b"))

    assert events[:2] == ["a-start", "b-start"]
    assert locks._entries == {}
