"""Tests for the version manager."""

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.modules.common.exceptions import VersionNotFoundError
from src.modules.document.models import Document
from src.modules.dossier.models import Dossier
from src.modules.file.models import File
from src.modules.version.models import Version
from src.modules.version.services import VersionService


@pytest_asyncio.fixture
async def test_document(db_session: AsyncSession) -> Document:
    dossier = Dossier(uuid="3f9d2c1a-7b6e-4d5c-8a9b-0c1d2e3f4a5b", schema_name="default")
    db_session.add(dossier)
    await db_session.flush()
    document = Document(dossier_id=dossier.id, code="passport")
    db_session.add(document)
    await db_session.commit()
    return document


@pytest_asyncio.fixture
async def other_document(db_session: AsyncSession, test_document: Document) -> Document:
    document = Document(dossier_id=test_document.dossier_id, code="contract")
    db_session.add(document)
    await db_session.commit()
    return document


async def add_file(db: AsyncSession, document: Document, version: Version, page: int, deleted: bool = False) -> File:
    file = File(
        uuid=f"{version.id}-{page}-{'d' if deleted else 'l'}",
        document_id=document.id,
        version_id=version.id,
        name=f"page_{page}.jpg",
        original_name=f"page_{page}.jpg",
        extension="jpg",
        mime_type="image/jpeg",
        path=f"x/{version.id}/{page}.jpg",
        page_number=page,
        size=10,
    )
    file.is_deleted = deleted
    db.add(file)
    await db.commit()
    return file


def test_generate_name_uses_template():
    service = VersionService(name_template="v%Y.%m.%d.%H%M")

    assert service.generate_name(datetime(2025, 6, 23, 9, 5)) == "v2025.06.23.0905"


@pytest.mark.asyncio
async def test_create_does_not_switch_current_by_default(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    version = await version_service.create(db_session, test_document, "Draft")

    assert version.id is not None
    assert version.name == "Draft"
    assert version.document_id == test_document.id
    assert test_document.current_version_id is None


@pytest.mark.asyncio
async def test_create_with_make_current(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    version = await version_service.create(db_session, test_document, "Final", make_current=True)

    assert test_document.current_version_id == version.id


@pytest.mark.asyncio
async def test_create_generates_name_when_missing(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    version = await version_service.create(db_session, test_document)

    assert version.name.startswith("v")


@pytest.mark.asyncio
async def test_set_current(version_service: VersionService, db_session: AsyncSession, test_document: Document):
    first = await version_service.create(db_session, test_document, "First", make_current=True)
    second = await version_service.create(db_session, test_document, "Second")

    result = await version_service.set_current(db_session, test_document, second.id)

    assert result.id == second.id
    assert test_document.current_version_id == second.id
    assert first.id != second.id


@pytest.mark.asyncio
async def test_set_current_to_other_documents_version_is_not_found(
    version_service: VersionService,
    db_session: AsyncSession,
    test_document: Document,
    other_document: Document,
):
    """Test that a version of another document cannot become current."""
    mine = await version_service.create(db_session, test_document, "Mine", make_current=True)
    foreign = await version_service.create(db_session, other_document, "Foreign")
    mine_id, foreign_id = mine.id, foreign.id

    with pytest.raises(VersionNotFoundError):
        await version_service.set_current(db_session, test_document, foreign_id)

    await db_session.refresh(test_document)
    assert test_document.current_version_id == mine_id


@pytest.mark.asyncio
async def test_rename(version_service: VersionService, db_session: AsyncSession, test_document: Document):
    version = await version_service.create(db_session, test_document, "Old")

    renamed = await version_service.rename(db_session, test_document, version.id, "New")

    assert renamed.name == "New"
    with pytest.raises(VersionNotFoundError):
        await version_service.rename(db_session, test_document, 9999, "Nope")


@pytest.mark.asyncio
async def test_delete_current_switches_to_most_recent_remaining(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    """Test successor selection after deleting the current version."""
    oldest = await version_service.create(db_session, test_document, "Oldest")
    newer = await version_service.create(db_session, test_document, "Newer")
    current = await version_service.create(db_session, test_document, "Current", make_current=True)

    successor = await version_service.delete(db_session, test_document, current.id)

    assert successor is not None
    assert successor.id == newer.id
    assert test_document.current_version_id == newer.id

    successor = await version_service.delete(db_session, test_document, newer.id)
    assert successor.id == oldest.id


@pytest.mark.asyncio
async def test_delete_last_version_clears_current(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    only = await version_service.create(db_session, test_document, "Only", make_current=True)

    successor = await version_service.delete(db_session, test_document, only.id)

    assert successor is None
    assert test_document.current_version_id is None


@pytest.mark.asyncio
async def test_delete_non_current_keeps_pointer(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    current = await version_service.create(db_session, test_document, "Current", make_current=True)
    spare = await version_service.create(db_session, test_document, "Spare")

    result = await version_service.delete(db_session, test_document, spare.id)

    assert result.id == current.id
    assert test_document.current_version_id == current.id


@pytest.mark.asyncio
async def test_delete_removes_file_rows(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    version = await version_service.create(db_session, test_document, "With files", make_current=True)
    await add_file(db_session, test_document, version, 1)
    await add_file(db_session, test_document, version, 2, deleted=True)

    await version_service.delete(db_session, test_document, version.id)

    result = await db_session.execute(select(File).where(File.version_id == version.id))
    assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_delete_unknown_version_is_not_found(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    with pytest.raises(VersionNotFoundError):
        await version_service.delete(db_session, test_document, 12345)


@pytest.mark.asyncio
async def test_read_versions_counts_live_files_newest_first(
    version_service: VersionService, db_session: AsyncSession, test_document: Document
):
    first = await version_service.create(db_session, test_document, "First", make_current=True)
    second = await version_service.create(db_session, test_document, "Second")
    await add_file(db_session, test_document, first, 1)
    await add_file(db_session, test_document, first, 2)
    await add_file(db_session, test_document, first, 3, deleted=True)

    versions = await version_service.read_versions(db_session, test_document)

    assert [version.id for version in versions] == [second.id, first.id]
    assert versions[1].files_count == 2
    assert versions[1].is_current
    assert versions[0].files_count == 0
    assert not versions[0].is_current


@pytest.mark.asyncio
async def test_resolve_for_upload(version_service: VersionService, db_session: AsyncSession, test_document: Document):
    """Test that uploads reuse the current version unless a new one is requested."""
    created = await version_service.resolve_for_upload(db_session, test_document, "Initial")
    await db_session.commit()
    assert created.name == "Initial"

    test_document.current_version_id = created.id
    await db_session.commit()

    reused = await version_service.resolve_for_upload(db_session, test_document, "Ignored")
    assert reused.id == created.id

    fresh = await version_service.resolve_for_upload(db_session, test_document, "Batch A", is_new_version=True)
    assert fresh.id != created.id
    assert fresh.name == "Batch A"
