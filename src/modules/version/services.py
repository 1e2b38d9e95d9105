"""Version management for documents.

A document has zero or one current version. Operations that change the
current pointer always leave it either empty or pointing at a version of
the same document.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.database import Transaction
from ...infrastructure.logging import get_logger
from ..common.exceptions import VersionNotFoundError
from ..document.models import Document
from ..file.crud import file_crud
from ..file.models import File
from .crud import version_crud
from .models import Version
from .schemas import VersionRead

logger = get_logger(__name__)


class VersionService:
    """Create, rename, switch and delete the versions of a document.

    Public operations run in their own transaction. ``resolve_for_upload``
    and ``create_in_transaction`` only flush, so the upload can bind a
    version inside its own transaction.
    """

    def __init__(self, name_template: str = "v%Y.%m.%d.%H%M"):
        self.name_template = name_template

    def generate_name(self, now: Optional[datetime] = None) -> str:
        return (now or datetime.now()).strftime(self.name_template)

    async def get_for_document(self, db: AsyncSession, document: Document, version_id: int) -> Version:
        """Load a version of ``document``.

        Raises:
            VersionNotFoundError: If the version does not exist or belongs to another document
        """
        result = await db.execute(
            select(Version).where(Version.id == version_id, Version.document_id == document.id)
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise VersionNotFoundError(version_id)
        return version

    async def list_for_document(self, db: AsyncSession, document: Document) -> List[Version]:
        """Versions of ``document``, newest first."""
        result = await db.execute(
            select(Version)
            .where(Version.document_id == document.id)
            .order_by(Version.created_at.desc(), Version.id.desc())
        )
        return list(result.scalars().all())

    async def read_versions(self, db: AsyncSession, document: Document) -> List[VersionRead]:
        versions = await self.list_for_document(db, document)
        counts = await self.live_file_counts(db, [version.id for version in versions])
        return [
            VersionRead(
                id=version.id,
                name=version.name,
                document_id=version.document_id,
                is_current=version.id == document.current_version_id,
                files_count=counts.get(version.id, 0),
                created_at=version.created_at,
            )
            for version in versions
        ]

    async def live_file_counts(self, db: AsyncSession, version_ids: List[int]) -> dict[int, int]:
        if not version_ids:
            return {}
        result = await db.execute(
            select(File.version_id, func.count(File.id))
            .where(File.version_id.in_(version_ids), File.is_deleted.is_(False))
            .group_by(File.version_id)
        )
        return {version_id: count for version_id, count in result.all()}

    async def create_in_transaction(self, db: AsyncSession, document: Document, name: Optional[str] = None) -> Version:
        version = Version(name=name or self.generate_name(), document_id=document.id)
        db.add(version)
        await db.flush()
        return version

    async def create(
        self, db: AsyncSession, document: Document, name: Optional[str] = None, make_current: bool = False
    ) -> Version:
        """Create a version; it becomes current only when ``make_current`` is set."""
        async with Transaction(db):
            version = await self.create_in_transaction(db, document, name)
            if make_current:
                document.current_version_id = version.id
                await db.flush()

        logger.info(f"Created version {version.id} '{version.name}' for document {document.id}")
        return version

    async def set_current(self, db: AsyncSession, document: Document, version_id: int) -> Version:
        async with Transaction(db):
            version = await self.get_for_document(db, document, version_id)
            document.current_version_id = version.id
            await db.flush()

        logger.info(f"Document {document.id} switched to version {version.id}")
        return version

    async def rename(self, db: AsyncSession, document: Document, version_id: int, name: str) -> Version:
        async with Transaction(db):
            version = await self.get_for_document(db, document, version_id)
            version.name = name
            await db.flush()

        return version

    async def successor(self, db: AsyncSession, document: Document, excluding_id: int) -> Optional[Version]:
        """Most recently created version of ``document`` other than ``excluding_id``."""
        result = await db.execute(
            select(Version)
            .where(Version.document_id == document.id, Version.id != excluding_id)
            .order_by(Version.created_at.desc(), Version.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def delete(self, db: AsyncSession, document: Document, version_id: int) -> Optional[Version]:
        """Delete a version together with its file rows.

        When the deleted version was current, the most recently created
        remaining version becomes current, or the pointer is cleared.

        Returns:
            The document's current version after the deletion
        """
        async with Transaction(db):
            version = await self.get_for_document(db, document, version_id)
            files_count = await file_crud.count(db=db, version_id=version.id)

            if document.current_version_id == version.id:
                successor = await self.successor(db, document, version.id)
                document.current_version_id = successor.id if successor else None
                await db.flush()
                logger.info(
                    f"Current version of document {document.id} moved from {version.id} "
                    f"to {successor.id if successor else None}"
                )

            await db.execute(delete(File).where(File.version_id == version.id))
            await db.delete(version)
            await db.flush()

        logger.info(f"Deleted version {version_id} of document {document.id} with {files_count} file rows")

        if document.current_version_id is None:
            return None
        return await self.get_for_document(db, document, document.current_version_id)

    async def resolve_for_upload(
        self, db: AsyncSession, document: Document, name: Optional[str] = None, is_new_version: bool = False
    ) -> Version:
        """Version an upload is written to.

        A new version is created when requested or when the document has no
        current version; otherwise the current version is reused.
        """
        if not is_new_version and document.current_version_id is not None:
            exists = await version_crud.exists(db=db, id=document.current_version_id, document_id=document.id)
            if exists:
                return await self.get_for_document(db, document, document.current_version_id)

        return await self.create_in_transaction(db, document, name)
