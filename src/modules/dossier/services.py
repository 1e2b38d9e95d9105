"""Dossier lookup, lazy creation and summaries."""

import uuid as uuid_lib
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.database import Transaction, insert_or_fetch
from ...infrastructure.logging import get_logger
from ..common.exceptions import DossierExistsError, DossierNotFoundError
from ..document.models import Document
from ..document.schemas import DocumentSummary
from ..schema.registry import SchemaRegistry
from ..version.schemas import VersionRef
from ..version.services import VersionService
from .crud import dossier_crud
from .models import Dossier
from .schemas import DossierCreate, DossierRead

logger = get_logger(__name__)


class DossierService:
    """Service for dossiers, the top-level containers keyed by an external identifier."""

    def __init__(self, registry: SchemaRegistry, version_service: VersionService, default_schema: str = "default"):
        self.registry = registry
        self.version_service = version_service
        self.default_schema = default_schema

    @staticmethod
    def storage_prefix(dossier: Dossier) -> str:
        """Storage directory of a dossier: ``YYYY/MM/DD/<uuid>`` from its creation date."""
        created = dossier.created_at
        return f"{created.year:04d}/{created.month:02d}/{created.day:02d}/{dossier.uuid}"

    async def find(self, db: AsyncSession, uuid: str) -> Optional[Dossier]:
        result = await db.execute(select(Dossier).where(Dossier.uuid == uuid))
        return result.scalar_one_or_none()

    async def get(self, db: AsyncSession, uuid: str) -> Dossier:
        dossier = await self.find(db, uuid)
        if dossier is None:
            raise DossierNotFoundError(uuid)
        return dossier

    async def schema_for(self, db: AsyncSession, uuid: str, requested: Optional[str] = None) -> str:
        """Schema governing ``uuid``: the stored one, else the requested or default schema."""
        dossier = await self.find(db, uuid)
        if dossier is not None:
            return dossier.schema_name
        return requested or self.default_schema

    async def find_or_create_in_transaction(
        self, db: AsyncSession, uuid: str, schema: Optional[str] = None
    ) -> Dossier:
        dossier = await self.find(db, uuid)
        if dossier is not None:
            return dossier

        schema_name = schema or self.default_schema
        self.registry.get_schema(schema_name)

        created = Dossier(uuid=uuid, schema_name=schema_name)
        dossier = await insert_or_fetch(db, created, lambda: self.find(db, uuid))
        if dossier is created:
            logger.info(f"Created dossier {uuid} with schema '{schema_name}'")
        return dossier

    async def find_or_create(self, db: AsyncSession, uuid: str, schema: Optional[str] = None) -> Dossier:
        async with Transaction(db):
            return await self.find_or_create_in_transaction(db, uuid, schema)

    async def create(self, db: AsyncSession, data: DossierCreate) -> Dossier:
        """Create a dossier.

        Raises:
            DossierExistsError: If a dossier with the identifier already exists
            UnknownSchemaError: If the schema is not defined
        """
        uuid = str(data.uuid or uuid_lib.uuid4())
        schema_name = data.schema_name or self.default_schema
        self.registry.get_schema(schema_name)

        async with Transaction(db):
            if await dossier_crud.exists(db=db, uuid=uuid):
                raise DossierExistsError(uuid)

            dossier = Dossier(uuid=uuid, schema_name=schema_name)
            db.add(dossier)
            try:
                await db.flush()
            except IntegrityError as e:
                raise DossierExistsError(uuid) from e

        logger.info(f"Created dossier {uuid} with schema '{schema_name}'")
        return dossier

    async def read(self, db: AsyncSession, dossier: Dossier) -> DossierRead:
        """Dossier with each document's current version, live page count and history."""
        result = await db.execute(
            select(Document).where(Document.dossier_id == dossier.id).order_by(Document.code)
        )

        documents = []
        for document in result.scalars().all():
            versions = await self.version_service.read_versions(db, document)
            current = next((version for version in versions if version.is_current), None)
            documents.append(
                DocumentSummary(
                    code=document.code,
                    current_version=VersionRef(id=current.id, name=current.name) if current else None,
                    pages_count=current.files_count if current else 0,
                    versions=versions,
                )
            )

        return DossierRead(
            uuid=dossier.uuid,
            schema_name=dossier.schema_name,
            created_at=dossier.created_at,
            documents=documents,
        )
