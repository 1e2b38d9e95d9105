"""Document upload orchestration and page access."""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.database import DocumentLockManager, Transaction, document_locks, insert_or_fetch
from ...infrastructure.logging import get_logger
from ...infrastructure.storage import LocalFileStorage
from ..common.exceptions import (
    DocumentNotFoundError,
    DomainError,
    FileNotFoundInDocumentError,
    ProcessingError,
    ValidationError,
)
from ..common.utils.file_utils import get_extension
from ..dossier.models import Dossier
from ..dossier.services import DossierService
from ..file.crud import file_crud
from ..file.models import File
from ..file.schemas import PageRead
from ..processing.base import IncomingFile, ProcessedFile
from ..processing.classifier import FileProcessingService
from ..schema.registry import SchemaRegistry
from ..version.models import Version
from ..version.schemas import VersionRef
from ..version.services import VersionService
from .models import Document
from .schemas import DocumentRef, PageListResponse, UploadResult

logger = get_logger(__name__)


class UploadSource(Protocol):
    """What the orchestrator needs from an uploaded file; ``fastapi.UploadFile`` fits."""

    filename: Optional[str]
    content_type: Optional[str]

    async def read(self, size: int = -1) -> bytes: ...


@dataclass
class UploadRequest:
    dossier_uuid: str
    document_type: str
    files: Sequence[UploadSource]
    version_name: Optional[str] = None
    is_new_version: bool = False
    schema: Optional[str] = None


class DocumentService:
    """Service for the documents of a dossier.

    Uploads run as one transaction: the dossier, document, version and file
    rows of a batch are committed together or not at all. Artifacts written
    before a failure are removed again. Uploads to the same (dossier, type)
    are serialized within the process.
    """

    def __init__(
        self,
        storage: LocalFileStorage,
        processing: FileProcessingService,
        registry: SchemaRegistry,
        dossier_service: DossierService,
        version_service: VersionService,
        max_files: int = 50,
        max_file_size: int = 50 * 1024 * 1024,
        serialize_uploads: bool = True,
        locks: DocumentLockManager = document_locks,
    ):
        self.storage = storage
        self.processing = processing
        self.registry = registry
        self.dossier_service = dossier_service
        self.version_service = version_service
        self.max_files = max_files
        self.max_file_size = max_file_size
        self.serialize_uploads = serialize_uploads
        self.locks = locks

    async def find_document(self, db: AsyncSession, dossier_id: int, code: str) -> Optional[Document]:
        result = await db.execute(select(Document).where(Document.dossier_id == dossier_id, Document.code == code))
        return result.scalar_one_or_none()

    async def get_document(self, db: AsyncSession, dossier_uuid: str, code: str) -> Tuple[Dossier, Document]:
        """Resolve (dossier, document) for a request path.

        Raises:
            DossierNotFoundError: If the dossier does not exist
            DocumentNotFoundError: If the dossier has no document of that type
        """
        dossier = await self.dossier_service.get(db, dossier_uuid)
        document = await self.find_document(db, dossier.id, code)
        if document is None:
            raise DocumentNotFoundError(code)
        return dossier, document

    async def resolve_version(
        self, db: AsyncSession, document: Document, version_id: Optional[int] = None
    ) -> Optional[Version]:
        """The requested version of ``document``, or its current one."""
        if version_id is not None:
            return await self.version_service.get_for_document(db, document, version_id)
        if document.current_version_id is None:
            return None
        return await self.version_service.get_for_document(db, document, document.current_version_id)

    async def live_files(self, db: AsyncSession, version: Optional[Version]) -> List[File]:
        """Live files of ``version`` in page order."""
        if version is None:
            return []
        result = await db.execute(
            select(File)
            .where(File.version_id == version.id, File.is_deleted.is_(False))
            .order_by(File.page_number.asc(), File.id.asc())
        )
        return list(result.scalars().all())

    async def list_pages(self, db: AsyncSession, document: Document, version_id: Optional[int] = None) -> PageListResponse:
        version = await self.resolve_version(db, document, version_id)
        files = await self.live_files(db, version)
        return PageListResponse(
            document=DocumentRef(code=document.code),
            version=VersionRef(id=version.id, name=version.name) if version else None,
            pages=[PageRead.model_validate(file) for file in files],
        )

    async def get_live_file(self, db: AsyncSession, document: Document, file_uuid: str) -> File:
        """A live file of ``document`` by its identifier.

        Raises:
            FileNotFoundInDocumentError: If unknown, soft deleted or owned by another document
        """
        result = await db.execute(
            select(File).where(
                File.uuid == file_uuid,
                File.document_id == document.id,
                File.is_deleted.is_(False),
            )
        )
        file = result.scalar_one_or_none()
        if file is None:
            raise FileNotFoundInDocumentError(file_uuid)
        return file

    async def delete_file(self, db: AsyncSession, document: Document, file_uuid: str) -> File:
        """Soft delete a live file and return it. The stored bytes are kept."""
        async with Transaction(db):
            file = await self.get_live_file(db, document, file_uuid)
            await file_crud.delete(db=db, commit=False, id=file.id)
            await db.flush()

        logger.info(f"Soft deleted file {file_uuid} of document {document.id}")
        return file

    async def upload(self, db: AsyncSession, request: UploadRequest) -> UploadResult:
        """Store a batch of files as pages of a document.

        Steps, in one transaction: resolve or create the dossier, check the
        batch against the dossier's schema, process every file, resolve the
        document and target version, then persist one file row per artifact,
        numbered after the version's highest live page. The version becomes
        current when the document has none.

        Raises:
            ValidationError: If the batch is empty, too large or not allowed by the schema
            ProcessingError: If processing fails or produces no pages
            FileSystemError: If storage cannot be written
        """
        if not request.files:
            raise ValidationError("At least one file is required")
        if len(request.files) > self.max_files:
            raise ValidationError(f"Too many files: at most {self.max_files} per upload")

        lock_key = (request.dossier_uuid, request.document_type)
        stored: List[ProcessedFile] = []
        async with self.locks.hold(lock_key, enabled=self.serialize_uploads):
            try:
                return await self._upload(db, request, stored)
            except DomainError:
                await self._discard(stored)
                raise
            except Exception as e:
                await self._discard(stored)
                logger.exception(f"Upload to {request.dossier_uuid}/{request.document_type} failed")
                raise ProcessingError(f"Upload processing failed: {e}") from e

    async def _upload(self, db: AsyncSession, request: UploadRequest, stored: List[ProcessedFile]) -> UploadResult:
        logger.info(
            f"Upload of {len(request.files)} file(s) to {request.dossier_uuid}/{request.document_type}",
            extra={"is_new_version": request.is_new_version},
        )

        async with Transaction(db):
            dossier = await self.dossier_service.find_or_create_in_transaction(
                db, request.dossier_uuid, request.schema
            )
            self.registry.validate_upload(
                dossier.schema_name,
                request.document_type,
                [source.filename or "" for source in request.files],
            )

            prefix = DossierService.storage_prefix(dossier)
            for source in request.files:
                stored.extend(await self._process_source(source, prefix))

            if not stored:
                raise ProcessingError("No pages could be produced from the uploaded files")

            document = await self.find_document(db, dossier.id, request.document_type)
            if document is None:
                document = await insert_or_fetch(
                    db,
                    Document(dossier_id=dossier.id, code=request.document_type),
                    lambda: self.find_document(db, dossier.id, request.document_type),
                )

            version = await self.version_service.resolve_for_upload(
                db, document, request.version_name, request.is_new_version
            )
            next_page = await self._next_page_number(db, version.id)

            for offset, artifact in enumerate(stored):
                db.add(
                    File(
                        uuid=artifact.uuid,
                        document_id=document.id,
                        version_id=version.id,
                        name=artifact.original_name,
                        original_name=artifact.original_name,
                        extension=artifact.extension,
                        mime_type=artifact.mime_type,
                        path=artifact.path,
                        page_number=next_page + offset,
                        size=artifact.size,
                    )
                )

            if document.current_version_id is None:
                document.current_version_id = version.id

            await db.flush()

        logger.info(
            f"Stored {len(stored)} page(s) in version {version.id} of document {document.id}",
            extra={"files_processed": len(request.files), "pages_added": len(stored)},
        )
        return UploadResult(
            document=DocumentRef(code=document.code),
            version=VersionRef(id=version.id, name=version.name),
            files_processed=len(request.files),
            pages_added=len(stored),
        )

    async def _process_source(self, source: UploadSource, prefix: str) -> List[ProcessedFile]:
        filename = source.filename or "upload"
        extension = get_extension(filename)
        async with self.storage.temporary_path(f".{extension}" if extension else "") as temp_path:
            size = await self.storage.spool(source, temp_path, self.max_file_size)
            incoming = IncomingFile(path=temp_path, filename=filename, content_type=source.content_type, size=size)
            return await self.processing.process(incoming, prefix)

    async def _next_page_number(self, db: AsyncSession, version_id: int) -> int:
        result = await db.execute(
            select(func.max(File.page_number)).where(File.version_id == version_id, File.is_deleted.is_(False))
        )
        highest = result.scalar_one_or_none()
        return (highest or 0) + 1

    async def _discard(self, artifacts: Sequence[ProcessedFile]) -> None:
        for artifact in artifacts:
            await self.storage.remove(artifact.path)
        if artifacts:
            logger.warning(f"Removed {len(artifacts)} stored artifact(s) of a failed upload")
