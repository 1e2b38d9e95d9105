"""FastAPI dependencies for use in API endpoints."""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ...infrastructure.config.settings import get_settings
from ...infrastructure.database import async_session
from ...infrastructure.storage import LocalFileStorage, get_file_storage
from ...modules.access.policy import AccessPolicy, get_access_policy
from ...modules.document.services import DocumentService
from ...modules.dossier.services import DossierService
from ...modules.processing.classifier import FileProcessingService
from ...modules.schema.registry import SchemaRegistry, get_schema_registry
from ...modules.streaming.services import DocumentStreamingService
from ...modules.version.services import VersionService

DbSession = Annotated[AsyncSession, Depends(async_session)]

bearer_scheme = HTTPBearer(auto_error=False, description="Token granting access to dossier schemas")


def get_storage() -> LocalFileStorage:
    """Dependency for providing the file storage."""
    return get_file_storage()


def get_registry() -> SchemaRegistry:
    """Dependency for providing the schema registry."""
    return get_schema_registry()


def get_policy() -> AccessPolicy:
    """Dependency for providing the schema access policy."""
    return get_access_policy()


def get_access_token(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> Optional[str]:
    """Bearer token of the request, if any."""
    return credentials.credentials if credentials else None


def get_version_service() -> VersionService:
    """Dependency for providing a VersionService instance."""
    return VersionService(name_template=get_settings().VERSION_NAME_TEMPLATE)


def get_dossier_service(
    registry: Annotated[SchemaRegistry, Depends(get_registry)],
    version_service: Annotated[VersionService, Depends(get_version_service)],
) -> DossierService:
    """Dependency for providing a DossierService instance."""
    return DossierService(registry, version_service, default_schema=get_settings().DEFAULT_SCHEMA)


def get_processing_service(storage: Annotated[LocalFileStorage, Depends(get_storage)]) -> FileProcessingService:
    """Dependency for providing the file classifier and its processors."""
    return FileProcessingService.from_settings(storage, get_settings())


def get_document_service(
    storage: Annotated[LocalFileStorage, Depends(get_storage)],
    processing: Annotated[FileProcessingService, Depends(get_processing_service)],
    registry: Annotated[SchemaRegistry, Depends(get_registry)],
    dossier_service: Annotated[DossierService, Depends(get_dossier_service)],
    version_service: Annotated[VersionService, Depends(get_version_service)],
) -> DocumentService:
    """Dependency for providing a DocumentService instance."""
    settings = get_settings()
    return DocumentService(
        storage=storage,
        processing=processing,
        registry=registry,
        dossier_service=dossier_service,
        version_service=version_service,
        max_files=settings.MAX_UPLOAD_FILES,
        max_file_size=settings.MAX_UPLOAD_FILE_SIZE,
        serialize_uploads=settings.SERIALIZE_DOCUMENT_UPLOADS,
    )


def get_streaming_service(storage: Annotated[LocalFileStorage, Depends(get_storage)]) -> DocumentStreamingService:
    """Dependency for providing a DocumentStreamingService instance."""
    return DocumentStreamingService(storage, cache_enabled=get_settings().RENDER_CACHE_ENABLED)


AccessToken = Annotated[Optional[str], Depends(get_access_token)]
Storage = Annotated[LocalFileStorage, Depends(get_storage)]
Policy = Annotated[AccessPolicy, Depends(get_policy)]
Registry = Annotated[SchemaRegistry, Depends(get_registry)]
DossierServiceDep = Annotated[DossierService, Depends(get_dossier_service)]
DocumentServiceDep = Annotated[DocumentService, Depends(get_document_service)]
VersionServiceDep = Annotated[VersionService, Depends(get_version_service)]
StreamingServiceDep = Annotated[DocumentStreamingService, Depends(get_streaming_service)]


async def authorize_dossier(
    db: AsyncSession,
    dossier_service: DossierService,
    policy: AccessPolicy,
    token: Optional[str],
    uuid: str,
    requested_schema: Optional[str] = None,
) -> str:
    """Check the caller may use the schema governing ``uuid`` and return that schema.

    For a dossier that does not exist yet, the schema it would be created
    with is checked.
    """
    schema = await dossier_service.schema_for(db, uuid, requested_schema)
    policy.ensure_allowed(token, schema)
    return schema
