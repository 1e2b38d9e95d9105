"""Version API endpoints of a document."""

from typing import Annotated, List
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status

from ....infrastructure.logging import get_logger
from ....modules.common.constants import DOCUMENT_TYPE_PATTERN
from ....modules.common.exceptions import DomainError
from ....modules.common.utils.error_handler import handle_exception
from ....modules.version.schemas import VersionCreate, VersionDeleteResponse, VersionRead, VersionRef, VersionUpdate
from ..dependencies import (
    AccessToken,
    DbSession,
    DocumentServiceDep,
    DossierServiceDep,
    Policy,
    StreamingServiceDep,
    VersionServiceDep,
    authorize_dossier,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/dossiers/{uuid}/documents/{document_type}/versions", tags=["Versions"])

DocumentType = Annotated[str, Path(pattern=DOCUMENT_TYPE_PATTERN)]
VersionId = Annotated[int, Path(ge=1)]


@router.get(
    "",
    summary="List Versions",
    description="Lists the versions of a document, newest first, with live page counts.",
    responses={
        200: {"description": "Version history"},
        404: {"description": "Dossier or document not found"},
    },
)
async def list_versions(
    uuid: UUID,
    document_type: DocumentType,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    version_service: VersionServiceDep,
) -> List[VersionRead]:
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        return await version_service.read_versions(db, document)
    except DomainError:
        raise
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        logger.exception(f"Failed to list versions of {uuid}/{document_type}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Version",
    description="""
    Creates an empty version of a document.

    - **name**: Version name (1-100 characters)
    - **makeCurrent**: Switch the document to the new version (default: false)
    """,
    responses={
        201: {"description": "Version created"},
        404: {"description": "Dossier or document not found"},
        422: {"description": "Invalid version name"},
    },
)
async def create_version(
    uuid: UUID,
    document_type: DocumentType,
    version_data: VersionCreate,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    version_service: VersionServiceDep,
) -> VersionRef:
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        version = await version_service.create(db, document, version_data.name, version_data.make_current)
        return VersionRef(id=version.id, name=version.name)
    except DomainError:
        raise
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        logger.exception(f"Failed to create version for {uuid}/{document_type}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.patch(
    "/{version_id}",
    summary="Rename Version",
    responses={
        200: {"description": "Version renamed"},
        404: {"description": "Version not found for this document"},
    },
)
async def rename_version(
    uuid: UUID,
    document_type: DocumentType,
    version_id: VersionId,
    update_data: VersionUpdate,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    version_service: VersionServiceDep,
) -> VersionRef:
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        version = await version_service.rename(db, document, version_id, update_data.name)
        return VersionRef(id=version.id, name=version.name)
    except DomainError:
        raise
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        logger.exception(f"Failed to rename version {version_id}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.put(
    "/{version_id}/current",
    summary="Set Current Version",
    description="Makes the version the one served by downloads and listed as current.",
    responses={
        200: {"description": "Current version switched"},
        404: {"description": "Version not found for this document"},
    },
)
async def set_current_version(
    uuid: UUID,
    document_type: DocumentType,
    version_id: VersionId,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    version_service: VersionServiceDep,
) -> VersionRef:
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        version = await version_service.set_current(db, document, version_id)
        return VersionRef(id=version.id, name=version.name)
    except DomainError:
        raise
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        logger.exception(f"Failed to switch to version {version_id}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.delete(
    "/{version_id}",
    summary="Delete Version",
    description="""
    Deletes a version and its pages.

    When the deleted version was current, the most recently created remaining
    version becomes current; without remaining versions the document has no
    current version.
    """,
    responses={
        200: {"description": "Version deleted, with the resulting current version"},
        404: {"description": "Version not found for this document"},
    },
)
async def delete_version(
    uuid: UUID,
    document_type: DocumentType,
    version_id: VersionId,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    version_service: VersionServiceDep,
    streaming_service: StreamingServiceDep,
) -> VersionDeleteResponse:
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        current = await version_service.delete(db, document, version_id)
        await streaming_service.evict(version_id)
        return VersionDeleteResponse(
            message="Version deleted successfully",
            current_version=VersionRef(id=current.id, name=current.name) if current else None,
        )
    except DomainError:
        raise
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        logger.exception(f"Failed to delete version {version_id}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
