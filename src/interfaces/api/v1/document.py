"""Document API endpoints: upload, download and page access."""

from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, HTTPException, Path, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from ....infrastructure.logging import get_logger
from ....modules.common.constants import DOCUMENT_TYPE_PATTERN
from ....modules.common.exceptions import DomainError
from ....modules.common.schemas import MessageResponse
from ....modules.common.utils.error_handler import handle_exception
from ....modules.document.schemas import PageListResponse, UploadResult
from ....modules.document.services import UploadRequest
from ..dependencies import (
    AccessToken,
    DbSession,
    DocumentServiceDep,
    DossierServiceDep,
    Policy,
    Storage,
    StreamingServiceDep,
    authorize_dossier,
)
from ..responses import artifact_response

logger = get_logger(__name__)

router = APIRouter(prefix="/dossiers/{uuid}/documents/{document_type}", tags=["Documents"])

DocumentType = Annotated[
    str, Path(pattern=DOCUMENT_TYPE_PATTERN, description="Document type code, e.g. `passport`")
]
VersionIdQuery = Annotated[
    Optional[int], Query(alias="versionId", ge=1, description="Version to read instead of the current one")
]


def _internal_error(e: Exception, action: str) -> HTTPException:
    http_exc = handle_exception(e)
    if http_exc:
        return http_exc
    logger.exception(f"Failed to {action}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.put(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Upload Document Files",
    description="""
    Uploads one or more files as pages of a document.

    PDFs are split into one JPEG per page, images are normalized to bounded
    JPEGs and office documents are stored unchanged. All pages of the batch
    are numbered after the highest live page of the target version.

    - **files**: One or more files (repeat the field)
    - **name**: Name for a version created by this upload
    - **isNewVersion**: Store the batch in a new version instead of the current one
    - **schema**: Schema for a dossier created by this upload
    """,
    responses={
        201: {"description": "Files stored"},
        401: {"description": "Missing or invalid access token"},
        403: {"description": "Token has no access to the dossier's schema"},
        413: {"description": "A file exceeds the size limit"},
        422: {"description": "Missing files, disallowed type or unprocessable content"},
    },
)
async def upload_document(
    uuid: UUID,
    document_type: DocumentType,
    files: Annotated[List[UploadFile], File(description="Files to store as pages")],
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    name: Annotated[Optional[str], Form(max_length=100, description="Version name")] = None,
    is_new_version: Annotated[bool, Form(alias="isNewVersion")] = False,
    schema_name: Annotated[Optional[str], Form(alias="schema", max_length=100)] = None,
) -> UploadResult:
    """Store uploaded files as pages of the document."""
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid), schema_name or None)
        request = UploadRequest(
            dossier_uuid=str(uuid),
            document_type=document_type,
            files=files,
            version_name=name or None,
            is_new_version=is_new_version,
            schema=schema_name or None,
        )
        return await document_service.upload(db, request)
    except DomainError:
        raise
    except Exception as e:
        raise _internal_error(e, f"upload to {uuid}/{document_type}")


@router.get(
    "",
    summary="Download Document",
    description="""
    Streams the live pages of the current (or requested) version as one file.

    A single page is returned as stored. Pages that are all PDFs or images
    are merged into one PDF; any other mix is returned as a ZIP archive.
    """,
    responses={
        200: {"description": "The document", "content": {"application/pdf": {}, "application/zip": {}}},
        404: {"description": "Dossier, document or version not found, or no live pages"},
    },
    response_class=StreamingResponse,
)
async def download_document(
    uuid: UUID,
    document_type: DocumentType,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    storage: Storage,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    streaming_service: StreamingServiceDep,
    version_id: VersionIdQuery = None,
) -> StreamingResponse:
    """Download the whole document."""
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        version = await document_service.resolve_version(db, document, version_id)
        files = await document_service.live_files(db, version)
        artifact = await streaming_service.prepare(files, document_type)
        return artifact_response(storage, artifact)
    except DomainError:
        raise
    except Exception as e:
        raise _internal_error(e, f"download {uuid}/{document_type}")


@router.get(
    "/pages",
    summary="List Pages",
    description="Lists the live pages of the current (or requested) version in page order.",
    responses={
        200: {"description": "Pages of the version"},
        404: {"description": "Dossier, document or version not found"},
    },
)
async def list_pages(
    uuid: UUID,
    document_type: DocumentType,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    version_id: VersionIdQuery = None,
) -> PageListResponse:
    """List the pages of a document version."""
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        return await document_service.list_pages(db, document, version_id)
    except DomainError:
        raise
    except Exception as e:
        raise _internal_error(e, f"list pages of {uuid}/{document_type}")


@router.get(
    "/pages/{page_id}",
    summary="Get Page",
    description="Streams one live page of the document with its stored MIME type.",
    responses={
        200: {"description": "The page"},
        404: {"description": "Page not found, deleted or owned by another document"},
    },
    response_class=StreamingResponse,
)
async def get_page(
    uuid: UUID,
    document_type: DocumentType,
    page_id: str,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    storage: Storage,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    streaming_service: StreamingServiceDep,
) -> StreamingResponse:
    """Stream a single page."""
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        file = await document_service.get_live_file(db, document, page_id)
        artifact = await streaming_service.single(file)
        return artifact_response(storage, artifact, inline=True)
    except DomainError:
        raise
    except Exception as e:
        raise _internal_error(e, f"stream page {page_id} of {uuid}/{document_type}")


@router.delete(
    "/pages/{page_id}",
    summary="Delete Page",
    description="""
    Soft deletes one page. The page disappears from listings, counts and
    downloads; deleting it again returns 404.
    """,
    responses={
        200: {"description": "Page deleted"},
        404: {"description": "Page not found or already deleted"},
    },
)
async def delete_page(
    uuid: UUID,
    document_type: DocumentType,
    page_id: str,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    document_service: DocumentServiceDep,
    streaming_service: StreamingServiceDep,
) -> MessageResponse:
    """Soft delete a page and drop the cached downloads of its version."""
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid))
        _, document = await document_service.get_document(db, str(uuid), document_type)
        deleted = await document_service.delete_file(db, document, page_id)
        await streaming_service.evict(deleted.version_id)
        return MessageResponse(message="File deleted successfully")
    except DomainError:
        raise
    except Exception as e:
        raise _internal_error(e, f"delete page {page_id} of {uuid}/{document_type}")
