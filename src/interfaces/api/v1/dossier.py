"""Dossier API endpoints."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from ....infrastructure.logging import get_logger
from ....modules.common.exceptions import DomainError
from ....modules.common.utils.error_handler import handle_exception
from ....modules.dossier.schemas import DossierCreate, DossierRead
from ..dependencies import AccessToken, DbSession, DossierServiceDep, Policy, authorize_dossier

logger = get_logger(__name__)

router = APIRouter(prefix="/dossiers", tags=["Dossiers"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Dossier",
    description="""
    Creates an empty dossier bound to a schema.

    - **schema**: Name of the schema deciding which documents the dossier accepts
      (defaults to the configured default schema)
    - **uuid**: Optional identifier; generated when omitted
    """,
    responses={
        201: {"description": "Dossier created successfully"},
        409: {"description": "A dossier with this identifier already exists"},
        422: {"description": "Unknown schema or invalid identifier"},
    },
)
async def create_dossier(
    dossier_data: DossierCreate,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
) -> DossierRead:
    """Create a new dossier."""
    try:
        policy.ensure_allowed(token, dossier_data.schema_name or dossier_service.default_schema)
        dossier = await dossier_service.create(db, dossier_data)
        return await dossier_service.read(db, dossier)
    except DomainError:
        raise
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        logger.exception("Failed to create dossier")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


@router.get(
    "/{uuid}",
    summary="Get Dossier",
    description="""
    Returns a dossier with its documents, creating the dossier on first access.

    Each document lists its current version, the number of live pages in that
    version and its version history, newest first.

    - **uuid**: Dossier identifier
    - **schema**: Schema for a dossier created by this call
    """,
    responses={
        200: {"description": "Dossier with document summaries"},
        401: {"description": "Missing or invalid access token"},
        403: {"description": "Token has no access to the dossier's schema"},
        422: {"description": "Invalid identifier or unknown schema"},
    },
)
async def get_dossier(
    uuid: UUID,
    db: DbSession,
    token: AccessToken,
    policy: Policy,
    dossier_service: DossierServiceDep,
    schema_name: Annotated[
        Optional[str], Query(alias="schema", min_length=1, max_length=100, description="Schema for a new dossier")
    ] = None,
) -> DossierRead:
    """Get a dossier, creating it when it does not exist yet."""
    try:
        await authorize_dossier(db, dossier_service, policy, token, str(uuid), schema_name)
        dossier = await dossier_service.find_or_create(db, str(uuid), schema_name)
        return await dossier_service.read(db, dossier)
    except DomainError:
        raise
    except Exception as e:
        http_exc = handle_exception(e)
        if http_exc:
            raise http_exc
        logger.exception(f"Failed to load dossier {uuid}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
