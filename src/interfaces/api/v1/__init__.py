from fastapi import APIRouter

from .document import router as document_router
from .dossier import router as dossier_router
from .schema import router as schema_router
from .version import router as version_router

router = APIRouter(prefix="/v1")
router.include_router(dossier_router)
router.include_router(document_router)
router.include_router(version_router)
router.include_router(schema_router)


@router.get(
    "/health",
    summary="API Health Check",
    description="Simple health check endpoint for monitoring and container orchestration.",
    responses={
        200: {"description": "API is healthy and responding"},
    },
)
async def health_check():
    """Health check endpoint for Docker health checks."""
    return {"status": "healthy", "message": "Dossier Documents API is running"}
