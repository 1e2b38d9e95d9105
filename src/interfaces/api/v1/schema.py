"""Schema definition endpoints."""

from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Path

from ....modules.common.exceptions import ResourceNotFoundError, UnknownSchemaError
from ..dependencies import Registry

router = APIRouter(prefix="/schemas", tags=["Schemas"])


@router.get(
    "",
    summary="List Schemas",
    responses={200: {"description": "Names of the available schemas"}},
)
async def list_schemas(registry: Registry) -> List[str]:
    return registry.available()


@router.get(
    "/{name}",
    summary="Get Schema",
    description="Returns the definition of a schema: its document types and accepted formats.",
    responses={
        200: {"description": "Schema definition"},
        404: {"description": "Unknown schema"},
    },
)
async def get_schema(
    name: Annotated[str, Path(pattern=r"^[a-zA-Z0-9_-]{1,100}$", description="Schema name")],
    registry: Registry,
) -> Dict[str, Any]:
    """Get a schema definition."""
    try:
        return {"schema": registry.get_schema(name)}
    except UnknownSchemaError as e:
        raise ResourceNotFoundError(str(e), code=e.code) from e
