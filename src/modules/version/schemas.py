"""Pydantic schemas for version entities."""

from typing import Annotated, Optional

from pydantic import Field

from ..common.schemas import CamelModel, UtcDatetime

VersionName = Annotated[str, Field(min_length=1, max_length=100, description="Human-readable version name")]


class VersionRef(CamelModel):
    id: int
    name: str


class VersionCreate(CamelModel):
    """Schema for creating a version explicitly."""

    name: VersionName
    make_current: bool = Field(default=False, description="Switch the document to the new version")


class VersionUpdate(CamelModel):
    name: VersionName


class VersionRead(CamelModel):
    id: int
    name: str
    document_id: Optional[int] = None
    is_current: bool = False
    files_count: int = 0
    created_at: UtcDatetime


class VersionDeleteResponse(CamelModel):
    message: str
    current_version: Optional[VersionRef] = None
