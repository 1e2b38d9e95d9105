"""Pydantic schemas for dossier entities."""

from typing import List, Optional
from uuid import UUID

from pydantic import Field

from ..common.schemas import CamelModel, UtcDatetime
from ..document.schemas import DocumentSummary


class DossierCreate(CamelModel):
    """Schema for creating a dossier; the identifier is generated when omitted."""

    schema_name: Optional[str] = Field(default=None, alias="schema", min_length=1, max_length=100)
    uuid: Optional[UUID] = None


class DossierRead(CamelModel):
    uuid: str
    schema_name: str = Field(alias="schema")
    created_at: UtcDatetime
    documents: List[DocumentSummary] = []
