"""Pydantic schemas for document entities."""

from typing import List, Optional

from ..common.schemas import CamelModel
from ..file.schemas import PageRead
from ..version.schemas import VersionRead, VersionRef


class DocumentRef(CamelModel):
    code: str


class UploadResult(CamelModel):
    """Outcome of an upload: ``{document: {code}, version: {id, name}, filesProcessed, pagesAdded}``."""

    document: DocumentRef
    version: VersionRef
    files_processed: int
    pages_added: int


class PageListResponse(CamelModel):
    document: DocumentRef
    version: Optional[VersionRef] = None
    pages: List[PageRead]


class DocumentSummary(CamelModel):
    """A document of a dossier with its version history."""

    code: str
    current_version: Optional[VersionRef] = None
    pages_count: int = 0
    versions: List[VersionRead] = []
