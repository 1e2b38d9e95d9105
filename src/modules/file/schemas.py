"""Pydantic schemas for stored files."""

from ..common.schemas import CamelModel, UtcDatetime


class PageRead(CamelModel):
    """One live page of a document version."""

    uuid: str
    name: str
    original_name: str
    extension: str
    mime_type: str
    page_number: int
    size: int
    created_at: UtcDatetime
