"""SQLAlchemy models for stored file entities."""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import SoftDeleteMixin, TimestampMixin
from ...infrastructure.database.session import Base


class File(Base, TimestampMixin, SoftDeleteMixin):
    """One stored page or artifact of a version.

    ``page_number`` orders the live files of a version starting at 1. Rows are
    soft deleted; only the removal of their version deletes them.
    """

    __tablename__ = "files"
    __table_args__ = (Index("ix_files_version_page", "version_id", "page_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    document_id: Mapped[int] = mapped_column(Integer, ForeignKey("documents.id", ondelete="CASCADE"), index=True)
    version_id: Mapped[int] = mapped_column(Integer, ForeignKey("versions.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    original_name: Mapped[str] = mapped_column(String(255))
    extension: Mapped[str] = mapped_column(String(20))
    mime_type: Mapped[str] = mapped_column(String(255))
    path: Mapped[str] = mapped_column(String(1024))
    page_number: Mapped[int] = mapped_column(Integer)
    size: Mapped[int] = mapped_column(Integer, default=0)
