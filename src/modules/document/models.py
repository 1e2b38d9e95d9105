"""SQLAlchemy models for document entities."""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class Document(Base, TimestampMixin):
    """A typed slot of a dossier (e.g. ``passport``) holding a version history.

    ``current_version_id`` points at the version served by default. The
    foreign key is created after both tables exist because versions also
    reference documents.
    """

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("dossier_id", "code", name="uq_documents_dossier_code"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    dossier_id: Mapped[int] = mapped_column(Integer, ForeignKey("dossiers.id", ondelete="CASCADE"), index=True)
    code: Mapped[str] = mapped_column(String(50), index=True)
    current_version_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("versions.id", ondelete="SET NULL", use_alter=True, name="fk_documents_current_version"),
        nullable=True,
        default=None,
    )
