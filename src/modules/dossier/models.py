"""SQLAlchemy models for dossier entities."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...infrastructure.database.models import TimestampMixin
from ...infrastructure.database.session import Base


class Dossier(Base, TimestampMixin):
    """Top-level container of documents.

    A dossier is addressed by an identifier supplied by the calling system and
    is bound to the schema that decides which document types and file formats
    it accepts.
    """

    __tablename__ = "dossiers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, init=False)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    schema_name: Mapped[str] = mapped_column("schema", String(100), default="default")
