from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, MappedAsDataclass, mapped_column
from sqlalchemy.types import TIMESTAMP


class TimestampMixin(MappedAsDataclass):
    """Mixin for adding created_at and updated_at timestamp columns.

    Both timestamps are timezone-aware and default to the current UTC time.
    They are excluded from dataclass initialization (init=False) so they
    cannot be set manually when a model is created.

    Attributes:
        created_at: Timestamp when the record was created.
        updated_at: Timestamp when the record was last updated.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        init=False,
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default_factory=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=True,
        init=False,
    )


class SoftDeleteMixin(MappedAsDataclass):
    """Mixin to add soft delete functionality to database models.

    Soft-deleted rows stay in the table for audit and recovery. The column
    names match FastCRUD's defaults, so ``crud.delete(...)`` marks a row as
    deleted instead of removing it.

    Attributes:
        deleted_at: Timestamp when the record was soft deleted.
        is_deleted: Boolean flag indicating if the record is deleted.

    Note:
        Queries must filter ``is_deleted == False`` explicitly; nothing
        excludes deleted rows automatically.
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
        default=None,
        init=False,
    )
    is_deleted: Mapped[bool] = mapped_column(
        default=False,
        index=True,
        init=False,
    )
