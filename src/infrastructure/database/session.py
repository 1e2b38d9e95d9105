from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass

from ..config.settings import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    pool_size=settings.POSTGRES_POOL_SIZE,
    max_overflow=settings.POSTGRES_MAX_OVERFLOW,
)

local_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase, MappedAsDataclass):
    """Base class for all database models.

    Combines SQLAlchemy's DeclarativeBase with MappedAsDataclass so every
    model gets dataclass-style ``__init__``/``__repr__`` generated from its
    mapped columns.

    Note:
        Models describe rows only; relations between dossiers, documents,
        versions and files are plain foreign-key columns and are loaded
        with explicit queries in the services.
    """

    pass


async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for database session management with proper lifecycle.

    Yields:
        AsyncSession: A configured async database session.

    Note:
        Designed to be used as a FastAPI dependency via
        ``Depends(async_session)``. Transaction boundaries are owned by the
        services (see ``Transaction``), not by this dependency.
    """
    async_get_db = local_session
    async with async_get_db() as db:
        yield db


async def create_tables() -> None:
    """Create all tables in the database if they don't exist.

    Note:
        This function is idempotent - it will only create tables that
        don't already exist. For production deployments prefer a migration
        tool over this function.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
