"""Async database engine, session factory and declarative base."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from raintrigger.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def init_models(bind=None) -> None:
    """Create all tables. Used for local development and tests."""
    # Import models so they register on Base.metadata
    from raintrigger.audit import models as _audit_models  # noqa: F401
    from raintrigger.compliance import models as _compliance_models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
