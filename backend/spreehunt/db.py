from __future__ import annotations
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import DeclarativeBase
from spreehunt.config import settings

class Base(DeclarativeBase):
    pass

engine = create_async_engine(settings.database_url, future=True, echo=False)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session

def register_models() -> None:
    # ensure every model is registered on Base.metadata
    import spreehunt.models.participant  # noqa: F401
    import spreehunt.models.topic  # noqa: F401
    import spreehunt.models.challenge  # noqa: F401
    import spreehunt.models.submission  # noqa: F401
    import spreehunt.models.config_entry  # noqa: F401

async def create_schema(bind: AsyncEngine | None = None) -> None:
    """Create all tables (dev / sqlite). Production schemas are managed by alembic."""
    register_models()
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
