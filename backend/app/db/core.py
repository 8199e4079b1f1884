from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from ..settings import settings

engine = create_async_engine(
    settings.async_database_url,
    future=True,
    echo=False,
    pool_pre_ping=True,
)

Base = declarative_base()


async def create_tables(target: AsyncEngine) -> None:
    from . import models  # noqa: F401 - ensure models registered

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    await create_tables(engine)


async def ping_db() -> str:
    """Round-trip a trivial statement; returns the dialect name."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        return conn.dialect.name

