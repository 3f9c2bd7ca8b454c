"""Async SQLAlchemy engine and session factory."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from miniflow.config import MiniflowConfig, config as default_config


def create_engine(cfg: Optional[MiniflowConfig] = None) -> AsyncEngine:
    """Build the async engine for ``cfg.database_url``."""
    cfg = cfg or default_config
    return create_async_engine(cfg.database_url, echo=cfg.debug)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables. Called at startup."""
    from miniflow.db.models import Base
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
