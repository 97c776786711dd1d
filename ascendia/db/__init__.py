"""
Ascendia Database Layer
Picks the storage backend once per process:
- Supabase (PostgREST) when SUPABASE_URL + SUPABASE_SERVICE_ROLE_KEY are set
- SQLModel over async SQLAlchemy (db_url, SQLite by default) otherwise
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

from ascendia.config import settings
from ascendia.db.base import Store
from ascendia.db.sql_store import SqlStore

logger = logging.getLogger("ascendia")


def _get_connect_args(db_url: str) -> dict:
    """Get database-specific connection arguments."""
    if "sqlite" in db_url:
        return {"check_same_thread": False}
    return {}


def create_engine(db_url: Optional[str] = None) -> AsyncEngine:
    db_url = db_url or settings.db_url
    return create_async_engine(
        db_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args=_get_connect_args(db_url),
    )


async def create_db_and_tables(engine: AsyncEngine) -> None:
    """Create SQL tables and seed the built-in archetypes. Idempotent."""
    from ascendia.services.archetypes import DEFAULT_ARCHETYPES

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    await SqlStore(engine).seed_archetypes(DEFAULT_ARCHETYPES)
    logger.info("database_tables_created", extra={"db_url": str(engine.url)})


_store: Optional[Store] = None


def build_store() -> Store:
    if settings.uses_supabase:
        from ascendia.db.supabase_client import SupabaseStore

        logger.info("storage_backend_selected", extra={"backend": "supabase"})
        return SupabaseStore().connect()

    logger.info("storage_backend_selected", extra={"backend": "sql"})
    return SqlStore(create_engine())


def get_store() -> Store:
    """Process-wide store, created on first use."""
    global _store
    if _store is None:
        _store = build_store()
    return _store


async def close_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
