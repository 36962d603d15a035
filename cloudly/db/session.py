# ============================================================================
# FILE: cloudly/db/session.py
# ============================================================================
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict
from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm.exc import StaleDataError
from cloudly.core.exceptions import ConflictError
import logging

logger = logging.getLogger(__name__)

class Database:
    """Async engine plus session factory; one instance per application"""

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}

        self.url = url
        self.engine = create_async_engine(url, **engine_kwargs)

        if url.startswith("sqlite"):
            self._enable_sqlite_foreign_keys()

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def _enable_sqlite_foreign_keys(self) -> None:
        """SQLite ships with foreign keys disabled; turn them on per connection"""

        @event.listens_for(self.engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional scope: commit on success, roll back on any error"""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except StaleDataError as e:
                await session.rollback()
                logger.warning(f"Concurrent modification detected: {e}")
                raise ConflictError("Resource was modified concurrently, reload and retry")
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        from cloudly.db.base import Base
        import cloudly.db.models  # noqa: F401 - register models on the metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def drop_tables(self) -> None:
        from cloudly.db.base import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        await self.engine.dispose()

def get_database(request: Request) -> Database:
    """FastAPI dependency returning the app's Database handle"""
    return request.app.state.database

async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session"""
    async with get_database(request).session_scope() as session:
        yield session
