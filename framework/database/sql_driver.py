from typing import Optional
from sqlmodel import SQLModel
from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from .base import BaseDatabaseDriver

class SQLDriver(BaseDatabaseDriver):
    """Sync and async engines over the same database.

    ``url`` takes an async driver (``mysql+aiomysql``, ``sqlite+aiosqlite``),
    ``sync_url`` the blocking one for the same database.
    """

    def __init__(self, url: str, sync_url: str, echo: bool = False, **engine_kwargs):
        self.async_engine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.engine = create_engine(sync_url, echo=echo, **engine_kwargs)
        self.async_session_factory = async_sessionmaker(
            self.async_engine, class_=AsyncSession, expire_on_commit=False
        )
        self.session_factory = sessionmaker(
            self.engine, class_=Session, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings) -> "SQLDriver":
        return cls(settings.DATABASE_URL, settings.SYNC_DATABASE_URL, echo=settings.DB_ECHO)

    async def connect(self):
        """Check connectivity (engines manage their own connections)."""
        async with self.async_engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self):
        """Dispose both engines."""
        await self.async_engine.dispose()
        self.engine.dispose()

    def create_schema(self, metadata: Optional[object] = None):
        """Create tables directly (tests / local runs); production uses alembic."""
        (metadata or SQLModel.metadata).create_all(self.engine)

    def drop_schema(self, metadata: Optional[object] = None):
        (metadata or SQLModel.metadata).drop_all(self.engine)
