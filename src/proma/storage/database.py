"""Database configuration and session management.

This module provides the async SQLAlchemy engine and session lifecycle used by
every repository in Proma.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from proma.storage.base_model import Base


class DatabaseConfig:
    """Database configuration.

    Attributes:
        url: Async database connection URL (e.g. ``sqlite+aiosqlite:///./proma.db``)
        echo: Whether to log SQL statements (default: False)
        pool_size: Connection pool size for non-SQLite databases (default: 5)
        max_overflow: Maximum overflow connections (default: 10)
    """

    def __init__(
        self,
        url: str = "sqlite+aiosqlite:///:memory:",
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ):
        self.url = url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow


class Database:
    """Async database connection and session manager.

    Example:
        >>> db = Database(DatabaseConfig(url="sqlite+aiosqlite:///./proma.db"))
        >>> await db.create_tables()
        >>> async with db.session() as session:
        ...     await session.execute(text("SELECT 1"))
    """

    def __init__(self, config: DatabaseConfig):
        """Initialize database with configuration.

        Args:
            config: Database configuration
        """
        self.config = config

        engine_kwargs: dict[str, Any] = {"echo": config.echo}
        if "sqlite" in config.url:
            if ":memory:" in config.url:
                # One shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
                engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs["pool_size"] = config.pool_size
            engine_kwargs["max_overflow"] = config.max_overflow

        self.engine = create_async_engine(config.url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

        if "sqlite" in config.url:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async def create_tables(self) -> None:
        """Create all tables defined in ORM models."""
        from proma.storage.model_registry import register_all_models

        register_all_models()

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Create a new database session, committing on success.

        Yields:
            AsyncSession bound to this database
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database engine and connections."""
        await self.engine.dispose()

    async def health_check(self) -> bool:
        """Check database connectivity.

        Returns:
            True if database is healthy

        Raises:
            Exception if database connection fails
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    """Turn on SQLite foreign key enforcement so message rows cascade."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
