"""
Database Connection Module for Uptime Watch

Manages database connections, session factories, and connection pooling
using SQLAlchemy's async engine and session maker.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from config.settings import DatabaseSettings
from database.models import Base
from exceptions import (
    DatabaseConnectionError,
    DatabaseQueryError,
    InitializationError
)
from utils.logger import get_logger


logger = get_logger("DatabaseManager")


class DatabaseManager:
    """
    Database Manager Class

    Owns the async engine and the session factory. Constructed explicitly
    by the application entry point (or by a test fixture) and shared by
    the repositories.

    Attributes:
        engine: SQLAlchemy async engine
        session_factory: Async session maker
        is_connected: Connection status flag
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        """
        Initialize database manager.

        Args:
            settings: Database section of the application settings
        """
        self._settings = settings
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.is_connected: bool = False
        self._lock = asyncio.Lock()

        self.database_url = settings.url
        logger.info(f"DatabaseManager created for {self._mask_password(self.database_url)}")

    @staticmethod
    def _mask_password(url: str) -> str:
        """Hide the password part of a database URL."""
        if "@" not in url or "://" not in url:
            return url

        protocol, rest = url.split("://", 1)
        credentials, host_part = rest.rsplit("@", 1)

        if ":" in credentials:
            user, _ = credentials.split(":", 1)
            return f"{protocol}://{user}:****@{host_part}"

        return url

    async def initialize(self, create_tables: bool = True) -> None:
        """
        Create the engine and session factory, verify the connection,
        and create missing tables.

        Raises:
            DatabaseConnectionError: If the database cannot be reached
            InitializationError: If table creation fails
        """
        async with self._lock:
            if self.is_connected:
                logger.warning("Database already initialized")
                return

            try:
                logger.info("Connecting to database...")

                self.engine = create_async_engine(
                    self.database_url,
                    **self._get_engine_kwargs()
                )
                self._register_event_listeners()

                self.session_factory = async_sessionmaker(
                    bind=self.engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False
                )

                await self._test_connection()

            except SQLAlchemyError as e:
                error_msg = f"Failed to connect to database: {e}"
                logger.error(error_msg)
                await self._dispose()
                raise DatabaseConnectionError(
                    message=error_msg,
                    host=None if self._settings.is_sqlite else self._settings.host,
                    port=None if self._settings.is_sqlite else self._settings.port,
                    database=self._settings.name,
                    cause=e
                )

            self.is_connected = True

            if create_tables:
                try:
                    await self.create_tables()
                except SQLAlchemyError as e:
                    await self._dispose()
                    raise InitializationError(
                        f"Failed to create tables: {e}",
                        component="database",
                        cause=e
                    )

            logger.info("Database connection established successfully")

    def _get_engine_kwargs(self) -> Dict[str, Any]:
        """
        Get engine configuration kwargs based on settings.

        Returns:
            Dictionary of engine configuration options
        """
        kwargs: Dict[str, Any] = {"echo": self._settings.echo}

        # NullPool for SQLite, the asyncio queue pool for PostgreSQL
        if self._settings.is_sqlite:
            kwargs["poolclass"] = NullPool
        else:
            kwargs["poolclass"] = AsyncAdaptedQueuePool
            kwargs["pool_size"] = self._settings.pool_size
            kwargs["max_overflow"] = self._settings.max_overflow
            kwargs["pool_timeout"] = self._settings.pool_timeout
            kwargs["pool_recycle"] = self._settings.pool_recycle
            kwargs["pool_pre_ping"] = self._settings.pool_pre_ping

        return kwargs

    def _register_event_listeners(self) -> None:
        """Register SQLAlchemy event listeners for connection management."""
        is_sqlite = self._settings.is_sqlite

        @event.listens_for(self.engine.sync_engine, "connect")
        def receive_connect(dbapi_conn, connection_record):
            # SQLite leaves foreign keys off unless asked on every connection
            if is_sqlite:
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
            logger.debug("New database connection established")

        @event.listens_for(self.engine.sync_engine, "checkout")
        def receive_checkout(dbapi_conn, connection_record, connection_proxy):
            logger.debug("Connection checked out from pool")

    async def _test_connection(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        """
        Create all database tables that do not exist yet.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional scope for database operations.

        Commits when the block exits normally, rolls back on any error,
        and always closes the session.

        Yields:
            AsyncSession instance

        Raises:
            DatabaseConnectionError: If not connected
            DatabaseQueryError: If a statement or the commit fails

        Example:
            async with db_manager.session() as session:
                target = await session.get(Target, target_id)
        """
        if not self.is_connected or not self.session_factory:
            raise DatabaseConnectionError("Database not connected")

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise DatabaseQueryError(message=str(e), cause=e)
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def check_connection(self) -> bool:
        """
        Check if database connection is alive.

        Returns:
            True if connection is alive, False otherwise
        """
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    async def _dispose(self) -> None:
        if self.engine:
            await self.engine.dispose()
        self.engine = None
        self.session_factory = None
        self.is_connected = False

    async def close(self) -> None:
        """
        Close database connections and cleanup resources.
        """
        async with self._lock:
            if not self.engine:
                return
            await self._dispose()
            logger.info("Database connections closed")
