"""
Database Connection Management

Provides the connection lifecycle used by the validation suite: a single
raw asyncpg connection for the checks themselves, and a SQLAlchemy engine
wrapper for health checks and database information.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, AsyncGenerator, Dict, Any

import asyncpg
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from .config import get_database_config, DatabaseConfig


logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_connection(config: Optional[DatabaseConfig] = None) -> AsyncGenerator[asyncpg.Connection, None]:
    """
    Open the connection shared by every check of a suite run.

    The connection is closed on exit, including when a check raises.
    """
    config = config or get_database_config()
    conn = await asyncpg.connect(**config.get_connection_params())
    logger.debug(f"Connection opened for {config.qualified_table}")
    try:
        yield conn
    finally:
        await conn.close()
        logger.debug("Connection closed")


DATABASE_INFO_QUERY = """
    SELECT version() AS version,
           current_database() AS database_name,
           pg_size_pretty(pg_database_size(current_database())) AS database_size,
           (SELECT count(*) FROM pg_stat_activity
            WHERE datname = current_database()) AS connection_count
"""


class DatabaseManager:
    """
    SQLAlchemy engine for the connectivity check.

    The engine uses NullPool: each check opens its own connection and
    closes it straight away, so no pool is kept between calls.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self._config = config
        self._engine: Optional[AsyncEngine] = None

    @property
    def config(self) -> DatabaseConfig:
        if self._config is None:
            self._config = get_database_config()
        return self._config

    async def setup(self) -> None:
        """Create the engine and verify that the server answers."""
        if self._engine is not None:
            return

        engine = create_async_engine(
            self.config.async_database_url,
            poolclass=NullPool,
            echo=self.config.db_echo,
            connect_args={
                "timeout": self.config.db_connect_timeout,
                "command_timeout": self.config.db_query_timeout,
            },
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Failed to reach {self.config.qualified_table}'s database: {e}")
            await engine.dispose()
            raise

        self._engine = engine
        logger.info(f"Engine ready for {self.config.qualified_table}")

    async def cleanup(self) -> None:
        """Dispose of the engine. Safe to call more than once."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        logger.info("Engine disposed")

    async def health_check(self) -> bool:
        if self._engine is None:
            return False

        try:
            async with self._engine.connect() as conn:
                return await conn.scalar(text("SELECT 1")) == 1
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def get_database_info(self) -> Dict[str, Any]:
        """
        Describe the server behind the configured table.

        Returns:
            version, database_name, database_size, connection_count and
            table; or error and table when the server cannot be queried
        """
        try:
            await self.setup()
            async with self._engine.connect() as conn:
                row = (await conn.execute(text(DATABASE_INFO_QUERY))).one()
        except Exception as e:
            logger.error(f"Failed to get database info: {e}")
            return {"error": str(e), "table": self.config.qualified_table}

        return {**row._mapping, "table": self.config.qualified_table}

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine


async def get_database_manager(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """
    Get a connected database manager.

    This is the main entry point for the connectivity check.
    """
    manager = DatabaseManager(config)
    await manager.setup()
    return manager
