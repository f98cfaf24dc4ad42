"""
Database Test Fixtures

One connection is shared by every live test of the session, the same way
a single client serves the whole suite.
"""

from typing import Dict

import pytest
import pytest_asyncio

from userdb.config import get_database_config, reset_database_config, DatabaseConfig
from userdb.connections import open_connection
from userdb.insertion import InsertionCase, build_insertion_cases, truncate_table
from userdb.schema import create_reference_table, drop_reference_table, fetch_columns


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    reset_database_config()
    return get_database_config()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def connection(db_config, request):
    """Open the shared connection, provisioning the reference table on request."""
    async with open_connection(db_config) as conn:
        if request.config.getoption("--provision-db"):
            await drop_reference_table(conn, db_config.db_table, db_config.db_schema)
            await create_reference_table(conn, db_config.db_table, db_config.db_schema)
        yield conn


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def columns(connection, db_config) -> Dict[str, str]:
    """Columns of the users table, read once per session."""
    return await fetch_columns(connection, db_config.db_table, db_config.db_schema)


@pytest.fixture(scope="session")
def insertion_cases(db_config) -> Dict[str, InsertionCase]:
    return {case.name: case for case in build_insertion_cases(db_config.db_table)}


@pytest_asyncio.fixture(loop_scope="session")
async def clean_table(connection, db_config):
    """Empty the users table around each insertion test."""
    await truncate_table(connection, db_config.qualified_table)
    yield
    await truncate_table(connection, db_config.qualified_table)
