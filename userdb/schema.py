"""
Users Table Schema

Expected column layout of the users table, the introspection query used to
read the live layout, and the reference DDL used to provision a disposable
database for the suite.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import asyncpg


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpectedField:
    """A column the users table must expose, with its information_schema data type."""
    name: str
    type: str


# Base fields every deployment of the users table must have
BASE_FIELDS: List[ExpectedField] = [
    ExpectedField("id", "integer"),
    ExpectedField("email", "character varying"),
    ExpectedField("username", "character varying"),
    ExpectedField("birthdate", "date"),
    ExpectedField("city", "character varying"),
    ExpectedField("created_at", "timestamp without time zone"),
]


COLUMNS_QUERY = """
    SELECT
        column_name, data_type
    FROM
        information_schema.columns
    WHERE
        table_name = $1::text
        AND table_schema = $2::text
"""


@dataclass(frozen=True)
class ColumnMismatch:
    """Difference between an expected field and what the database reports."""
    column: str
    kind: str  # "missing" or "type"
    expected: str
    actual: Optional[str] = None

    def describe(self) -> str:
        if self.kind == "missing":
            return f"column {self.column} is missing (expected {self.expected})"
        return f"column {self.column} is {self.actual}, expected {self.expected}"


async def fetch_columns(conn: asyncpg.Connection, table: str = "users",
                        schema: str = "public") -> Dict[str, str]:
    """Map each column of the table to its data type."""
    rows = await conn.fetch(COLUMNS_QUERY, table, schema)
    columns = {row["column_name"]: row["data_type"] for row in rows}
    logger.debug(f"Found {len(columns)} columns in {schema}.{table}")
    return columns


def compare_columns(expected: List[ExpectedField], actual: Dict[str, str]) -> List[ColumnMismatch]:
    """
    Compare expected fields against the columns reported by the database.

    Columns present in the database but not expected are ignored.
    """
    mismatches = []
    for expected_field in expected:
        if expected_field.name not in actual:
            mismatches.append(ColumnMismatch(expected_field.name, "missing", expected_field.type))
        elif actual[expected_field.name] != expected_field.type:
            mismatches.append(ColumnMismatch(
                expected_field.name, "type", expected_field.type, actual[expected_field.name]
            ))
    return mismatches


async def table_exists(conn: asyncpg.Connection, table: str = "users",
                       schema: str = "public") -> bool:
    """Check whether the table exists as a base table."""
    found = await conn.fetchval("""
        SELECT EXISTS (
            SELECT 1
            FROM information_schema.tables
            WHERE table_schema = $1::text
            AND table_name = $2::text
            AND table_type = 'BASE TABLE'
        )
    """, schema, table)
    return bool(found)


@dataclass
class TableDefinition:
    """Represents a table definition."""
    name: str
    sql: str
    indexes: List[str] = field(default_factory=list)


def reference_users_table(table: str = "users", schema: str = "public") -> TableDefinition:
    """
    DDL for a users table that enforces every rule the suite checks.

    Check constraints reference CURRENT_DATE, so the birthdate window moves
    with the calendar.
    """
    return TableDefinition(
        name=table,
        sql=f"""
            CREATE TABLE IF NOT EXISTS {schema}.{table} (
                id SERIAL PRIMARY KEY,
                email VARCHAR(50) NOT NULL
                    CHECK (email ~ '^[^@[:space:]]+@[^@[:space:]]+\\.[^@[:space:]]+$'),
                username VARCHAR(50) NOT NULL,
                birthdate DATE NOT NULL,
                city VARCHAR(100) NOT NULL,
                created_at TIMESTAMP NOT NULL DEFAULT NOW(),
                CONSTRAINT username_length CHECK (char_length(username) >= 3),
                CONSTRAINT username_with_number CHECK (username !~ '[0-9]'),
                CONSTRAINT future_future CHECK (
                    birthdate <= CURRENT_DATE
                    AND birthdate > CURRENT_DATE - INTERVAL '130 years'
                ),
                CONSTRAINT birthdate_numbers CHECK (city !~ '[0-9]')
            )
        """,
        indexes=[
            f"CREATE INDEX IF NOT EXISTS idx_{table}_email ON {schema}.{table}(email)",
        ],
    )


async def create_reference_table(conn: asyncpg.Connection, table: str = "users",
                                 schema: str = "public") -> None:
    """Create the reference users table and its indexes."""
    definition = reference_users_table(table, schema)
    logger.info(f"Creating reference table: {schema}.{definition.name}")
    await conn.execute(definition.sql)
    for index_sql in definition.indexes:
        await conn.execute(index_sql)


async def drop_reference_table(conn: asyncpg.Connection, table: str = "users",
                               schema: str = "public") -> None:
    logger.info(f"Dropping table: {schema}.{table}")
    await conn.execute(f"DROP TABLE IF EXISTS {schema}.{table} CASCADE")
