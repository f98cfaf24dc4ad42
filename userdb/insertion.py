"""
Insertion Cases

Catalog of INSERT statements run against the users table together with the
outcome the database must produce for each of them, plus the helpers that
execute those statements.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import asyncpg


logger = logging.getLogger(__name__)

# SQLSTATE codes reported by PostgreSQL
CHECK_VIOLATION = "23514"
NOT_NULL_VIOLATION = "23502"
STRING_DATA_RIGHT_TRUNCATION = "22001"
INVALID_DATETIME_FORMAT = "22007"
DATETIME_FIELD_OVERFLOW = "22008"

VALID_USER = {
    "email": "user@example.com",
    "username": "user",
    "birthdate": "2024-01-02",
    "city": "La Plata",
}


@dataclass(frozen=True)
class InsertionCase:
    """An INSERT into the users table and the outcome it must have."""
    name: str
    values: Dict[str, Any]
    expected_error: Optional[str] = None
    sqlstate: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.expected_error is None

    def matches(self, exc: BaseException) -> bool:
        """Check whether a raised error is the one this case expects."""
        if self.expected_error is None or self.expected_error not in str(exc):
            return False
        if self.sqlstate is not None:
            return getattr(exc, "sqlstate", None) == self.sqlstate
        return True


def sql_literal(value: Any) -> str:
    """Render a value as an inline SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, (date, datetime)):
        value = value.isoformat()
    return "'" + str(value).replace("'", "''") + "'"


def render_insert(table: str, values: Dict[str, Any]) -> str:
    """
    Build an INSERT statement with inline literals.

    Values are not bound as parameters: asyncpg would encode them on the
    client and reject malformed dates before the server ever sees them.
    """
    columns = ", ".join(values)
    literals = ", ".join(sql_literal(value) for value in values.values())
    return f"INSERT INTO {table} ({columns}) VALUES ({literals})"


def years_ago(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return today.replace(year=today.year - years, day=28)


def _without(column: str) -> Dict[str, Any]:
    return {key: value for key, value in VALID_USER.items() if key != column}


def _with(**overrides: Any) -> Dict[str, Any]:
    values = dict(VALID_USER)
    values.update(overrides)
    return values


def build_insertion_cases(table: str = "users", today: Optional[date] = None) -> List[InsertionCase]:
    """
    Build the insertion catalog for a table.

    Args:
        table: Table name, used in the expected constraint messages
        today: Reference date for the future and too-old birthdates

    Returns:
        List[InsertionCase]: The valid case first, then every rejected case
    """
    today = today or date.today()

    def check(constraint: str) -> str:
        return f'new row for relation "{table}" violates check constraint "{constraint}"'

    email_check = check(f"{table}_email_check")

    return [
        InsertionCase("valid user", _with()),
        InsertionCase("invalid email", _with(email="user"), email_check, CHECK_VIOLATION),
        InsertionCase("empty email", _with(email=""), email_check, CHECK_VIOLATION),
        InsertionCase(
            "email too long",
            _with(email="estoesunmailmuylargosesuponequedebedeserdee30@mascosasdelotrolado.com"),
            "value too long for type character varying(50)",
            STRING_DATA_RIGHT_TRUNCATION,
        ),
        InsertionCase("email with only @", _with(email="@"), email_check, CHECK_VIOLATION),
        InsertionCase(
            "empty username",
            _with(email="ejemplo@test.com", username="", birthdate="2024-05-4", city="la plata"),
            check("username_length"),
            CHECK_VIOLATION,
        ),
        InsertionCase(
            "username shorter than 3 characters",
            _with(email="ejemplo@test.com", username="pe", birthdate="2024-05-4", city="la plata"),
            check("username_length"),
            CHECK_VIOLATION,
        ),
        InsertionCase(
            "username containing numbers",
            _with(email="ejemplo@test.com", username="pepe21", birthdate="2024-05-4", city="la plata"),
            check("username_with_number"),
            CHECK_VIOLATION,
        ),
        InsertionCase(
            "birthdate is not a date",
            _with(birthdate="invalid_date"),
            "invalid input syntax for type date",
            INVALID_DATETIME_FORMAT,
        ),
        InsertionCase(
            "birthdate is a bare number",
            _with(birthdate="4456456"),
            "date/time field value out of range",
            DATETIME_FIELD_OVERFLOW,
        ),
        InsertionCase(
            "birthdate in the future",
            _with(birthdate=today + timedelta(days=365)),
            check("future_future"),
            CHECK_VIOLATION,
        ),
        InsertionCase(
            "born more than 130 years ago",
            _with(birthdate=years_ago(today, 131)),
            check("future_future"),
            CHECK_VIOLATION,
        ),
        InsertionCase(
            "missing birthdate",
            _without("birthdate"),
            'null value in column "birthdate"',
            NOT_NULL_VIOLATION,
        ),
        InsertionCase(
            "missing city",
            _without("city"),
            'null value in column "city"',
            NOT_NULL_VIOLATION,
        ),
        InsertionCase(
            "city containing numbers",
            _with(city="4468"),
            check("birthdate_numbers"),
            CHECK_VIOLATION,
        ),
    ]


async def insert_row(conn: asyncpg.Connection, table: str, values: Dict[str, Any]) -> int:
    """Run the INSERT and return the number of rows it reports."""
    status = await conn.execute(render_insert(table, values))
    # Command status looks like "INSERT 0 1"
    return int(status.split()[-1])


async def fetch_rows(conn: asyncpg.Connection, table: str) -> List[asyncpg.Record]:
    return await conn.fetch(f"SELECT * FROM {table}")


async def truncate_table(conn: asyncpg.Connection, table: str) -> None:
    await conn.execute(f"TRUNCATE {table}")
    logger.debug(f"Truncated {table}")
