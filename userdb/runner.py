"""
Users Table Validation Runner

Runs every schema and insertion check against a live database outside of
pytest, collecting one result per check and printing a summary.
"""

import logging
import time
from datetime import date, datetime
from typing import List, Dict, Any, Optional

import asyncpg

from .config import get_database_config, DatabaseConfig
from .connections import open_connection
from .insertion import InsertionCase, build_insertion_cases, fetch_rows, insert_row, truncate_table
from .schema import BASE_FIELDS, ExpectedField, fetch_columns


logger = logging.getLogger(__name__)

SCHEMA_CATEGORY = "schema"
INSERTION_CATEGORY = "insertion"


class CheckResult:
    """Represents the result of a single check."""

    def __init__(self, name: str, category: str, passed: bool, duration: float, message: str = ""):
        self.name = name
        self.category = category
        self.passed = passed
        self.duration = duration
        self.message = message

    def __repr__(self) -> str:
        status = "passed" if self.passed else "failed"
        return f"<CheckResult {self.category}:{self.name} {status}>"


class UsersTableSuite:
    """Manages execution of all users table checks."""

    def __init__(self, config: Optional[DatabaseConfig] = None,
                 fields: Optional[List[ExpectedField]] = None,
                 today: Optional[date] = None):
        self.config = config or get_database_config()
        self.fields = fields if fields is not None else BASE_FIELDS
        self.today = today
        self.results: List[CheckResult] = []
        self.total_duration = 0.0

    def record(self, name: str, category: str, passed: bool, started: float, message: str = "") -> CheckResult:
        result = CheckResult(name, category, passed, time.time() - started, message)
        self.results.append(result)
        if not passed:
            logger.warning(f"Check failed: {name}: {message}")
        return result

    async def run_schema_checks(self, conn: asyncpg.Connection) -> List[CheckResult]:
        """Check presence and type of every expected field."""
        start_time = time.time()
        try:
            columns = await fetch_columns(conn, self.config.db_table, self.config.db_schema)
        except asyncpg.PostgresError as e:
            return [self.record(f"field {expected.name}", SCHEMA_CATEGORY, False, start_time, f"Error: {e}")
                    for expected in self.fields]
        results = []

        for expected in self.fields:
            present = expected.name in columns
            results.append(self.record(
                f"field {expected.name}", SCHEMA_CATEGORY, present, start_time,
                "" if present else f"column {expected.name} not found",
            ))

        for expected in self.fields:
            actual = columns.get(expected.name)
            results.append(self.record(
                f'field {expected.name} is type "{expected.type}"', SCHEMA_CATEGORY,
                actual == expected.type, start_time,
                "" if actual == expected.type else f"found {actual}",
            ))

        return results

    async def run_insertion_checks(self, conn: asyncpg.Connection) -> List[CheckResult]:
        """Run every insertion case, truncating the table after each one.

        If the table cannot be emptied before the first case, no insert is
        attempted and every case is recorded as failed with that error.
        """
        cases = build_insertion_cases(self.config.db_table, self.today)

        start_time = time.time()
        try:
            await truncate_table(conn, self.config.qualified_table)
        except asyncpg.PostgresError as e:
            logger.error(f"Cannot truncate {self.config.qualified_table}: {e}")
            return [self.record(case.name, INSERTION_CATEGORY, False, start_time, f"Error: {e}")
                    for case in cases]

        results = []
        for case in cases:
            start_time = time.time()
            try:
                passed, message = await self._run_case(conn, case)
            except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
                passed, message = False, f"Error: {e}"

            try:
                await truncate_table(conn, self.config.qualified_table)
            except asyncpg.PostgresError as e:
                passed, message = False, f"Error: truncate failed: {e}"

            results.append(self.record(case.name, INSERTION_CATEGORY, passed, start_time, message))
        return results

    async def _run_case(self, conn: asyncpg.Connection, case: InsertionCase):
        table = self.config.qualified_table

        if case.accepted:
            row_count = await insert_row(conn, table, case.values)
            if row_count != 1:
                return False, f"expected 1 inserted row, got {row_count}"

            rows = await fetch_rows(conn, table)
            user = rows[0]
            if user["email"] != case.values["email"]:
                return False, f"stored email is {user['email']!r}"
            if user["created_at"].year != datetime.now().year:
                return False, f"created_at {user['created_at']} is not in the current year"
            return True, ""

        try:
            await insert_row(conn, table, case.values)
        except asyncpg.PostgresError as e:
            if case.matches(e):
                return True, ""
            return False, f"expected {case.expected_error!r}, got {e}"
        return False, f"insert succeeded, expected {case.expected_error!r}"

    async def run_all(self) -> bool:
        """Run all checks on a single connection."""
        start_time = time.time()
        self.results = []

        async with open_connection(self.config) as conn:
            logger.info(f"Validating schema of {self.config.qualified_table}")
            await self.run_schema_checks(conn)
            logger.info(f"Validating insertions into {self.config.qualified_table}")
            await self.run_insertion_checks(conn)

        self.total_duration = time.time() - start_time
        return all(result.passed for result in self.results)

    def summary(self) -> Dict[str, Any]:
        """Get summary statistics."""
        total = len(self.results)
        passed = sum(1 for r in self.results if r.passed)

        by_category: Dict[str, Dict[str, int]] = {}
        for result in self.results:
            counts = by_category.setdefault(result.category, {"passed": 0, "failed": 0, "total": 0})
            counts["total"] += 1
            if result.passed:
                counts["passed"] += 1
            else:
                counts["failed"] += 1

        return {
            "total": total,
            "passed": passed,
            "failed": total - passed,
            "pass_rate": (passed / total * 100) if total > 0 else 0,
            "by_category": by_category,
            "duration": self.total_duration,
        }

    def print_summary(self):
        """Print the check summary."""
        summary = self.summary()

        print("\n" + "=" * 60)
        print(f"📊 USERS TABLE VALIDATION: {self.config.qualified_table}")
        print("=" * 60)

        for category in (SCHEMA_CATEGORY, INSERTION_CATEGORY):
            category_results = [r for r in self.results if r.category == category]
            if not category_results:
                continue
            print(f"\n📋 {category.capitalize()} checks:")
            for result in category_results:
                status_icon = "✅" if result.passed else "❌"
                print(f"   {status_icon} {result.name:<45} ({result.duration:.2f}s)")
                if result.message and not result.passed:
                    print(f"      {result.message}")

        print(f"\n🔢 Total Checks: {summary['total']}")
        print(f"✅ Passed: {summary['passed']}")
        print(f"❌ Failed: {summary['failed']}")
        print(f"📈 Success Rate: {summary['pass_rate']:.1f}%")
        print(f"⏱️  Total Duration: {summary['duration']:.2f}s")
        print("=" * 60)
