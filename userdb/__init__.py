"""
Users Table Validation Package

This package validates the schema and the data-integrity constraints of a
PostgreSQL users table: expected columns and types, check constraints,
not-null constraints and length limits.
"""

from .config import DatabaseConfig, get_database_config, unconfigured_reason
from .connections import DatabaseManager, get_database_manager, open_connection
from .insertion import InsertionCase, build_insertion_cases
from .runner import CheckResult, UsersTableSuite
from .schema import BASE_FIELDS, ExpectedField, fetch_columns

__all__ = [
    "DatabaseConfig",
    "get_database_config",
    "unconfigured_reason",
    "DatabaseManager",
    "get_database_manager",
    "open_connection",
    "InsertionCase",
    "build_insertion_cases",
    "CheckResult",
    "UsersTableSuite",
    "BASE_FIELDS",
    "ExpectedField",
    "fetch_columns",
]

# Version info
__version__ = "1.0.0"
__description__ = "Schema and constraint validation suite for a PostgreSQL users table."
