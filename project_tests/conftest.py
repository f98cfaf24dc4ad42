"""
Root pytest configuration for the users table validation suite.

Live database tests are marked ``requires_db`` and are skipped unless a
connection is configured through DATABASE_URL or the DB_* settings.
"""

import pytest
from dotenv import load_dotenv

from userdb.config import unconfigured_reason

# Load environment variables
load_dotenv()


def pytest_addoption(parser):
    parser.addoption(
        "--provision-db",
        action="store_true",
        default=False,
        help="Drop and recreate the reference users table before the live tests",
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "requires_db: mark test as requiring a live PostgreSQL database"
    )
    config.addinivalue_line(
        "markers", "schema: users table column presence and type checks"
    )
    config.addinivalue_line(
        "markers", "constraints: users table insertion and constraint checks"
    )


def pytest_collection_modifyitems(config, items):
    reason = unconfigured_reason()
    if reason is None:
        return
    skip_marker = pytest.mark.skip(reason=reason)
    for item in items:
        if "requires_db" in item.keywords:
            item.add_marker(skip_marker)
