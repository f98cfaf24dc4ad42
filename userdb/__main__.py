"""
Users Table Validation CLI

Usage:
    python -m userdb                      # Run every check
    python -m userdb --quick              # Connectivity check only
    python -m userdb --provision          # Create the reference table, then run
    python -m userdb --table accounts     # Validate another table
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

from .config import get_database_config, DatabaseConfig
from .connections import open_connection, get_database_manager
from .runner import UsersTableSuite
from .schema import create_reference_table, drop_reference_table

# Fix Unicode encoding for Windows terminal
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding='utf-8')
    sys.stderr.reconfigure(encoding='utf-8')

# Setup logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING').upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.WARNING),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

EXIT_NOT_CONFIGURED = 2


async def run_quick_check(config: DatabaseConfig) -> bool:
    """Run a quick connectivity check without the full suite."""
    print("🔍 Quick Database Connectivity Check")
    print("-" * 40)

    manager = await get_database_manager(config)
    try:
        if not await manager.health_check():
            print("❌ Health check failed")
            return False

        info = await manager.get_database_info()
        if "error" in info:
            print(f"❌ Failed to get database info: {info['error']}")
            return False

        print("✅ Database reachable:")
        for key in ("database_name", "version", "connection_count", "database_size", "table"):
            print(f"   {key}: {info[key]}")
        return True
    finally:
        await manager.cleanup()


async def provision(config: DatabaseConfig, recreate: bool = False) -> None:
    """Create the reference users table."""
    async with open_connection(config) as conn:
        if recreate:
            await drop_reference_table(conn, config.db_table, config.db_schema)
        await create_reference_table(conn, config.db_table, config.db_schema)
    print(f"🏗️  Reference table ready: {config.qualified_table}")


async def main(argv=None) -> int:
    """Main function to handle command line arguments."""
    parser = argparse.ArgumentParser(
        prog="python -m userdb",
        description="Users table schema and constraint validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--quick', action='store_true',
                        help='Only check connectivity')
    parser.add_argument('--provision', action='store_true',
                        help='Create the reference users table before running')
    parser.add_argument('--recreate', action='store_true',
                        help='With --provision, drop the table first')
    parser.add_argument('--table', help='Table to validate (overrides DB_TABLE)')
    parser.add_argument('--schema', help='Schema holding the table (overrides DB_SCHEMA)')

    args = parser.parse_args(argv)
    if args.recreate and not args.provision:
        parser.error('--recreate requires --provision')

    load_dotenv()

    try:
        config = get_database_config()
        overrides = {}
        if args.table:
            overrides["db_table"] = args.table
        if args.schema:
            overrides["db_schema"] = args.schema
        if overrides:
            config = DatabaseConfig(**{**config.model_dump(), **overrides})
    except ValidationError as e:
        print(f"❌ Invalid configuration: {e}")
        return EXIT_NOT_CONFIGURED

    if not config.is_configured:
        print("❌ Database connection is not configured.")
        print("   Set DATABASE_URL, or DB_HOST, DB_USER and DB_NAME.")
        return EXIT_NOT_CONFIGURED

    if args.quick:
        try:
            return 0 if await run_quick_check(config) else 1
        except Exception as e:
            logger.error(f"Connectivity check aborted: {e}")
            print(f"❌ Error: {e}")
            return 1

    suite = UsersTableSuite(config)
    try:
        if args.provision:
            await provision(config, recreate=args.recreate)

        success = await suite.run_all()
        suite.print_summary()

    except Exception as e:
        logger.error(f"Validation run aborted: {e}")
        if suite.results:
            suite.print_summary()
        print(f"❌ Error: {e}")
        return 1

    if success:
        print("\n🎉 All users table checks passed!")
        return 0
    print("\n⚠️  Some checks failed. Please review the results above.")
    return 1


def cli():
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    cli()
