"""
Initialize the library database.

This command:
1. Creates the tables, the borrow guard trigger and the current_borrows view
2. Optionally loads the sample data and/or generated demo data
3. Verifies the schema is complete

Usage:
    library-db-init [--drop-existing] [--sample-data] [--demo-data N] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import func, select

from .config import get_config
from .database import VIEW_NAME, current_borrows_view, get_db_manager, reset_db_manager
from .database.session import EXPECTED_TABLES
from .observability import configure_logging, initialize_observability
from .seed import generate_demo_data, load_sample_data

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="library-db-init",
        description="Initialize the library circulation database",
    )
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables, trigger and view before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load the four-book sample data set after creating the schema",
    )
    parser.add_argument(
        "--demo-data",
        type=int,
        metavar="N",
        default=0,
        help="Generate N random borrow attempts over a Faker catalog",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for database initialization."""
    args = build_parser().parse_args(argv)

    config = get_config()
    configure_logging(config)
    initialize_observability(config)

    logger.info("Initializing database manager...")
    db_manager = get_db_manager(args.database_url)

    try:
        if not db_manager.verify_connection():
            logger.error("Failed to connect to database")
            return 1

        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            logger.info("Loading sample data...")
            with db_manager.session_scope() as session:
                load_sample_data(session)

        if args.demo_data:
            logger.info("Generating demo data (%d borrow attempts)...", args.demo_data)
            with db_manager.session_scope() as session:
                generate_demo_data(session, loans=args.demo_data)

        tables = db_manager.table_names()
        logger.info("Created tables: %s", ", ".join(sorted(tables)))
        missing_tables = EXPECTED_TABLES - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing_tables)))
            return 1

        if VIEW_NAME not in db_manager.view_names():
            logger.error("Missing view: %s", VIEW_NAME)
            return 1

        with db_manager.session_scope() as session:
            open_loans = session.execute(
                select(func.count()).select_from(current_borrows_view)
            ).scalar_one()
        logger.info("%s currently lists %d open loans", VIEW_NAME, open_loans)

        logger.info("Database initialization complete")
        return 0
    except Exception:
        logger.exception("Database initialization failed")
        return 1
    finally:
        reset_db_manager()


if __name__ == "__main__":
    sys.exit(main())
