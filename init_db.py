"""
Database initialization script.
Creates all tables directly, or applies the Alembic migrations with --migrate.
Run this as: python init_db.py [--migrate]
"""

import argparse
import logging
import sys

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("db-init")

from podhub.core.config import settings
from podhub.db.init_db import create_all_tables, init_db
from podhub.db.session import engine

def main():
    parser = argparse.ArgumentParser(description="Initialize the PodHub database")
    parser.add_argument("--migrate", action="store_true", help="Apply Alembic migrations instead of create_all")
    args = parser.parse_args()

    logger.info(f"Initializing database at: {engine.url.render_as_string(hide_password=True)}")
    if args.migrate:
        init_db()
        return

    if not create_all_tables(engine):
        logger.error("Database initialization failed")
        sys.exit(1)
    logger.info(f"Database ready for {settings.PROJECT_NAME}")

if __name__ == "__main__":
    main()
