"""
Create the stages, projects and stage_updates tables.

Usage:
    python migrations/add_stage_tracking_tables.py [--database-url URL]

The script is idempotent and safe to run multiple times. It inspects the
current schema and only creates tables that are missing.
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError, ProgrammingError

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Add parent directory to path to import app modules
sys.path.insert(0, ROOT_DIR)

# Load environment variables from a .env file if present
load_dotenv()

TRACKING_TABLES = ("stages", "projects", "stage_updates")


def table_exists(engine, table_name: str) -> bool:
    """Check if a table exists in the connected database."""
    return inspect(engine).has_table(table_name)


def migrate(database_url: str = None) -> bool:
    """Create any missing stage tracking tables."""
    from app import create_app
    from app.models import db

    test_config = {"SQLALCHEMY_DATABASE_URI": database_url} if database_url else None
    app = create_app(test_config)

    with app.app_context():
        try:
            engine = db.engine
            missing = [name for name in TRACKING_TABLES if not table_exists(engine, name)]

            if not missing:
                print("✓ All stage tracking tables already exist.")
                return True

            print(f"Creating tables: {', '.join(missing)}")
            tables = [db.metadata.tables[name] for name in missing]
            db.metadata.create_all(bind=engine, tables=tables)

            still_missing = [name for name in missing if not table_exists(engine, name)]
            if still_missing:
                print(f"✗ Tables not created: {', '.join(still_missing)}. Please verify manually.")
                return False

            print("✓ Migration completed successfully.")
            return True

        except (OperationalError, ProgrammingError) as exc:
            print(f"✗ Database error: {exc}")
            db.session.rollback()
            return False


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create stage tracking tables.")
    parser.add_argument(
        "--database-url",
        help="Override database URL (otherwise inferred from env or defaults).",
    )
    args = parser.parse_args()

    success = migrate(args.database_url)
    sys.exit(0 if success else 1)
