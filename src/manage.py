"""Dropcart Dispatch database management CLI.

Provides commands to create and drop the dispatch database schema.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    """Create the dispatch database schema."""
    from dispatch.domain import dispatch
    from dispatch.utils.db import setup_db

    print("Initializing dispatch domain...")
    dispatch.init()
    print("Creating dispatch database schema...")
    setup_db(dispatch)
    print("Done.")


def drop_database():
    """Drop the dispatch database schema."""
    from dispatch.domain import dispatch
    from dispatch.utils.db import drop_db

    print("Initializing dispatch domain...")
    dispatch.init()
    print("Dropping dispatch database schema...")
    drop_db(dispatch)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Dropcart Dispatch database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
