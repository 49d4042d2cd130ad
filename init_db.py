#!/usr/bin/env python3
"""
Initialize the notes database.

Creates all necessary tables for storing documents, pages and figure images.
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from data.database import DatabaseManager


def main():
    parser = argparse.ArgumentParser(
        description='Initialize notes database'
    )
    parser.add_argument(
        '--database-url',
        type=str,
        default=None,
        help='Database URL (default: DATABASE_URL setting)'
    )
    parser.add_argument(
        '--drop-existing',
        action='store_true',
        help='Drop existing tables before creating new ones (WARNING: destroys data!)'
    )

    args = parser.parse_args()

    db_manager = DatabaseManager(args.database_url)

    print("=" * 60)
    print("Notes Database Initialization")
    print("=" * 60)
    print(f"Database URL: {db_manager.database_url}")
    print()

    if args.drop_existing:
        confirm = input("⚠️  Drop existing tables? This will DELETE ALL DATA! (yes/no): ")
        if confirm.lower() == 'yes':
            db_manager.drop_tables()
            print()
        else:
            print("Aborted.")
            return

    db_manager.create_tables()

    print()
    print("✓ Database initialized successfully!")
    print()
    print("Tables:")
    for name in db_manager.table_names():
        print(f"  - {name}")
    print()
    print("You can now process notes: python cli_workflow.py process page1.jpg page2.jpg")
    print()


if __name__ == '__main__':
    main()
