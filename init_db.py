"""
Creates (or wipes and recreates) the save-game schema.

Usage:
    python init_db.py          # asks before dropping anything
    python init_db.py --yes    # non-interactive reset
"""

import argparse
from pathlib import Path

from ski_manager.database.connection import SCHEMA_NAME, get_db_connection

SCHEMA_PATH = Path(__file__).resolve().parent / 'ski_manager' / 'database' / 'schema.sql'

def reset_save_schema(schema_path=SCHEMA_PATH):
    """
    Drops the save schema and rebuilds it from schema.sql.
    Every stored save and race result is lost.

    Returns:
        bool: True when the new tables were committed.
    """
    try:
        sql_commands = Path(schema_path).read_text()
    except FileNotFoundError:
        print(f"Error: schema file not found at {schema_path}")
        return False

    conn = None
    try:
        conn = get_db_connection()
        if conn is None:
            return False

        # DROP SCHEMA can't run inside a transaction block
        conn.autocommit = True
        with conn.cursor() as cur:
            cur.execute(f"DROP SCHEMA IF EXISTS {SCHEMA_NAME} CASCADE;")
        print(f"  -> Dropped schema '{SCHEMA_NAME}'.")

        conn.autocommit = False
        with conn.cursor() as cur:
            cur.execute(sql_commands)
        conn.commit()
        print("  -> Save tables created.")
        return True
    except Exception as e:
        if conn:
            conn.rollback()
        print(f"Error resetting schema '{SCHEMA_NAME}': {e}")
        return False
    finally:
        if conn:
            conn.close()

def main():
    parser = argparse.ArgumentParser(description="Reset the ski manager save database.")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")
    args = parser.parse_args()

    if not args.yes:
        print(f"WARNING: every save in schema '{SCHEMA_NAME}' will be WIPED.")
        if input("Continue? (y/n): ").strip().lower() != 'y':
            print("Cancelled.")
            return
    reset_save_schema()

if __name__ == '__main__':
    main()
