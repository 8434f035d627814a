#!/usr/bin/env python3
"""
Bring an existing CRM database up to the current schema without losing data.
A copy of the file is taken next to it before anything is changed.

Usage:
    python -m crm_store.migrate_db [path_to_database]
"""
import shutil
import sys
from pathlib import Path
from typing import List, Optional

from crm_store import config
from crm_store.database import Store
from crm_store.exceptions import MigrationFailedException
from crm_store.migrations import CRM_MIGRATIONS, MigrationRunner


def migrate_database(db_path) -> List[str]:
    """Run every registered step against db_path. Returns the names of applied steps."""
    print(f"Migrating database: {db_path}")
    store = Store(db_path)
    try:
        runner = MigrationRunner(CRM_MIGRATIONS)
        runner.run(store)
    finally:
        store.dispose()

    if runner.applied:
        print(f"\nApplied {len(runner.applied)} migrations:")
        for name in runner.applied:
            print(f"  - {name}")
        print("\n✓ Migration completed successfully!")
    else:
        print("\n✓ Database is already up to date!")
    return runner.applied


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    db_path = Path(argv[0]) if argv else config.DATABASE_PATH

    if not db_path.exists():
        print(f"Error: Database file not found: {db_path}")
        print("\nUsage: python -m crm_store.migrate_db [path_to_database]")
        print(f"Default path: {config.DATABASE_PATH}")
        return 1

    backup_path = db_path.with_suffix('.db.backup')
    print(f"Creating backup: {backup_path}")
    shutil.copy2(db_path, backup_path)

    try:
        migrate_database(db_path)
    except MigrationFailedException as e:
        print(f"\n✗ Migration failed: {e}")
        print(f"Your original database is backed up at: {backup_path}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
