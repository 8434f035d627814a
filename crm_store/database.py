"""
Database handle for the live SQLite store.
Thin wrapper around a SQLAlchemy engine exposing the primitives the backup
and migration code relies on.
"""
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine


def create_sqlite_engine(path) -> Engine:
    """Create an engine for a SQLite file"""
    return create_engine(
        f"sqlite:///{Path(path)}",
        connect_args={"check_same_thread": False},
    )


class Store:
    """Handle to the live database file"""

    def __init__(self, database_path):
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_sqlite_engine(self.database_path)

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Execute a statement in its own transaction"""
        with self.engine.begin() as conn:
            conn.execute(text(sql), params or {})

    def query_rows(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a query and return every row as a dict"""
        with self.engine.connect() as conn:
            result = conn.execute(text(sql), params or {})
            return [dict(row._mapping) for row in result]

    def query_one(self, sql: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Run a query and return the first row, or None"""
        with self.engine.connect() as conn:
            row = conn.execute(text(sql), params or {}).first()
            return dict(row._mapping) if row is not None else None

    def table_exists(self, table_name: str) -> bool:
        """Check whether a table exists"""
        return inspect(self.engine).has_table(table_name)

    def get_table_columns(self, table_name: str) -> dict:
        """Get existing columns from database table"""
        columns = {}
        for row in self.query_rows(f"PRAGMA table_info({table_name})"):
            columns[row["name"]] = {
                'type': row["type"],
                'notnull': row["notnull"],
                'default': row["dflt_value"],
                'pk': row["pk"]
            }
        return columns

    def exists(self) -> bool:
        return self.database_path.exists()

    def copy_database_file(self, destination) -> None:
        """Byte-for-byte copy of the database file"""
        shutil.copy2(self.database_path, destination)

    def replace_database_file(self, source) -> None:
        """Overwrite the database file with a copy of source"""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, self.database_path)

    def dispose(self) -> None:
        """Close pooled connections (before/after the file is replaced)"""
        self.engine.dispose()
