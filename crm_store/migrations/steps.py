"""
Additive schema changes.
Each step describes its target shape; the runner decides whether it is already satisfied.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple


def sql_default(value: Any) -> str:
    """Render a Python default as a SQLite literal"""
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        escaped = value.replace("'", "''")
        return f"'{escaped}'"
    raise TypeError(f"Unsupported default value: {value!r}")


@dataclass(frozen=True)
class AddColumn:
    table: str
    column: str
    type: str
    default: Any = None
    references: Optional[str] = None  # e.g. "clients(id) ON DELETE SET NULL"
    label: Optional[str] = None

    @property
    def name(self) -> str:
        return self.label or f"add_{self.column}_to_{self.table}"

    def ddl(self) -> str:
        alter_sql = f"ALTER TABLE {self.table} ADD COLUMN {self.column} {self.type}"
        if self.default is not None:
            alter_sql += f" DEFAULT {sql_default(self.default)}"
        if self.references:
            alter_sql += f" REFERENCES {self.references}"
        return alter_sql


@dataclass(frozen=True)
class AddTable:
    table: str
    columns: Tuple[str, ...]
    label: Optional[str] = None

    @property
    def name(self) -> str:
        return self.label or f"add_{self.table}_table"

    def ddl(self) -> str:
        body = ",\n    ".join(self.columns)
        return f"CREATE TABLE IF NOT EXISTS {self.table} (\n    {body}\n)"
