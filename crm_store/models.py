from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

PreferencesBase = declarative_base()


class Preference(PreferencesBase):
    __tablename__ = "preferences"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)  # Scalars are stored as strings ("true", "1703500200000")
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


@dataclass(frozen=True)
class BackupRecord:
    """A backup file on disk. Immutable once created."""
    filename: str
    path: Path
    created_at_millis: int
    size_bytes: int


@dataclass(frozen=True)
class BackupStatus:
    auto_backup_enabled: bool
    last_backup_at_millis: Optional[int]
    next_backup_at_millis: Optional[int]
    backup_count: int


@dataclass
class BackupValidation:
    is_valid: bool
    error: Optional[str] = None
    file_size: Optional[int] = None
    is_database: Optional[bool] = None
    has_data: Optional[bool] = None
    tables: List[str] = field(default_factory=list)


class RestoreStage(str, Enum):
    VALIDATING = "validating"
    BACKING_UP = "backing_up"
    RESTORING = "restoring"
    COMPLETE = "complete"


@dataclass(frozen=True)
class RestoreProgress:
    stage: RestoreStage
    progress: int  # 0-100
    message: str
