from pydantic import BaseModel, Field
from typing import List, Optional

from crm_store.models import BackupRecord, BackupStatus
from crm_store.services.backup_store import format_size, format_timestamp


# Backup schemas
class BackupResponse(BaseModel):
    filename: str
    path: str
    created_at_millis: int
    size_bytes: int
    formatted_date: str
    formatted_size: str

    @classmethod
    def from_record(cls, record: BackupRecord) -> "BackupResponse":
        return cls(
            filename=record.filename,
            path=str(record.path),
            created_at_millis=record.created_at_millis,
            size_bytes=record.size_bytes,
            formatted_date=format_timestamp(record.created_at_millis),
            formatted_size=format_size(record.size_bytes),
        )


class BackupStatusResponse(BaseModel):
    auto_backup_enabled: bool
    last_backup_at_millis: Optional[int] = None
    next_backup_at_millis: Optional[int] = None
    backup_count: int = Field(ge=0)

    class Config:
        from_attributes = True

    @classmethod
    def from_status(cls, status: BackupStatus) -> "BackupStatusResponse":
        return cls.model_validate(status)


class AutoBackupUpdate(BaseModel):
    enabled: bool


class RestoreRequest(BaseModel):
    filename: str = Field(min_length=1)


class RestoreResponse(BaseModel):
    restored_from: str
    safety_backup: Optional[BackupResponse] = None


class BackupValidationResponse(BaseModel):
    is_valid: bool
    error: Optional[str] = None
    file_size: Optional[int] = None
    is_database: Optional[bool] = None
    has_data: Optional[bool] = None
    tables: List[str] = []

    class Config:
        from_attributes = True


class LocationsResponse(BaseModel):
    database_location: str
    backup_location: str
