"""
Backup HTTP routes.
"""
import logging
import shutil
import tempfile
from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import FileResponse

from crm_store.auth import verify_api_key
from crm_store.context import BackupContext
from crm_store.exceptions import (
    BackupMissingException,
    InvalidBackupException,
    SchedulerUnavailableException,
    SourceMissingException,
    StorageIOException,
)
from crm_store.schemas import (
    AutoBackupUpdate,
    BackupResponse,
    BackupStatusResponse,
    BackupValidationResponse,
    LocationsResponse,
    RestoreRequest,
    RestoreResponse,
)

logger = logging.getLogger("crm_store.api")

router = APIRouter(prefix="/api/backups", tags=["backups"], dependencies=[Depends(verify_api_key)])


def get_backup_context(request: Request) -> BackupContext:
    return request.app.state.backup_context


def _resolve(ctx: BackupContext, filename: str) -> Path:
    try:
        return ctx.backup_path(filename)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid backup filename")


@router.get("", response_model=List[BackupResponse])
def list_backups(ctx: BackupContext = Depends(get_backup_context)):
    """Get all backups (newest first)"""
    return [BackupResponse.from_record(r) for r in ctx.list_backups()]


@router.post("/create", response_model=BackupResponse)
def create_backup(ctx: BackupContext = Depends(get_backup_context)):
    """Create a manual backup"""
    try:
        backup = ctx.create_backup()
    except (SourceMissingException, StorageIOException) as e:
        logger.error(f"Manual backup failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return BackupResponse.from_record(backup)


@router.get("/status", response_model=BackupStatusResponse)
def get_status(ctx: BackupContext = Depends(get_backup_context)):
    return BackupStatusResponse.from_status(ctx.get_status())


@router.put("/auto", response_model=BackupStatusResponse)
def set_auto_backup(update: AutoBackupUpdate, ctx: BackupContext = Depends(get_backup_context)):
    """Enable or disable scheduled backups"""
    try:
        ctx.set_auto_backup_enabled(update.enabled)
    except SchedulerUnavailableException as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return BackupStatusResponse.from_status(ctx.get_status())


@router.get("/latest", response_model=BackupResponse)
def get_latest_backup(ctx: BackupContext = Depends(get_backup_context)):
    backup = ctx.get_latest_backup()
    if not backup:
        raise HTTPException(status_code=404, detail="No backups yet")
    return BackupResponse.from_record(backup)


@router.get("/locations", response_model=LocationsResponse)
def get_locations(ctx: BackupContext = Depends(get_backup_context)):
    return LocationsResponse(
        database_location=ctx.get_database_location(),
        backup_location=ctx.get_backup_location(),
    )


@router.post("/restore", response_model=RestoreResponse)
def restore_backup(request: RestoreRequest, ctx: BackupContext = Depends(get_backup_context)):
    """Restore the database from a backup (a safety backup is taken first)"""
    return _restore(ctx, _resolve(ctx, request.filename), request.filename)


@router.post("/import", response_model=RestoreResponse)
def restore_from_upload(file: UploadFile = File(...), ctx: BackupContext = Depends(get_backup_context)):
    """Restore the database from an uploaded .db file"""
    name = Path(file.filename or "").name
    if not name.lower().endswith(".db"):
        raise HTTPException(status_code=422, detail="File must have a .db extension")

    with tempfile.TemporaryDirectory(prefix="crm-import-") as tmp:
        staged = Path(tmp) / name
        with open(staged, "wb") as f:
            shutil.copyfileobj(file.file, f)
        logger.info(f"Importing uploaded backup {name} ({staged.stat().st_size} bytes)")
        return _restore(ctx, staged, name)


def _restore(ctx: BackupContext, path: Path, label: str) -> RestoreResponse:
    try:
        safety = ctx.restore_from_backup(path)
    except BackupMissingException:
        raise HTTPException(status_code=404, detail="Backup not found")
    except InvalidBackupException as e:
        raise HTTPException(status_code=422, detail=e.reason)
    except (SourceMissingException, StorageIOException) as e:
        logger.error(f"Restore from {label} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return RestoreResponse(
        restored_from=label,
        safety_backup=BackupResponse.from_record(safety) if safety else None,
    )


@router.get("/{filename}/download")
def download_backup(filename: str, ctx: BackupContext = Depends(get_backup_context)):
    """Download a backup file"""
    path = _resolve(ctx, filename)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Backup file not found on disk")
    return FileResponse(
        path=str(path),
        filename=filename,
        media_type="application/octet-stream"
    )


@router.get("/{filename}/validate", response_model=BackupValidationResponse)
def validate_backup(filename: str, ctx: BackupContext = Depends(get_backup_context)):
    path = _resolve(ctx, filename)
    return BackupValidationResponse.model_validate(ctx.validate_backup(path))


@router.delete("/{filename}", status_code=status.HTTP_204_NO_CONTENT)
def delete_backup(filename: str, ctx: BackupContext = Depends(get_backup_context)):
    """Delete a backup"""
    path = _resolve(ctx, filename)
    try:
        ctx.delete_backup(path)
    except StorageIOException as e:
        raise HTTPException(status_code=500, detail=str(e))
