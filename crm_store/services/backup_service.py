"""
Backup service for the live database.
Handles local backups, restore with a safety snapshot, deletion and export.
"""
import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Callable, List, Optional

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from crm_store.database import Store
from crm_store.exceptions import (
    BackupMissingException,
    InvalidBackupException,
    SourceMissingException,
    StorageIOException,
)
from crm_store.models import BackupRecord, BackupValidation, RestoreProgress, RestoreStage
from crm_store.services.backup_store import BackupStore, iso_with_dashes, now_millis
from crm_store.services.preferences_service import PreferencesService
from crm_store.services.retention import RetentionPolicy

logger = logging.getLogger("crm_store.backup")

SQLITE_HEADER = b"SQLite format 3\x00"

ProgressCallback = Callable[[RestoreProgress], None]


def _discard_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Could not remove partial file {path}: {e}")


class BackupService:
    """
    Create / restore / delete backups of the live database file.

    All mutating operations, and every read-modify-write of the persisted
    counters, run under ``self.lock`` so a manual backup cannot race the
    scheduled one.
    """

    def __init__(
        self,
        store: Store,
        backup_store: BackupStore,
        retention: RetentionPolicy,
        preferences: PreferencesService,
        clock: Callable[[], int] = now_millis,
    ):
        self.store = store
        self.backup_store = backup_store
        self.retention = retention
        self.preferences = preferences
        self.clock = clock
        self.lock = threading.RLock()

    def list(self) -> List[BackupRecord]:
        """All backups, newest first"""
        return self.backup_store.list()

    def latest(self) -> Optional[BackupRecord]:
        backups = self.backup_store.list()
        return backups[0] if backups else None

    def create(self) -> BackupRecord:
        """
        Create a local backup of the database.

        Returns:
            The new BackupRecord

        Raises:
            SourceMissingException: the live database file does not exist
            StorageIOException: the backup directory or the copy failed
        """
        with self.lock:
            self.backup_store.ensure_directory()

            if not self.store.exists():
                logger.error(f"Database not found: {self.store.database_path}")
                raise SourceMissingException(self.store.database_path)

            filename, created_at = self.backup_store.unique_name_for(self.clock())
            destination = self.backup_store.backup_dir / filename

            logger.info(f"Creating backup: {filename}")
            try:
                self.store.copy_database_file(destination)
                size_bytes = destination.stat().st_size
            except OSError as e:
                logger.error(f"✗ Backup failed: {e}")
                _discard_partial(destination)
                raise StorageIOException("copy", str(e)) from e

            self.preferences.set_last_backup_millis(created_at)
            self.preferences.set_backup_count(self.preferences.get_backup_count() + 1)

            backup = BackupRecord(
                filename=filename,
                path=destination,
                created_at_millis=created_at,
                size_bytes=size_bytes,
            )
            logger.info(f"✓ Backup created: {filename} ({size_bytes} bytes)")

            self.retention.apply(self.backup_store.list())
            return backup

    def validate(self, path) -> BackupValidation:
        """Check that a file looks like a restorable SQLite database"""
        target = Path(path)
        if not target.is_file():
            return BackupValidation(is_valid=False, error="Backup file not found")

        file_size = target.stat().st_size
        if file_size == 0:
            return BackupValidation(is_valid=False, error="Backup file is empty", file_size=0)

        if not target.name.lower().endswith(".db"):
            return BackupValidation(
                is_valid=False, error="File must have a .db extension", file_size=file_size
            )

        with open(target, "rb") as f:
            header = f.read(len(SQLITE_HEADER))
        if header != SQLITE_HEADER:
            return BackupValidation(
                is_valid=False,
                error="File does not appear to be a valid SQLite database",
                file_size=file_size,
                is_database=False,
            )

        engine = create_engine(f"sqlite:///file:{target.resolve()}?mode=ro&uri=true")
        try:
            tables = [
                name for name in inspect(engine).get_table_names()
                if not name.startswith("sqlite_")
            ]
            has_data = False
            with engine.connect() as conn:
                for table in tables:
                    if conn.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar():
                        has_data = True
                        break
        except SQLAlchemyError as e:
            # Header check passed, contents just could not be inspected
            logger.warning(f"Could not inspect backup {target.name}: {e}")
            return BackupValidation(
                is_valid=True, file_size=file_size, is_database=True, has_data=None
            )
        finally:
            engine.dispose()

        return BackupValidation(
            is_valid=True,
            file_size=file_size,
            is_database=True,
            has_data=has_data,
            tables=tables,
        )

    def _stage(self, source: Path) -> Path:
        """Copy the restore source aside so retention cannot evict it mid-restore"""
        self.backup_store.ensure_directory()
        fd, staged = tempfile.mkstemp(suffix=".restoring", dir=self.backup_store.backup_dir)
        os.close(fd)
        staged = Path(staged)
        try:
            shutil.copyfile(source, staged)
        except OSError as e:
            _discard_partial(staged)
            raise StorageIOException("copy", str(e)) from e
        return staged

    def restore(self, path, on_progress: Optional[ProgressCallback] = None) -> Optional[BackupRecord]:
        """
        Replace the live database with a backup.

        A safety backup of the current database is always taken first. The
        caller owns the store's connections and must reopen them afterwards.

        Args:
            path: Backup file to restore (inside or outside the backup directory)
            on_progress: Optional callback receiving RestoreProgress updates

        Returns:
            The safety backup, or None if there was no live database to protect

        Raises:
            BackupMissingException: path does not exist
            InvalidBackupException: path is not a SQLite database
            StorageIOException: copying failed
        """
        def report(stage: RestoreStage, progress: int, message: str) -> None:
            if on_progress:
                on_progress(RestoreProgress(stage=stage, progress=progress, message=message))

        source = Path(path)
        with self.lock:
            report(RestoreStage.VALIDATING, 10, "Validating backup file...")
            if not source.is_file():
                logger.error(f"Backup not found: {source}")
                raise BackupMissingException(source)

            validation = self.validate(source)
            if not validation.is_valid:
                raise InvalidBackupException(source, validation.error)
            if validation.has_data is False:
                logger.warning(f"Backup {source.name} appears to be empty (no data found)")

            staged = self._stage(source)
            try:
                report(RestoreStage.BACKING_UP, 30, "Creating safety backup of current database...")
                safety = None
                if self.store.exists():
                    safety = self.create()
                else:
                    logger.warning("No live database to protect, skipping safety backup")

                report(RestoreStage.RESTORING, 60, "Restoring database from backup...")
                try:
                    self.store.replace_database_file(staged)
                except OSError as e:
                    logger.error(f"✗ Restore from {source.name} failed: {e}")
                    raise StorageIOException("restore", str(e)) from e
            finally:
                _discard_partial(staged)

            logger.info(f"✓ Database restored from: {source}")
            report(RestoreStage.COMPLETE, 100, "Database restored successfully!")
            return safety

    def delete(self, path) -> bool:
        """
        Delete a backup file. Deleting a missing file succeeds.
        The persisted counter is decremented either way, floored at zero.

        Returns:
            True if a file was removed
        """
        target = Path(path)
        with self.lock:
            removed = True
            try:
                target.unlink()
            except FileNotFoundError:
                logger.info(f"Backup already deleted: {target.name}")
                removed = False
            except OSError as e:
                logger.error(f"Failed to delete backup: {e}")
                raise StorageIOException("delete", str(e)) from e

            self.preferences.set_backup_count(self.preferences.get_backup_count() - 1)
            if removed:
                logger.info(f"Deleted backup: {target.name}")
            return removed

    def export(self, destination_dir, path=None) -> Path:
        """
        Copy a backup (the latest one by default) to a user-chosen directory.

        Returns:
            Path of the exported copy
        """
        with self.lock:
            if path is None:
                latest = self.latest()
                if latest is None:
                    raise BackupMissingException(self.backup_store.backup_dir)
                source = latest.path
            else:
                source = Path(path)
                if not source.is_file():
                    raise BackupMissingException(source)

            stamp = iso_with_dashes(self.clock())[:-5]
            target = Path(destination_dir) / f"{self.backup_store.prefix}_export_{stamp}.db"
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
            except OSError as e:
                logger.error(f"✗ Export failed: {e}")
                raise StorageIOException("export", str(e)) from e

            logger.info(f"✓ Exported {source.name} to {target}")
            return target
