"""
Backup context.
Owns the store handle, persisted flags and the backup services for one process.
Created by the startup routine and passed to whatever needs it.
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional

from crm_store import config
from crm_store.database import Store
from crm_store.exceptions import SchedulerUnavailableException
from crm_store.migrations import run_migrations
from crm_store.models import BackupRecord, BackupStatus, BackupValidation
from crm_store.services.backup_service import BackupService, ProgressCallback
from crm_store.services.backup_store import BackupStore, now_millis
from crm_store.services.preferences_service import PreferencesService
from crm_store.services.retention import RetentionPolicy
from crm_store.services.scheduler_service import (
    ApschedulerPlatform,
    AutoBackupScheduler,
    TriggerPlatform,
)
from crm_store.services.status_service import StatusReporter

logger = logging.getLogger("crm_store")


class BackupContext:
    """Public backup surface consumed by the UI / HTTP layer"""

    def __init__(
        self,
        store: Store,
        preferences: PreferencesService,
        backup_dir,
        platform: TriggerPlatform,
        max_backups: int = config.MAX_BACKUPS,
        interval_millis: int = config.BACKUP_INTERVAL_MILLIS,
        prefix: str = config.BACKUP_PREFIX,
        clock: Callable[[], int] = now_millis,
    ):
        self.store = store
        self.preferences = preferences
        self.backup_store = BackupStore(backup_dir, prefix=prefix, clock=clock)
        self.retention = RetentionPolicy(preferences, max_backups)
        self.backups = BackupService(store, self.backup_store, self.retention, preferences, clock)
        self.scheduler = AutoBackupScheduler(
            self.backups, preferences, platform, interval_millis, clock
        )
        self.status = StatusReporter(self.backup_store, preferences, interval_millis)

    @classmethod
    def from_config(cls) -> "BackupContext":
        return cls(
            store=Store(config.DATABASE_PATH),
            preferences=PreferencesService(config.PREFERENCES_PATH),
            backup_dir=config.BACKUP_DIR,
            platform=ApschedulerPlatform(),
        )

    def start(self) -> None:
        """Startup order: migrations first, then the backup system"""
        run_migrations(self.store)
        self.initialize()

    def initialize(self) -> None:
        """Ensure the backup directory and re-register the trigger if enabled"""
        self.backup_store.ensure_directory()

        if self.preferences.is_auto_backup_enabled():
            try:
                self.scheduler.register()
            except SchedulerUnavailableException as e:
                logger.error(f"Auto backup is enabled but could not be scheduled: {e}")

        logger.info("Backup system initialized")

    def shutdown(self) -> None:
        self.scheduler.platform.shutdown()
        self.scheduler.token = None
        self.store.dispose()
        self.preferences.dispose()

    def create_backup(self) -> BackupRecord:
        return self.backups.create()

    def list_backups(self) -> List[BackupRecord]:
        return self.backups.list()

    def get_latest_backup(self) -> Optional[BackupRecord]:
        return self.backups.latest()

    def get_status(self) -> BackupStatus:
        return self.status.get_status()

    def set_auto_backup_enabled(self, enabled: bool) -> None:
        self.scheduler.set_enabled(enabled)

    def restore_from_backup(self, path, on_progress: Optional[ProgressCallback] = None) -> Optional[BackupRecord]:
        """Restore and recycle the store's pooled connections around the file swap"""
        with self.backups.lock:
            self.store.dispose()
            try:
                return self.backups.restore(path, on_progress)
            finally:
                self.store.dispose()

    def delete_backup(self, path) -> bool:
        return self.backups.delete(path)

    def validate_backup(self, path) -> BackupValidation:
        return self.backups.validate(path)

    def export_backup(self, destination_dir, path=None) -> Path:
        return self.backups.export(destination_dir, path)

    def backup_path(self, filename: str) -> Path:
        return self.backup_store.path_for(filename)

    def get_database_location(self) -> str:
        return str(self.store.database_path)

    def get_backup_location(self) -> str:
        return str(self.backup_store.backup_dir)
