"""
Backup status for the UI.
"""
from crm_store import config
from crm_store.models import BackupStatus
from crm_store.services.backup_store import BackupStore
from crm_store.services.preferences_service import PreferencesService


class StatusReporter:
    """Aggregates persisted flags and the on-disk backup list"""

    def __init__(self, backup_store: BackupStore, preferences: PreferencesService,
                 interval_millis: int = config.BACKUP_INTERVAL_MILLIS):
        self.backup_store = backup_store
        self.preferences = preferences
        self.interval_millis = interval_millis

    def get_status(self) -> BackupStatus:
        enabled = self.preferences.is_auto_backup_enabled()
        last_backup = self.preferences.get_last_backup_millis()

        next_backup = None
        if enabled and last_backup is not None:
            next_backup = last_backup + self.interval_millis

        # Real count from disk, not the persisted counter
        return BackupStatus(
            auto_backup_enabled=enabled,
            last_backup_at_millis=last_backup,
            next_backup_at_millis=next_backup,
            backup_count=len(self.backup_store.list()),
        )
