"""
Retention policy for local backups.
Keeps the newest N backups and evicts the rest, one file at a time.
"""
import logging
from typing import List, Sequence

from crm_store import config
from crm_store.models import BackupRecord
from crm_store.services.preferences_service import PreferencesService

logger = logging.getLogger("crm_store.retention")


class RetentionPolicy:
    """Enforce a maximum retained backup count"""

    def __init__(self, preferences: PreferencesService, max_backups: int = config.MAX_BACKUPS):
        if max_backups < 1:
            raise ValueError("max_backups must be at least 1")
        self.preferences = preferences
        self.max_backups = max_backups

    def apply(self, records: Sequence[BackupRecord]) -> List[BackupRecord]:
        """
        Delete every backup beyond the newest max_backups.

        Args:
            records: Backups sorted newest first

        Returns:
            The records whose files were removed
        """
        deleted = []
        for record in records[self.max_backups:]:
            try:
                record.path.unlink()
                deleted.append(record)
                logger.info(f"Deleted old backup: {record.filename}")
            except FileNotFoundError:
                logger.warning(f"Old backup already gone: {record.filename}")
            except OSError as e:
                logger.error(f"Failed to delete backup file {record.filename}: {e}")

        count = self.preferences.get_backup_count()
        if count > self.max_backups:
            self.preferences.set_backup_count(self.max_backups)

        return deleted
