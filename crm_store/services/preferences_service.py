"""
Preferences service.
Typed access to the persisted backup flags (enabled, last backup, count).
"""
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import sessionmaker

from crm_store import config
from crm_store.database import create_sqlite_engine
from crm_store.models import PreferencesBase
from crm_store.repositories.preferences_repository import PreferencesRepository

logger = logging.getLogger("crm_store.preferences")


class PreferencesService:
    """Key-value flags backed by a small SQLite file"""

    def __init__(self, path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_sqlite_engine(self.path)
        PreferencesBase.metadata.create_all(bind=self.engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.repo = PreferencesRepository()

    def get(self, key: str) -> Optional[str]:
        db = self.SessionLocal()
        try:
            return self.repo.get(db, key)
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        db = self.SessionLocal()
        try:
            self.repo.set(db, key, value)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _get_int(self, key: str) -> Optional[int]:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed value for '{key}': {raw!r}")
            return None

    def is_auto_backup_enabled(self) -> bool:
        return self.get(config.AUTO_BACKUP_ENABLED_KEY) == "true"

    def set_auto_backup_enabled(self, enabled: bool) -> None:
        self.set(config.AUTO_BACKUP_ENABLED_KEY, "true" if enabled else "false")

    def get_last_backup_millis(self) -> Optional[int]:
        return self._get_int(config.LAST_BACKUP_KEY)

    def set_last_backup_millis(self, millis: int) -> None:
        self.set(config.LAST_BACKUP_KEY, str(millis))

    def get_backup_count(self) -> int:
        count = self._get_int(config.BACKUP_COUNT_KEY)
        return count if count is not None and count > 0 else 0

    def set_backup_count(self, count: int) -> None:
        self.set(config.BACKUP_COUNT_KEY, str(max(count, 0)))

    def dispose(self) -> None:
        self.engine.dispose()
