"""
Background scheduler for automatic database backups.
Handles:
- Registering / unregistering the periodic backup trigger
- Deciding on each trigger whether the backup interval has elapsed
"""
import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from crm_store import config
from crm_store.exceptions import SchedulerUnavailableException
from crm_store.services.backup_service import BackupService
from crm_store.services.backup_store import now_millis
from crm_store.services.preferences_service import PreferencesService

logger = logging.getLogger("crm_store.scheduler")


class TriggerResult(str, Enum):
    NO_DATA = "no_data"
    NEW_DATA = "new_data"
    FAILED = "failed"


class TriggerPlatform(Protocol):
    """Something that can call a handler roughly every interval"""

    def register(self, interval_seconds: float, handler: Callable[[], TriggerResult]) -> str:
        ...

    def unregister(self, token: str) -> None:
        ...

    def shutdown(self) -> None:
        ...


class ApschedulerPlatform:
    """TriggerPlatform backed by an APScheduler BackgroundScheduler"""

    def __init__(self, scheduler: Optional[BackgroundScheduler] = None,
                 job_id: str = config.BACKUP_TASK_NAME):
        self.scheduler = scheduler or BackgroundScheduler()
        self.job_id = job_id

    def register(self, interval_seconds: float, handler: Callable[[], TriggerResult]) -> str:
        try:
            if not self.scheduler.running:
                self.scheduler.start()
            job = self.scheduler.add_job(
                handler,
                IntervalTrigger(seconds=interval_seconds),
                id=self.job_id,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        except Exception as e:
            logger.error(f"✗ Could not register backup job: {e}")
            raise SchedulerUnavailableException(str(e)) from e
        logger.info(f"Scheduled jobs: {[j.id for j in self.scheduler.get_jobs()]}")
        return job.id

    def unregister(self, token: str) -> None:
        try:
            self.scheduler.remove_job(token)
        except JobLookupError:
            logger.info(f"Backup job '{token}' was not registered")
        except Exception as e:
            logger.error(f"✗ Could not unregister backup job: {e}")
            raise SchedulerUnavailableException(str(e)) from e

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("APScheduler stopped")


class AutoBackupScheduler:
    """Periodic backup trigger with elapsed-time throttling"""

    def __init__(
        self,
        backup_service: BackupService,
        preferences: PreferencesService,
        platform: TriggerPlatform,
        interval_millis: int = config.BACKUP_INTERVAL_MILLIS,
        clock: Callable[[], int] = now_millis,
    ):
        self.backup_service = backup_service
        self.preferences = preferences
        self.platform = platform
        self.interval_millis = interval_millis
        self.clock = clock
        self.token: Optional[str] = None

    @property
    def registered(self) -> bool:
        return self.token is not None

    def register(self) -> None:
        """Install the periodic trigger (idempotent)"""
        self.token = self.platform.register(self.interval_millis / 1000, self.on_trigger)
        logger.info(f"Auto backup started (every {self.interval_millis // 1000}s)")

    def unregister(self) -> None:
        if self.token is None:
            return
        self.platform.unregister(self.token)
        self.token = None
        logger.info("Auto backup stopped")

    def set_enabled(self, enabled: bool) -> None:
        """
        Persist the auto-backup flag, then (un)register the trigger.

        The flag records user intent and is kept even when registration fails;
        startup retries registration for an enabled flag.

        Raises:
            SchedulerUnavailableException: the platform refused the change
        """
        with self.backup_service.lock:
            self.preferences.set_auto_backup_enabled(enabled)
        if enabled:
            self.register()
        else:
            self.unregister()

    def on_trigger(self) -> TriggerResult:
        """Run a backup if auto-backup is on and the interval has elapsed"""
        try:
            if not self.preferences.is_auto_backup_enabled():
                logger.info("[AUTO_BACKUP] Disabled, skipping")
                return TriggerResult.NO_DATA

            with self.backup_service.lock:
                now = self.clock()
                last = self.preferences.get_last_backup_millis()
                if last is not None and now - last < self.interval_millis:
                    logger.info(f"[AUTO_BACKUP] Not time yet (last backup {now - last}ms ago)")
                    return TriggerResult.NO_DATA

                backup = self.backup_service.create()

            logger.info(f"Auto-backup successful: {backup.filename}")
            return TriggerResult.NEW_DATA

        except Exception as e:
            logger.error(f"Scheduler Error (Backup): {e}")
            return TriggerResult.FAILED
