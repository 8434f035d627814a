"""
Test doubles and builders shared by the test modules.
"""
from sqlalchemy import create_engine, text

from crm_store import config
from crm_store.exceptions import SchedulerUnavailableException

START_MILLIS = 1_700_000_000_000
INTERVAL_MILLIS = 2 * 60 * 60 * 1000

CRM_TABLES = [
    "CREATE TABLE clients (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)",
    "CREATE TABLE companies (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)",
    "CREATE TABLE projects (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)",
    "CREATE TABLE units_flats (id INTEGER PRIMARY KEY AUTOINCREMENT, unit_number TEXT NOT NULL)",
    "CREATE TABLE leads (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)",
    "CREATE TABLE unit_payment_requests (id INTEGER PRIMARY KEY AUTOINCREMENT, amount REAL)",
    "CREATE TABLE unit_payment_receipts (id INTEGER PRIMARY KEY AUTOINCREMENT, amount REAL)",
]


def make_sqlite_file(path, statements):
    """Create a SQLite file at path by running statements"""
    engine = create_engine(f"sqlite:///{path}")
    try:
        with engine.begin() as conn:
            for sql in statements:
                conn.execute(text(sql))
    finally:
        engine.dispose()
    return path


class FakeClock:
    """Manually advanced epoch-millis clock"""

    def __init__(self, now: int = START_MILLIS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> int:
        self.now += millis
        return self.now


class FakePlatform:
    """Records registrations instead of scheduling anything"""

    def __init__(self):
        self.jobs = {}
        self.unregistered = []
        self.fail = False
        self.shut_down = False

    def register(self, interval_seconds, handler):
        if self.fail:
            raise SchedulerUnavailableException("platform refused the job")
        self.jobs[config.BACKUP_TASK_NAME] = (interval_seconds, handler)
        return config.BACKUP_TASK_NAME

    def unregister(self, token):
        if self.fail:
            raise SchedulerUnavailableException("platform refused the change")
        self.jobs.pop(token, None)
        self.unregistered.append(token)

    def shutdown(self):
        self.shut_down = True
