"""
Shared fixtures.
Environment overrides are applied before any crm_store module reads its configuration.
"""
import os
import tempfile

os.environ.setdefault("CRM_STORE_LOG_DIR", tempfile.mkdtemp(prefix="crm-store-logs-"))
os.environ.setdefault("CRM_STORE_DATA_DIR", tempfile.mkdtemp(prefix="crm-store-data-"))
os.environ.setdefault("CRM_STORE_API_KEY", "test-api-key")

import pytest
from fastapi.testclient import TestClient

from crm_store import config
from crm_store.context import BackupContext
from crm_store.database import Store
from crm_store.main import create_app
from crm_store.services.backup_service import BackupService
from crm_store.services.backup_store import BackupStore
from crm_store.services.preferences_service import PreferencesService
from crm_store.services.retention import RetentionPolicy
from crm_store.tests.helpers import CRM_TABLES, INTERVAL_MILLIS, FakeClock, FakePlatform, make_sqlite_file


@pytest.fixture
def live_db(tmp_path):
    """CRM database with the pre-migration schema and one client"""
    path = tmp_path / "data" / "crm.db"
    path.parent.mkdir(parents=True)
    return make_sqlite_file(path, CRM_TABLES + ["INSERT INTO clients (name) VALUES ('Alice')"])


@pytest.fixture
def store(live_db):
    store = Store(live_db)
    yield store
    store.dispose()


@pytest.fixture
def preferences(tmp_path):
    preferences = PreferencesService(tmp_path / "prefs" / "preferences.db")
    yield preferences
    preferences.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def backup_dir(tmp_path):
    return tmp_path / "backups"


@pytest.fixture
def backup_store(backup_dir):
    return BackupStore(backup_dir)


@pytest.fixture
def retention(preferences):
    return RetentionPolicy(preferences, max_backups=5)


@pytest.fixture
def backup_service(store, backup_store, retention, preferences, clock):
    return BackupService(store, backup_store, retention, preferences, clock)


@pytest.fixture
def context(store, preferences, backup_dir, platform, clock):
    return BackupContext(
        store=store,
        preferences=preferences,
        backup_dir=backup_dir,
        platform=platform,
        max_backups=5,
        interval_millis=INTERVAL_MILLIS,
        clock=clock,
    )


@pytest.fixture
def client(context):
    app = create_app(context)
    with TestClient(app) as client:
        client.headers.update({"X-API-Key": config.API_KEY})
        yield client
