"""
Tests for StatusReporter.
"""
import pytest

from crm_store.services.status_service import StatusReporter
from crm_store.tests.helpers import INTERVAL_MILLIS


@pytest.fixture
def reporter(backup_store, preferences):
    return StatusReporter(backup_store, preferences, INTERVAL_MILLIS)


class TestGetStatus:
    """Tests for StatusReporter.get_status"""

    def test_fresh_install(self, reporter):
        status = reporter.get_status()

        assert status.auto_backup_enabled is False
        assert status.last_backup_at_millis is None
        assert status.next_backup_at_millis is None
        assert status.backup_count == 0

    def test_next_backup_when_enabled(self, reporter, preferences):
        preferences.set_auto_backup_enabled(True)
        preferences.set_last_backup_millis(5_000)

        status = reporter.get_status()

        assert status.next_backup_at_millis == 5_000 + INTERVAL_MILLIS

    def test_no_next_backup_when_disabled(self, reporter, preferences):
        preferences.set_last_backup_millis(5_000)

        status = reporter.get_status()

        assert status.last_backup_at_millis == 5_000
        assert status.next_backup_at_millis is None

    def test_no_next_backup_before_first_backup(self, reporter, preferences):
        preferences.set_auto_backup_enabled(True)

        assert reporter.get_status().next_backup_at_millis is None

    def test_count_comes_from_disk(self, reporter, preferences, backup_service, clock):
        backup_service.create()
        clock.advance(1000)
        backup_service.create()
        preferences.set_backup_count(42)

        assert reporter.get_status().backup_count == 2
