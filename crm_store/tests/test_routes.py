"""
Tests for the backup HTTP API.
"""
import os

from fastapi.testclient import TestClient

from crm_store.main import create_app
from crm_store.tests.helpers import CRM_TABLES, INTERVAL_MILLIS, make_sqlite_file


class TestAuth:
    """Tests for API key protection"""

    def test_health_check_is_public(self, client):
        response = client.get("/", headers={"X-API-Key": ""})

        assert response.status_code == 200
        assert response.json()["status"] == "active"

    def test_missing_key_rejected(self, client):
        response = client.get("/api/backups", headers={"X-API-Key": ""})

        assert response.status_code == 401

    def test_wrong_key_rejected(self, client):
        response = client.get("/api/backups", headers={"X-API-Key": "wrong"})

        assert response.status_code == 401


class TestBackupEndpoints:
    """Tests for create / list / latest / delete / download"""

    def test_create_and_list(self, client):
        created = client.post("/api/backups/create")

        assert created.status_code == 200
        body = created.json()
        assert body["filename"].startswith("crm_backup_")
        assert body["formatted_size"].endswith(("Bytes", "KB", "MB"))

        listed = client.get("/api/backups").json()
        assert [b["filename"] for b in listed] == [body["filename"]]

    def test_latest(self, client, clock):
        assert client.get("/api/backups/latest").status_code == 404

        client.post("/api/backups/create")
        clock.advance(1000)
        newest = client.post("/api/backups/create").json()

        assert client.get("/api/backups/latest").json()["filename"] == newest["filename"]

    def test_create_without_database(self, client, store):
        store.dispose()
        store.database_path.unlink()

        response = client.post("/api/backups/create")

        assert response.status_code == 500

    def test_delete(self, client):
        filename = client.post("/api/backups/create").json()["filename"]

        assert client.delete(f"/api/backups/{filename}").status_code == 204
        assert client.get("/api/backups").json() == []
        assert client.delete(f"/api/backups/{filename}").status_code == 204

    def test_list_survives_stray_filename(self, client, context):
        created = client.post("/api/backups/create").json()["filename"]
        stray = context.backup_path("crm_backup_99999999999999999999_x.db")
        stray.write_bytes(b"leftover")
        os.utime(stray, (1_600_000_000, 1_600_000_000))

        response = client.get("/api/backups")

        assert response.status_code == 200
        assert [b["filename"] for b in response.json()] == [created, stray.name]
        assert client.get("/api/backups/latest").json()["filename"] == created

    def test_download(self, client, context):
        filename = client.post("/api/backups/create").json()["filename"]

        response = client.get(f"/api/backups/{filename}/download")

        assert response.status_code == 200
        assert response.content == context.backup_path(filename).read_bytes()

    def test_download_missing(self, client):
        response = client.get("/api/backups/crm_backup_nope.db/download")

        assert response.status_code == 404

    def test_validate(self, client):
        filename = client.post("/api/backups/create").json()["filename"]

        body = client.get(f"/api/backups/{filename}/validate").json()

        assert body["is_valid"] is True
        assert "clients" in body["tables"]

    def test_locations(self, client, context):
        body = client.get("/api/backups/locations").json()

        assert body["database_location"] == str(context.store.database_path)
        assert body["backup_location"] == str(context.backup_store.backup_dir)


class TestStatusEndpoints:
    """Tests for status and the auto-backup switch"""

    def test_status(self, client):
        client.post("/api/backups/create")

        body = client.get("/api/backups/status").json()

        assert body["backup_count"] == 1
        assert body["auto_backup_enabled"] is False
        assert body["next_backup_at_millis"] is None

    def test_enable_auto_backup(self, client, platform, clock):
        client.post("/api/backups/create")

        body = client.put("/api/backups/auto", json={"enabled": True}).json()

        assert body["auto_backup_enabled"] is True
        assert body["next_backup_at_millis"] == clock.now + INTERVAL_MILLIS
        assert platform.jobs

    def test_scheduler_unavailable(self, client, platform, preferences):
        platform.fail = True

        response = client.put("/api/backups/auto", json={"enabled": True})

        assert response.status_code == 503
        assert preferences.is_auto_backup_enabled()


class TestRestoreEndpoint:
    """Tests for POST /api/backups/restore"""

    def test_restore(self, client, clock, store):
        filename = client.post("/api/backups/create").json()["filename"]
        clock.advance(1000)
        store.execute("INSERT INTO clients (name) VALUES ('Bob')")

        response = client.post("/api/backups/restore", json={"filename": filename})

        assert response.status_code == 200
        body = response.json()
        assert body["restored_from"] == filename
        assert body["safety_backup"]["created_at_millis"] == clock.now
        assert store.query_one("SELECT COUNT(*) AS n FROM clients") == {"n": 1}

    def test_unknown_backup(self, client):
        response = client.post("/api/backups/restore", json={"filename": "crm_backup_nope.db"})

        assert response.status_code == 404

    def test_invalid_backup(self, client, context):
        context.backup_store.ensure_directory()
        context.backup_path("crm_backup_junk.db").write_bytes(b"not a database at all")

        response = client.post("/api/backups/restore", json={"filename": "crm_backup_junk.db"})

        assert response.status_code == 422

    def test_import_uploaded_file(self, client, clock, store, tmp_path):
        exported = make_sqlite_file(tmp_path / "from_phone.db", CRM_TABLES + [
            "INSERT INTO clients (name) VALUES ('Carol')",
            "INSERT INTO clients (name) VALUES ('Dave')",
        ])

        response = client.post(
            "/api/backups/import",
            files={"file": ("from_phone.db", exported.read_bytes(), "application/octet-stream")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["restored_from"] == "from_phone.db"
        assert body["safety_backup"]["created_at_millis"] == clock.now
        assert store.query_one("SELECT COUNT(*) AS n FROM clients") == {"n": 2}
        assert len(client.get("/api/backups").json()) == 1

    def test_import_rejects_non_database(self, client, store):
        before = store.database_path.read_bytes()

        response = client.post(
            "/api/backups/import",
            files={"file": ("notes.db", b"just some text", "application/octet-stream")},
        )

        assert response.status_code == 422
        assert store.database_path.read_bytes() == before
        assert client.get("/api/backups").json() == []

    def test_import_requires_db_extension(self, client):
        response = client.post(
            "/api/backups/import",
            files={"file": ("backup.zip", b"PK", "application/zip")},
        )

        assert response.status_code == 422

    def test_path_outside_backup_directory(self, client):
        response = client.post("/api/backups/restore", json={"filename": "../crm.db"})

        assert response.status_code == 400


class TestLifespan:
    """Startup and shutdown through the app lifespan"""

    def test_startup_migrates_and_shutdown_releases(self, context, platform, store):
        with TestClient(create_app(context)):
            assert "gst_amount" in store.get_table_columns("units_flats")

        assert platform.shut_down

    def test_startup_restores_enabled_trigger(self, context, platform, preferences):
        preferences.set_auto_backup_enabled(True)

        with TestClient(create_app(context)):
            assert context.scheduler.registered
