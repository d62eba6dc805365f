"""
HTTP tests for the form endpoints.

The app is built with create_app and its dependencies overridden with the
fake stores, so every request runs the real routes, assembler and
orchestrator without touching R2 or Snowflake.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeObjectStore, FakeRecordStore
from mediaform.api import dependencies
from mediaform.api.dependencies import (
    get_form_repository,
    get_record_store,
    get_storage_client,
    get_submission_assembler,
)
from mediaform.config.settings import Settings, get_settings
from mediaform.core.submissions.models import SubmissionRecord
from mediaform.infrastructure.snowflake.client import SnowflakeConnectionError
from mediaform.main import create_app


def make_client(
    store: FakeObjectStore,
    records: FakeRecordStore,
    settings: Settings | None = None,
    raise_server_exceptions: bool = True,
) -> TestClient:
    settings = settings or Settings(max_concurrent_uploads=0)
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_storage_client] = lambda: store
    app.dependency_overrides[get_form_repository] = lambda: records
    app.dependency_overrides[get_record_store] = lambda: records
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


def photo(name: str):
    return ("photo", (f"{name}.jpg", name.encode(), "image/jpeg"))


def video(name: str):
    return ("video", (f"{name}.mp4", name.encode(), "video/mp4"))


FORM = {"name": "Ada", "address": "1 Infinite Loop"}


# ---------------------------------------------------------------------------
# POST /submit-form
# ---------------------------------------------------------------------------

class TestSubmitForm:

    def test_successful_submission_returns_stored_record(self, object_store, record_store):
        client = make_client(object_store, record_store)

        response = client.post(
            "/submit-form",
            data=FORM,
            files=[photo("p1"), photo("p2"), video("v1")],
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Form submitted successfully!"
        form = body["form"]
        assert form["name"] == "Ada"
        assert form["address"] == "1 Infinite Loop"
        assert form["photoUrls"] == [
            "https://cdn.test/image/p1",
            "https://cdn.test/image/p2",
        ]
        assert form["videoUrls"] == ["https://cdn.test/video/v1"]
        assert "id" in form and "createdAt" in form

        assert len(record_store.saved) == 1
        assert str(record_store.saved[0].id) == form["id"]

    def test_upload_failure_returns_500_with_cause(self, record_store):
        store = FakeObjectStore(fail_on={b"p1"})
        client = make_client(store, record_store)

        response = client.post("/submit-form", data=FORM, files=[photo("p1")])

        assert response.status_code == 500
        assert response.json() == {
            "message": "Something went wrong",
            "error": "boom: p1",
        }
        assert record_store.saved == []

    def test_no_files_returns_400_without_uploading(self, object_store, record_store):
        client = make_client(object_store, record_store)

        response = client.post("/submit-form", data=FORM)

        assert response.status_code == 400
        assert response.json() == {"message": "At least one photo or video is required"}
        assert object_store.calls == []
        assert record_store.saved == []

    def test_persistence_failure_returns_500(self, object_store):
        client = make_client(object_store, FakeRecordStore(fail_save=True))

        response = client.post("/submit-form", data=FORM, files=[video("v1")])

        assert response.status_code == 500
        assert response.json() == {
            "message": "Something went wrong",
            "error": "record store unavailable",
        }

    def test_too_many_files_of_one_kind_is_rejected(self, object_store, record_store):
        client = make_client(object_store, record_store)

        response = client.post(
            "/submit-form",
            data=FORM,
            files=[photo(f"p{i}") for i in range(11)],
        )

        assert response.status_code == 400
        assert response.json() == {"message": "At most 10 photo files are allowed"}
        assert object_store.calls == []

    def test_oversized_submission_is_rejected(self, object_store, record_store):
        settings = Settings(max_upload_size_mb=1, max_concurrent_uploads=0)
        client = make_client(object_store, record_store, settings)
        big = ("video", ("big.mp4", b"x" * (1024 * 1024 + 1), "video/mp4"))

        response = client.post("/submit-form", data=FORM, files=[big])

        assert response.status_code == 413
        assert object_store.calls == []

    def test_metadata_is_optional(self, object_store, record_store):
        client = make_client(object_store, record_store)

        response = client.post("/submit-form", files=[photo("p1")])

        assert response.status_code == 200
        assert response.json()["form"]["name"] is None

    def test_unexpected_error_returns_generic_500(self, object_store, record_store):
        class BrokenAssembler:
            async def assemble(self, *args, **kwargs):
                raise KeyError("unexpected")

        client = make_client(object_store, record_store, raise_server_exceptions=False)
        client.app.dependency_overrides[get_submission_assembler] = lambda: BrokenAssembler()

        response = client.post("/submit-form", data=FORM, files=[photo("p1")])

        assert response.status_code == 500
        assert response.json() == {"message": "Something went wrong"}


class TestRecordStoreUnavailable:
    """Submissions only connect to Snowflake when there is a record to save."""

    @pytest.fixture
    def offline_client(self, object_store, monkeypatch):
        """Real record store wiring whose every connection attempt fails."""
        attempts = []

        def refuse(config=None, mock_mode=False):
            attempts.append(config)
            raise SnowflakeConnectionError("Database connection failed")

        monkeypatch.setattr(dependencies, "create_snowflake_connection", refuse)

        settings = Settings(max_concurrent_uploads=0)
        app = create_app(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_storage_client] = lambda: object_store
        return TestClient(app), attempts

    def test_no_files_is_still_a_400(self, offline_client, object_store):
        client, attempts = offline_client

        response = client.post("/submit-form", data=FORM)

        assert response.status_code == 400
        assert response.json() == {"message": "At least one photo or video is required"}
        assert attempts == []
        assert object_store.calls == []

    def test_connection_opens_after_uploads(self, offline_client, object_store):
        client, attempts = offline_client

        response = client.post("/submit-form", data=FORM, files=[photo("p1")])

        assert response.status_code == 500
        assert response.json() == {
            "message": "Something went wrong",
            "error": "Database connection failed",
        }
        assert object_store.completed == [b"p1"]
        assert len(attempts) == 1


# ---------------------------------------------------------------------------
# GET /forms
# ---------------------------------------------------------------------------

class TestListForms:

    def test_returns_every_stored_record(self, object_store, record_store):
        record_store.saved = [
            SubmissionRecord(name=f"user{i}", photo_urls=[f"https://cdn.test/image/p{i}"])
            for i in range(3)
        ]
        client = make_client(object_store, record_store)

        response = client.get("/forms")

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 3
        assert {item["id"] for item in body} == {str(r.id) for r in record_store.saved}
        assert set(body[0]) == {"id", "name", "address", "photoUrls", "videoUrls", "createdAt"}

    def test_store_failure_returns_500(self, object_store):
        client = make_client(object_store, FakeRecordStore(fail_find=True))

        response = client.get("/forms")

        assert response.status_code == 500
        assert response.json() == {"message": "Error fetching forms"}

    def test_connection_failure_returns_500(self, object_store, record_store):
        def unavailable():
            raise SnowflakeConnectionError("Database connection failed")

        client = make_client(object_store, record_store)
        client.app.dependency_overrides[get_form_repository] = unavailable

        response = client.get("/forms")

        assert response.status_code == 500
        assert response.json() == {"message": "Error fetching forms"}


# ---------------------------------------------------------------------------
# Mock modes end to end
# ---------------------------------------------------------------------------

class TestMockModes:
    """Real dependency wiring with in-memory R2 and Snowflake."""

    @pytest.fixture(autouse=True)
    def fresh_mocks(self, monkeypatch):
        monkeypatch.setattr(dependencies, "_mock_storage_client", None)
        monkeypatch.setattr(dependencies, "_mock_snowflake_connection", None)

    def test_submitted_form_is_listed(self):
        settings = Settings(r2_mock_mode=True, snowflake_mock_mode=True)
        app = create_app(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        client = TestClient(app)

        submitted = client.post("/submit-form", data=FORM, files=[photo("p1"), video("v1")])
        listed = client.get("/forms")

        assert submitted.status_code == 200
        form = submitted.json()["form"]
        assert form["photoUrls"][0].startswith("mock://storage/image/")
        assert form["videoUrls"][0].startswith("mock://storage/video/")
        assert listed.status_code == 200
        assert [item["id"] for item in listed.json()] == [form["id"]]

    def test_health_reports_mock_modes(self):
        settings = Settings(r2_mock_mode=True, snowflake_mock_mode=True)
        app = create_app(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        client = TestClient(app)

        health = client.get("/health")
        ready = client.get("/health/ready")

        assert health.status_code == 200
        assert health.json()["details"]["mock_mode"] == {"snowflake": True, "r2": True}
        assert ready.status_code == 200
        assert ready.json()["status"] == "ready"


# ---------------------------------------------------------------------------
# Form page
# ---------------------------------------------------------------------------

class TestFormPage:

    def test_page_is_served_from_any_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        client = TestClient(create_app(Settings()))

        response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "/submit-form" in client.get("/script.js").text

    def test_missing_directory_falls_back_to_json_index(self, tmp_path):
        client = TestClient(create_app(Settings(static_dir=str(tmp_path / "missing"))))

        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"
