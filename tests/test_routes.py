"""API route tests. The store and media signing are faked; no MongoDB needed."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from pymongo.errors import PyMongoError
from fastapi.testclient import TestClient

from app.core.aws import S3Service
from app.badges.service import BadgeRepository
from app.core import database as database_module
from app.core.config import get_settings
from app.core.database import Database
from app.core.dependencies import get_current_user
from app.core.exceptions import StoreUnavailableException
from app.main import app
from app.submissions.service import SubmissionService
from conftest import make_row

API = "/api/v1"


class FakeInsertResult:
    inserted_id = "665f1c0e8a1b2c3d4e5f6a7b"


class FakeCollection:
    def __init__(self):
        self.inserted = []

    async def insert_one(self, doc):
        self.inserted.append(doc)
        return FakeInsertResult()


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(S3Service, "signed_media_url", lambda self, path: None)
    app.dependency_overrides[get_current_user] = lambda: {"id": "user-1", "email": "obs@example.com"}
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client(monkeypatch):
    monkeypatch.setattr(S3Service, "signed_media_url", lambda self, path: None)
    return TestClient(app)


@pytest.fixture
def user_rows(monkeypatch):
    now = datetime.now(timezone.utc)
    rows = [make_row(now - timedelta(days=i), level=1 + i % 2, media_type="photo" if i % 3 else "video")
            for i in range(6)]

    async def fake_list_for_user(user_id):
        assert user_id == "user-1"
        return rows

    monkeypatch.setattr(SubmissionService, "list_for_user", fake_list_for_user)
    return rows


@pytest.fixture
def store_down(monkeypatch):
    async def fail(*args, **kwargs):
        raise StoreUnavailableException()

    monkeypatch.setattr(SubmissionService, "list_for_user", fail)
    monkeypatch.setattr(SubmissionService, "list_all", fail)


def test_root_health(anon_client):
    r = anon_client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_levels_are_public(anon_client):
    r = anon_client.get(f"{API}/levels")
    assert r.status_code == 200
    data = r.json()
    assert len(data) == 10
    assert data[1]["min_xp"] == 150


def test_badge_definitions_are_public(anon_client):
    r = anon_client.get(f"{API}/badges/definitions")
    assert r.status_code == 200
    data = r.json()
    assert data["total"] == len(data["badges"])
    assert data["badges"][0]["key"] == "first_wave"


def test_profile_requires_login(anon_client):
    r = anon_client.get(f"{API}/profile/badges")
    assert r.status_code in (401, 403)


def test_profile_badges(client, user_rows):
    r = client.get(f"{API}/profile/badges")
    assert r.status_code == 200
    data = r.json()
    badges = {b["key"]: b for b in data["badges"]}
    assert badges["first_wave"]["status"] == "earned"
    assert badges["active_observer"]["status"] == "earned"
    assert badges["dedicated_observer"]["status"] == "active"
    assert badges["dedicated_observer"]["progress"] == 6
    assert [g["category"] for g in data["groups"]] == [
        "submission_count", "geography", "streaks", "conditions",
    ]
    assert data["total_count"] == len(data["badges"])


def test_profile_stats(client, user_rows):
    r = client.get(f"{API}/profile/stats")
    assert r.status_code == 200
    data = r.json()
    assert data["total"] == 6
    assert data["photos"] + data["videos"] == 6
    assert data["videos"] == 2
    assert data["locations"] == 1
    assert data["streak"] == 6


def test_profile_xp(client, user_rows):
    r = client.get(f"{API}/profile/xp")
    assert r.status_code == 200
    data = r.json()
    assert data["submission_xp"] == 60
    assert data["total_xp"] == data["submission_xp"] + data["badge_xp"]
    assert data["current_level"]["level"] >= 1


def test_store_failure_is_not_reported_as_zero_progress(client, store_down):
    r = client.get(f"{API}/profile/badges")
    assert r.status_code == 503


def test_create_submission_rejects_bad_level(client):
    r = client.post(f"{API}/submissions", json={
        "level": 5, "lat": 60.0, "lng": 5.0, "media_type": "photo", "media_path_original": "a.jpg",
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid level"


def test_create_submission_rejects_missing_media_path(client):
    r = client.post(f"{API}/submissions", json={
        "level": 1, "lat": 60.0, "lng": 5.0, "media_type": "photo",
    })
    assert r.status_code == 400


def test_anonymous_submission_is_stored_private(anon_client, monkeypatch):
    collection = FakeCollection()
    monkeypatch.setattr(SubmissionService, "_get_collection", staticmethod(lambda: collection))

    r = anon_client.post(f"{API}/submissions", json={
        "level": 2, "lat": 60.123456, "lng": 5.654321, "media_type": "video",
        "media_path_original": "uploads/x.mp4", "wind_dir": "",
    })
    assert r.status_code == 200
    assert r.json()["id"] == FakeInsertResult.inserted_id

    doc = collection.inserted[0]
    assert doc["user_id"] is None
    assert doc["is_public"] is False
    assert doc["lat_public"] == 60.1235
    assert doc["lng_public"] == 5.6543
    assert doc["wind_dir"] is None
    assert doc["deleted_at"] is None


def test_map_points_omit_exact_coordinates_and_owner(anon_client, monkeypatch):
    row = make_row(datetime.now(timezone.utc), media_path_original="a.jpg", lat=61.0, lng=5.0)
    row["lat"] = 61.000123

    async def fake_list_public(since=None, limit=0):
        return [row]

    monkeypatch.setattr(SubmissionService, "list_public", fake_list_public)
    r = anon_client.get(f"{API}/map")
    assert r.status_code == 200
    point = r.json()["data"][0]
    assert "lat" not in point
    assert "user_id" not in point
    assert point["media_url"] is None


def test_admin_verify(anon_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "ADMIN_PASSWORD", "hemmelig")
    assert anon_client.post(f"{API}/admin/verify", json={"password": "feil"}).status_code == 401
    assert anon_client.post(f"{API}/admin/verify", json={"password": "hemmelig"}).json() == {"ok": True}


def test_admin_requires_credentials(anon_client):
    assert anon_client.get(f"{API}/admin/submissions").status_code == 401


def test_admin_export_csv(anon_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "ADMIN_API_KEY", "key-123")
    created = datetime(2024, 1, 3, 12, tzinfo=timezone.utc)
    rows = [make_row(created, media_path_original="a.jpg", comment='Stor "bølge"', is_public=True)]

    async def fake_list_all():
        return rows

    monkeypatch.setattr(SubmissionService, "list_all", fake_list_all)
    r = anon_client.get(f"{API}/admin/submissions/export.csv", headers={"X-ADMIN-API-KEY": "key-123"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    body = r.content.decode("utf-8")
    assert body.startswith("\ufeff\"id\",\"created_at\"")
    assert '"Stor ""bølge"""' in body
    assert '"true"' in body


def test_admin_delete_maps_missing_to_404(anon_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "ADMIN_API_KEY", "key-123")
    r = anon_client.delete(f"{API}/admin/submissions/not-an-id", headers={"X-ADMIN-API-KEY": "key-123"})
    assert r.status_code == 404


def test_upload_sign_without_bucket_is_bad_gateway(anon_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "AWS_S3_BUCKET", "")
    r = anon_client.post(f"{API}/uploads/sign", json={"path": "uploads/a.jpg", "contentType": "image/jpeg"})
    assert r.status_code == 502


def test_upload_sign_requires_path(anon_client):
    r = anon_client.post(f"{API}/uploads/sign", json={"path": "  ", "contentType": "image/jpeg"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Missing path"


def test_oversized_body_is_rejected(anon_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "MAX_REQUEST_BODY_BYTES", 64)
    r = anon_client.post(f"{API}/submissions", json={
        "level": 1, "lat": 60.0, "lng": 5.0, "media_type": "photo",
        "media_path_original": "x" * 200,
    })
    assert r.status_code == 413


def test_health_is_unavailable_without_store(anon_client, monkeypatch):
    monkeypatch.setattr(Database, "client", None)
    r = anon_client.get("/health")
    assert r.status_code == 503
    assert r.json()["database"] == "disconnected"


def test_health_when_store_answers(anon_client, monkeypatch):
    async def ping():
        return True

    monkeypatch.setattr(Database, "client", object())
    monkeypatch.setattr(SubmissionService, "ping", ping)
    r = anon_client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_mongo_client_reads_datetimes_as_utc(monkeypatch):
    created = {}

    class FakeClient:
        def __init__(self, uri, **kwargs):
            created.update(kwargs)

        def __getitem__(self, name):
            return None

    async def no_indexes():
        return None

    monkeypatch.setattr(database_module, "AsyncIOMotorClient", FakeClient)
    monkeypatch.setattr(Database, "_create_indexes", no_indexes)
    monkeypatch.setattr(Database, "client", None)
    monkeypatch.setattr(Database, "db", None)
    asyncio.run(Database.connect())

    assert created["tz_aware"] is True
    assert created["tzinfo"] == timezone.utc


def test_feed_timestamps_keep_utc_offset(anon_client, monkeypatch):
    # what a driver without tz_aware returns
    row = make_row(datetime(2024, 1, 3, 12), media_path_original="a.jpg", is_public=True)

    async def fake_list_public(since=None, limit=0):
        return [row]

    monkeypatch.setattr(SubmissionService, "list_public", fake_list_public)
    for path in ("/submissions/list", "/map"):
        created_at = anon_client.get(f"{API}{path}").json()["data"][0]["created_at"]
        assert created_at == "2024-01-03T12:00:00Z"


def test_profile_badges_unavailable_when_badge_store_fails(client, user_rows, monkeypatch):
    class BrokenCollection:
        def find(self, query):
            raise PyMongoError("connection refused")

    monkeypatch.setattr(get_settings(), "BADGE_PERSISTENCE_ENABLED", True)
    monkeypatch.setattr(BadgeRepository, "_get_collection", staticmethod(lambda: BrokenCollection()))
    r = client.get(f"{API}/profile/badges")
    assert r.status_code == 503


def test_admin_users_lists_submitters(anon_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "ADMIN_API_KEY", "key-123")
    last = datetime(2024, 1, 3, 12)

    class FakeAggregateCollection:
        def __init__(self):
            self.pipeline = None

        def aggregate(self, pipeline):
            self.pipeline = pipeline
            return FakeCursor([
                {"_id": "user-1", "display_name": "Kari", "submission_count": 4, "last_submission_at": last},
                {"_id": "user-2", "display_name": None, "submission_count": 1, "last_submission_at": last},
            ])

    class FakeCursor:
        def __init__(self, docs):
            self.docs = docs

        async def to_list(self, length=None):
            return self.docs

    collection = FakeAggregateCollection()
    monkeypatch.setattr(SubmissionService, "_get_collection", staticmethod(lambda: collection))
    r = anon_client.get(f"{API}/admin/users", headers={"X-ADMIN-API-KEY": "key-123"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert [u["user_id"] for u in data] == ["user-1", "user-2"]
    assert data[0]["submission_count"] == 4
    assert data[0]["last_submission_at"] == "2024-01-03T12:00:00Z"
    assert collection.pipeline[0]["$match"] == {"deleted_at": None, "user_id": {"$ne": None}}


def test_admin_users_requires_credentials(anon_client):
    assert anon_client.get(f"{API}/admin/users").status_code == 401
