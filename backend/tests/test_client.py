"""
End-to-end tests for CivicPulseClient against the real app (TestClient is an
httpx.Client, so the client talks to the API in-process).
"""

import base64

import pytest
from fastapi.testclient import TestClient

from backend.authentication.utils import SessionManager, get_session_manager
from backend.errors import InvalidCode, NotFound, ValidationFailed
from backend.main import app
from backend.offline.client import CivicPulseClient, decode_photo
from backend.offline.storage import PENDING_REPORTS_KEY, REPORTS_KEY, SESSION_KEY, LocalStorage
from backend.reports import utils
from backend.reports.store import ReportStore

JPEG = b"\xff\xd8\xff\xe0client-jpeg"
PHOTO_URI = "data:image/jpeg;base64," + base64.b64encode(JPEG).decode()


# ---------------------------------------------------------------------
# 🧩 FIXTURES
# ---------------------------------------------------------------------
@pytest.fixture
def store(tmp_path, monkeypatch):
    store = ReportStore()
    manager = SessionManager()
    app.dependency_overrides[utils.get_report_store] = lambda: store
    app.dependency_overrides[get_session_manager] = lambda: manager

    uploads = tmp_path / "uploads"
    real_save_photo = utils.save_photo
    monkeypatch.setattr(utils, "save_photo", lambda photo: real_save_photo(photo, str(uploads)))
    yield store
    app.dependency_overrides.clear()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "device" / "state.json"))


@pytest.fixture
def civic(store, storage):
    return CivicPulseClient(TestClient(app), storage)


def report_fields(description="Pothole on 5th street", **overrides):
    fields = dict(
        description=description,
        category="Roads",
        latitude=17.385,
        longitude=78.4867,
        photo=PHOTO_URI,
        address="5th street",
    )
    fields.update(overrides)
    return fields


# ---------------------------------------------------------------------
# 🔐 SESSION
# ---------------------------------------------------------------------
def test_login_persists_session(civic, storage):
    assert civic.send_otp("user@x.com") is True
    session = civic.login("user@x.com", "123456")
    assert storage.get(SESSION_KEY) == session
    assert session["user"]["identifier"] == "user@x.com"


def test_login_wrong_code(civic, storage):
    with pytest.raises(InvalidCode):
        civic.login("user@x.com", "000000")
    assert storage.get(SESSION_KEY) is None


def test_logout_clears_session(civic, storage):
    civic.login("user@x.com", "123456")
    civic.logout()
    assert storage.get(SESSION_KEY) is None
    assert civic.session is None


# ---------------------------------------------------------------------
# 📝 SUBMIT ONLINE / OFFLINE
# ---------------------------------------------------------------------
def test_submit_online_creates_report_and_caches_it(civic, store, storage):
    civic.login("user@x.com", "123456")
    report = civic.submit_report(civic.new_report(**report_fields()))

    assert report.ticket_code.startswith("CP")
    assert report.user_id == civic.session["user"]["id"]
    assert store.get(report.id) == report
    assert [r.id for r in civic.cached_reports()] == [report.id]


def test_submit_offline_queues_then_syncs_on_reconnect(store, storage):
    civic = CivicPulseClient(TestClient(app), storage, online=False)
    assert civic.submit_report(civic.new_report(**report_fields("first"))) is None
    assert civic.submit_report(civic.new_report(**report_fields("second"))) is None
    assert len(store) == 0
    assert len(storage.get(PENDING_REPORTS_KEY)) == 2

    assert civic.set_online(True) == 2
    assert [r.description for r in store.all()] == ["first", "second"]
    assert all(r.user_id == "anonymous" for r in store.all())
    assert storage.get(PENDING_REPORTS_KEY) is None
    assert len(storage.get(REPORTS_KEY)) == 2


@pytest.mark.parametrize(
    "overrides",
    [{"category": "   "}, {"description": ""}, {"latitude": 500}, {"longitude": -181}, {"photo": "/uploads/x.jpg"}],
)
def test_invalid_report_is_never_queued(store, storage, overrides):
    civic = CivicPulseClient(TestClient(app), storage, online=False)
    with pytest.raises(ValidationFailed):
        civic.submit_report(civic.new_report(**report_fields(**overrides)))
    assert len(civic.queue) == 0
    assert storage.get(PENDING_REPORTS_KEY) is None


def test_valid_report_after_rejected_one_still_syncs(store, storage):
    civic = CivicPulseClient(TestClient(app), storage, online=False)
    with pytest.raises(ValidationFailed):
        civic.submit_report(civic.new_report(**report_fields("bad", latitude=500)))
    civic.submit_report(civic.new_report(**report_fields("good")))

    assert civic.set_online(True) == 1
    assert [r.description for r in store.all()] == ["good"]
    assert len(civic.queue) == 0


def test_invalid_report_rejected_online_without_request(store, storage):
    civic = CivicPulseClient(TestClient(app), storage)
    with pytest.raises(ValidationFailed):
        civic.submit_report(civic.new_report(**report_fields(category="")))
    assert len(store) == 0


def test_queue_survives_client_restart(store, storage, tmp_path):
    offline = CivicPulseClient(TestClient(app), storage, online=False)
    offline.submit_report(offline.new_report(**report_fields()))

    restarted = CivicPulseClient(
        TestClient(app), LocalStorage(str(tmp_path / "device" / "state.json")), online=False
    )
    assert len(restarted.queue) == 1
    assert restarted.set_online(True) == 1
    assert len(store) == 1


# ---------------------------------------------------------------------
# 📋 LIST / STATUS
# ---------------------------------------------------------------------
def test_list_reports_filters(civic, storage):
    civic.login("user@x.com", "123456")
    mine = civic.submit_report(civic.new_report(**report_fields("mine")))
    civic.submit_report(civic.new_report(**report_fields("far away", latitude=18.5, longitude=79.5, user_id="x")))

    everything = civic.list_reports()
    assert [r.description for r in everything] == ["mine", "far away"]
    assert len(storage.get(REPORTS_KEY)) == 2

    assert [r.id for r in civic.list_reports(filter="my")] == [mine.id]
    nearby = civic.list_reports(filter="nearby", lat=17.385, lng=78.4867, radius=5)
    assert [r.id for r in nearby] == [mine.id]
    assert [r.description for r in civic.list_reports(q="FAR")] == ["far away"]


def test_list_reports_bad_filter_arguments(civic):
    with pytest.raises(ValidationFailed):
        civic.list_reports(filter="nearby")


def test_update_status_refreshes_cache(civic):
    report = civic.submit_report(civic.new_report(**report_fields()))
    updated = civic.update_status(report.id, "resolved")
    assert updated.status.value == "resolved"
    assert civic.cached_reports()[0].status.value == "resolved"

    with pytest.raises(NotFound):
        civic.update_status("missing", "resolved")


# ---------------------------------------------------------------------
# 🖼️ PHOTO DECODING
# ---------------------------------------------------------------------
def test_decode_photo():
    name, content, content_type = decode_photo(PHOTO_URI)
    assert content == JPEG
    assert content_type == "image/jpeg"
    assert name.startswith("photo.")


@pytest.mark.parametrize("bad", ["/uploads/photo.jpg", "data:image/png;base64,%%%notbase64"])
def test_decode_photo_rejects_bad_input(bad):
    with pytest.raises(ValidationFailed):
        decode_photo(bad)


# in backend: pytest -v tests/test_client.py
