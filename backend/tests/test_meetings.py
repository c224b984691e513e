"""Zoom 미팅 요청 구성, 명시적 생성, AI Companion 설정 보정을 검증하는 자동화 테스트입니다."""

from datetime import date

import httpx
import pytest

from app.models.batch import Batch
from app.models.course import Course
from app.models.session import BatchSession
from app.services import meeting_service
from app.services.zoom_client import ZoomClient
from app.utils.errors import ProviderError
from tests.conftest import auth_headers


def _transient(start="10:00", end="12:30", title="Recursion", description=None):
    batch = Batch(batch_id="c" * 24, batch_name="Batch C")
    batch.course = Course(course_title="Data Structures")
    session = BatchSession(
        session_date=date(2025, 5, 2),
        start_time=start,
        end_time=end,
        title=title,
        description=description,
    )
    return batch, session


def test_build_meeting_request():
    batch, session = _transient(description="Stack frames")
    payload = meeting_service.build_meeting_request(batch, session)
    assert payload["topic"] == "Data Structures - Recursion"
    assert payload["type"] == 2
    assert payload["start_time"] == "2025-05-02T10:00:00"
    assert payload["duration"] == 150
    assert payload["timezone"] == "Asia/Kolkata"
    assert payload["agenda"] == "Stack frames"
    settings = payload["settings"]
    assert settings["join_before_host"] is True
    assert settings["auto_recording"] == "cloud"
    assert settings["ai_companion_auto_start"] is True
    assert settings["auto_start_meeting_summary"] is True
    assert settings["auto_start_ai_companion_questions"] is True


def test_build_meeting_request_minimum_duration():
    batch, session = _transient(start="10:00", end="10:10", title=None)
    payload = meeting_service.build_meeting_request(batch, session)
    assert payload["duration"] == 30
    assert payload["topic"] == "Data Structures - Live Session"
    assert "agenda" not in payload


def _session(db, batch, **fields):
    session = BatchSession(
        batch_id=batch.batch_id,
        session_date=date(2025, 5, 2),
        start_time="10:00",
        end_time="11:00",
        title="Graphs",
        **fields,
    )
    db.add(session)
    db.commit()
    return session


def test_explicit_meeting_creation_is_idempotent(client, db, seed_users, seed_batch, fake_zoom):
    session = _session(db, seed_batch)
    url = f"/api/batches/{seed_batch.batch_id}/sessions/{session.session_id}/meeting"
    headers = auth_headers(client, "inst001")

    first = client.post(url, headers=headers)
    assert first.status_code == 200, first.text
    second = client.post(url, headers=headers)
    assert second.status_code == 200

    assert len(fake_zoom.created) == 1
    assert first.json()["meeting"]["meeting_id"] == second.json()["meeting"]["meeting_id"] == "9001"


def test_explicit_meeting_failure_is_recorded_and_raised(client, db, seed_users, seed_batch, fake_zoom):
    session = _session(db, seed_batch)
    fake_zoom.fail_create = "User does not exist: me."
    resp = client.post(
        f"/api/batches/{seed_batch.batch_id}/sessions/{session.session_id}/meeting",
        headers=auth_headers(client, "admin001"),
    )
    assert resp.status_code == 502
    assert resp.json()["code"] == "provider_error"

    db.expire_all()
    stored = db.get(BatchSession, session.session_id)
    assert stored.meeting_id is None
    assert stored.last_sync_error == "User does not exist: me."


def test_enable_companion_patches_settings(client, db, seed_users, seed_batch, fake_zoom):
    session = _session(db, seed_batch, meeting_id="777", meeting_join_url="https://zoom.test/j/777")
    url = f"/api/batches/{seed_batch.batch_id}/sessions/{session.session_id}/meeting/companion"
    headers = auth_headers(client, "inst001")

    resp = client.post(url, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["meeting_id"] == "777"
    assert client.post(url, headers=headers).status_code == 200

    assert [meeting_id for meeting_id, _ in fake_zoom.updated] == ["777", "777"]
    patched = fake_zoom.updated[0][1]["settings"]
    assert patched["join_before_host"] is True
    assert patched["waiting_room"] is False
    assert patched["auto_start_meeting_summary"] is True
    assert patched["ai_companion_auto_start"] is True
    assert patched["auto_start_ai_companion_questions"] is True


def test_enable_companion_without_meeting_is_404(client, db, seed_users, seed_batch, fake_zoom):
    session = _session(db, seed_batch)
    resp = client.post(
        f"/api/batches/{seed_batch.batch_id}/sessions/{session.session_id}/meeting/companion",
        headers=auth_headers(client, "inst001"),
    )
    assert resp.status_code == 404
    assert fake_zoom.updated == []


class _Recorder:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        return self.responses.pop(0)


def _response(status_code, body, method="GET", url="https://api.zoom.test/v2/x"):
    return httpx.Response(status_code, json=body, request=httpx.Request(method, url))


def _client():
    return ZoomClient(
        account_id="acct",
        client_id="cid",
        client_secret="secret",
        api_base_url="https://api.zoom.test/v2",
        oauth_url="https://zoom.test/oauth/token",
    )


def test_zoom_client_caches_token(monkeypatch):
    token_post = _Recorder([_response(200, {"access_token": "tok", "expires_in": 3600}, "POST")])
    api = _Recorder([
        _response(200, {"id": 1, "join_url": "https://zoom.test/j/1"}, "POST"),
        _response(200, {"id": 1, "topic": "t"}),
    ])
    monkeypatch.setattr(httpx, "post", token_post)
    monkeypatch.setattr(httpx, "request", api)

    client = _client()
    client.create_meeting({"topic": "t"})
    client.get_meeting("1")

    assert len(token_post.calls) == 1
    assert token_post.calls[0][1]["params"] == {"grant_type": "account_credentials", "account_id": "acct"}
    assert api.calls[0][0] == ("POST", "https://api.zoom.test/v2/users/me/meetings")
    assert api.calls[1][1]["headers"]["Authorization"] == "Bearer tok"


def test_zoom_client_maps_http_errors(monkeypatch):
    monkeypatch.setattr(httpx, "post", _Recorder([_response(200, {"access_token": "tok", "expires_in": 3600}, "POST")]))
    monkeypatch.setattr(httpx, "request", _Recorder([_response(404, {"code": 3001, "message": "Meeting does not exist."})]))

    with pytest.raises(ProviderError) as exc_info:
        _client().get_meeting("404")
    assert "Meeting does not exist." in exc_info.value.message
    assert exc_info.value.context["provider_status"] == 404


def test_zoom_client_requires_credentials():
    with pytest.raises(ProviderError):
        ZoomClient(account_id="", client_id="", client_secret="").get_access_token()


def test_zoom_client_normalizes_recordings(monkeypatch):
    monkeypatch.setattr(httpx, "post", _Recorder([_response(200, {"access_token": "tok", "expires_in": 3600}, "POST")]))
    monkeypatch.setattr(httpx, "request", _Recorder([
        _response(200, {
            "recording_files": [
                {"id": "f1", "play_url": "https://zoom.test/rec/play/1", "file_type": "mp4",
                 "file_size": 3145728, "recording_start": "2025-05-02T04:30:00Z", "status": "completed"},
                {"id": "f2", "download_url": "https://zoom.test/rec/dl/2", "file_type": "M4A", "status": "processing"},
                {"id": "f3", "file_type": "CHAT"},
            ]
        })
    ]))

    artifacts = _client().get_meeting_recordings("123")
    assert artifacts == [
        {
            "id": "f1",
            "url": "https://zoom.test/rec/play/1",
            "file_type": "MP4",
            "size": 3145728,
            "recorded_at": "2025-05-02T04:30:00Z",
        }
    ]


def test_enable_companion_returns_session_meeting(db, seed_batch, fake_zoom):
    session = _session(db, seed_batch, meeting_id="888", meeting_join_url="https://zoom.test/j/888")
    info = meeting_service.enable_companion_without_host(fake_zoom, session)
    assert info.meeting_id == "888"
    assert info.join_url == "https://zoom.test/j/888"
    assert fake_zoom.updated[0][1]["settings"]["ai_companion_auto_start"] is True


def _text_response(status_code, text, method="GET", url="https://api.zoom.test/v2/x"):
    return httpx.Response(
        status_code, text=text, headers={"Content-Type": "text/html"}, request=httpx.Request(method, url)
    )


def test_zoom_client_rejects_html_reply(monkeypatch):
    monkeypatch.setattr(httpx, "post", _Recorder([_response(200, {"access_token": "tok", "expires_in": 3600}, "POST")]))
    monkeypatch.setattr(httpx, "request", _Recorder([_text_response(200, "<html>maintenance</html>", "POST")]))

    with pytest.raises(ProviderError) as exc_info:
        _client().create_meeting({"topic": "t"})
    assert exc_info.value.context["provider_status"] == 200


def test_zoom_client_rejects_non_object_reply(monkeypatch):
    monkeypatch.setattr(httpx, "post", _Recorder([_response(200, {"access_token": "tok", "expires_in": 3600}, "POST")]))
    monkeypatch.setattr(httpx, "request", _Recorder([_response(200, [{"id": "f1"}])]))

    with pytest.raises(ProviderError):
        _client().get_meeting_recordings("123")


def test_zoom_client_rejects_unreadable_token_reply(monkeypatch):
    monkeypatch.setattr(httpx, "post", _Recorder([_text_response(200, "<html>login</html>", "POST")]))

    with pytest.raises(ProviderError):
        _client().get_access_token()
