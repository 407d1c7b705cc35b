"""
Tests for the HTTP and WebSocket surface.
"""

from urllib.parse import unquote_plus

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from conftest import COOKIE_NAME, StaticConfigProvider, cookie_value
from sessiongate.main import create_app
from sessiongate.modules.lock import FALLBACK_SESSION_ID, JsonFileLockRecordStore, MemoryLockRecordStore
from sessiongate.modules.session import UnknownProviderError


@pytest.fixture
def records():
    return MemoryLockRecordStore()


@pytest.fixture
def app(tmp_path, records):
    return create_app(
        config_provider=StaticConfigProvider(session_dir=str(tmp_path / "sessions")),
        records=records,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def test_check_lock_issues_cookie(client):
    response = client.get("/api/session/lock")

    assert response.status_code == 200
    body = response.json()
    assert body["proceed"] is True
    set_cookie = response.headers["set-cookie"]
    assert body["session_id"] == unquote_plus(cookie_value(set_cookie))
    assert set_cookie.startswith(f"{COOKIE_NAME}=")
    assert "HttpOnly" in set_cookie
    assert "Max-Age=3600" in set_cookie


def test_lock_unlock_flow(client, records):
    client.get("/api/session/lock")

    response = client.post("/api/session/lock")
    assert response.status_code == 200
    assert response.json() == {"status": "locked"}
    assert client.get("/api/session/lock").json()["proceed"] is True

    response = client.post("/api/session/unlock")
    assert response.json() == {"status": "unlocked"}
    assert client.get("/api/session/lock").json()["proceed"] is False

    assert len(records) == 1
    assert records.save_count == 1
    assert next(iter(records.values())).lock == "false"


def test_cookie_reused_across_requests(client, app):
    first = client.get("/api/session/lock")
    response = client.get("/api/session/lock")

    # The second request presents the cookie, so no new one is issued
    assert "set-cookie" not in response.headers
    assert len(app.state.manager.provider) == 1
    assert response.json()["session_id"] == first.json()["session_id"]


def test_end_session_expires_cookie(client, app):
    client.get("/api/session/lock")

    response = client.delete("/api/session")

    assert response.status_code == 204
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f'{COOKIE_NAME}=""')
    assert "Max-Age=-1" in set_cookie
    assert len(app.state.manager.provider) == 0


def test_end_session_without_cookie(client):
    response = client.delete("/api/session")

    assert response.status_code == 204
    assert "set-cookie" not in response.headers


def test_websocket_unlock_fallback(client, records):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("unlock")
        assert websocket.receive_json() == {"unlocked": True, "error": None}

        websocket.send_text("reboot")
        reply = websocket.receive_json()
        assert reply["unlocked"] is False
        assert "unknown command" in reply["error"]

    assert FALLBACK_SESSION_ID in records
    assert records.save_count == 1


def test_websocket_unlock_with_cookie(app, records):
    with TestClient(app) as client:
        with client.websocket_connect("/ws", headers={"cookie": f"{COOKIE_NAME}=known-id"}) as websocket:
            websocket.send_text("unlock")
            assert websocket.receive_json()["unlocked"] is True

    assert "known-id" in records
    assert FALLBACK_SESSION_ID not in records


def test_health(client):
    assert client.get("/healthz").json() == {"status": "ok"}

    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["provider"] == "memory"
    assert body["gc_running"] is True
    assert body["backend_errors"] == 0


def test_health_before_startup(app):
    client = TestClient(app)

    assert client.get("/health").status_code == 503
    assert client.get("/api/session/lock").status_code == 503


def test_file_provider_and_json_records(tmp_path):
    lock_path = tmp_path / "locks.json"
    config = StaticConfigProvider(
        session_dir=str(tmp_path / "sessions"),
        provider="file",
        lock_store_path=str(lock_path),
    )

    with TestClient(create_app(config_provider=config)) as client:
        client.post("/api/session/unlock")
        assert client.get("/api/session/lock").json()["proceed"] is False

    assert len(JsonFileLockRecordStore(str(lock_path))) == 1
    assert len(list((tmp_path / "sessions").glob("*.json"))) == 1

    # A restarted app restores the flag from the durable records
    with TestClient(create_app(config_provider=config)) as client:
        assert client.get("/health").json()["lock_records"] == 1


def test_unknown_provider_aborts_startup(tmp_path):
    config = StaticConfigProvider(session_dir=str(tmp_path), provider="redis")

    with pytest.raises(UnknownProviderError):
        with TestClient(create_app(config_provider=config)):
            pass


def test_failed_startup_closes_redis_connection(tmp_path):
    config = StaticConfigProvider(
        session_dir=str(tmp_path),
        provider="missing",
        redis_url="redis://localhost:6379/0",
    )
    storage = MagicMock()
    storage.connect = AsyncMock(return_value=AsyncMock())
    storage.disconnect = AsyncMock()

    with patch("sessiongate.main.StorageModule", return_value=storage):
        with pytest.raises(UnknownProviderError):
            with TestClient(create_app(config_provider=config)):
                pass

    storage.connect.assert_awaited_once()
    storage.disconnect.assert_awaited_once()
