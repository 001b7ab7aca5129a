"""Test the HTTP control surface"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import CONTEXT, FakeRemote, make_track
from trueshuffle.api.app import app
from trueshuffle.api.state import AppState, get_state
from trueshuffle.core.errors import RemoteError, StoreFault


@pytest.fixture
def api_state(tmp_path, settings):
    remote = FakeRemote()
    remote.playlists["ctx1"] = [make_track(f"t{i}") for i in range(1, 6)]
    state = AppState(settings=settings, db_path=tmp_path / "api.db", remote=remote)
    state.reconciler._sleep = _no_sleep
    return state


async def _no_sleep(seconds):
    return None


@pytest.fixture
def client(api_state):
    asyncio.run(api_state.store.initialize())
    app.dependency_overrides[get_state] = lambda: api_state
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestServiceEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_service_status(self, client):
        body = client.get("/api/status").json()

        assert "running" in body["message"]
        assert body["version"]


class TestShuffleEndpoints:
    """start/stop/status/reset over HTTP"""

    def test_start_then_already_active(self, client, api_state):
        first = client.post("/api/shuffle/start", json={"context_uri": CONTEXT})
        second = client.post("/api/shuffle/start", json={"context_uri": CONTEXT})

        assert first.status_code == 200
        assert first.json()["already_active"] is False
        assert first.json()["track_count"] == 5
        assert second.status_code == 200
        assert second.json()["already_active"] is True
        assert second.json()["vehicle_playlist_id"] == first.json()["vehicle_playlist_id"]

    def test_start_not_authenticated(self, client, api_state):
        api_state.remote.authenticated = False

        response = client.post("/api/shuffle/start", json={"context_uri": CONTEXT})

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "not_authenticated"

    def test_start_restricted_context(self, client, api_state):
        api_state.remote.fail["playlist_tracks"] = [RemoteError("HTTP 404", http_status=404)]

        response = client.post("/api/shuffle/start", json={"context_uri": "spotify:playlist:37i9dQZF1"})

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "context_unavailable"
        assert detail["restricted"] is True

    def test_start_without_body_and_nothing_playing(self, client):
        response = client.post("/api/shuffle/start")

        assert response.status_code == 422
        assert response.json()["detail"]["restricted"] is False

    def test_start_transient_failure(self, client, api_state):
        api_state.remote.device_list = []

        response = client.post("/api/shuffle/start", json={"context_uri": CONTEXT})

        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "remote_transient"
        assert client.get("/api/shuffle/status").json()["active"] is True

    def test_status_stop_and_reset(self, client):
        client.post("/api/shuffle/start", json={"context_uri": CONTEXT})

        status = client.get("/api/shuffle/status").json()
        assert status["active"] is True
        assert status["authenticated"] is True
        assert status["context_id"] == CONTEXT
        assert status["stats"]["total_tracks"] == 5

        stop = client.post("/api/shuffle/stop").json()
        assert stop == {"ok": True, "was_active": True}
        assert client.get("/api/shuffle/status").json()["active"] is False

        reset = client.post("/api/shuffle/reset").json()
        assert reset == {"ok": True, "reset": 5}

    def test_reset_store_fault(self, client, api_state, monkeypatch):
        async def broken():
            raise StoreFault("database is locked")

        monkeypatch.setattr(api_state.store, "reset_all", broken)

        response = client.post("/api/shuffle/reset")

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "store_fault"
