"""Test the Spotipy adapter: error translation, pagination, device choice"""

from unittest.mock import MagicMock

import pytest
import requests
from spotipy.exceptions import SpotifyException

from trueshuffle.config import ShuffleSettings
from trueshuffle.core.errors import AuthRequired, RemoteError, RemoteTransient
from trueshuffle.core.spotify_client import SpotifyRemote, parse_context_uri
from trueshuffle.models.track import Track


def track_item(track_id, type_="track"):
    return {
        "id": track_id,
        "uri": f"spotify:{type_}:{track_id}" if track_id else "spotify:local:x",
        "type": type_,
        "name": f"Song {track_id}",
        "artists": [{"name": "A"}, {"name": "B"}],
        "duration_ms": 1000,
    }


@pytest.fixture
def sp():
    return MagicMock()


@pytest.fixture
def remote(sp):
    return SpotifyRemote(client_factory=lambda: sp)


class TestErrorTranslation:
    """Spotipy failures become the daemon's typed errors"""

    async def test_not_logged_in(self):
        remote = SpotifyRemote(client_factory=lambda: None)

        assert await remote.is_authenticated() is False
        with pytest.raises(AuthRequired):
            await remote.current_playback()

    async def test_401_is_auth_required(self, remote, sp):
        sp.current_playback.side_effect = SpotifyException(401, -1, "The access token expired")

        with pytest.raises(AuthRequired):
            await remote.current_playback()

    @pytest.mark.parametrize("status", [429, 500, 503])
    async def test_rate_limit_and_server_errors_are_transient(self, remote, sp, status):
        sp.queue.side_effect = SpotifyException(status, -1, "nope")

        with pytest.raises(RemoteTransient) as excinfo:
            await remote.queue()
        assert excinfo.value.http_status == status

    async def test_not_found_is_plain_remote_error(self, remote, sp):
        sp.playlist_items.side_effect = SpotifyException(404, -1, "Resource not found")

        with pytest.raises(RemoteError) as excinfo:
            await remote.playlist_tracks("37i9dQZF1DX0XUsuxWHRQd")
        assert not isinstance(excinfo.value, RemoteTransient)
        assert excinfo.value.http_status == 404

    async def test_connection_error_is_transient(self, remote, sp):
        sp.playlist_add_items.side_effect = requests.ConnectionError("reset by peer")

        with pytest.raises(RemoteTransient):
            await remote.playlist_add("pid", ["spotify:track:a"])


class TestEnumeration:
    """Paginated track listing"""

    async def test_playlist_pages_and_filters(self, remote, sp):
        first = {
            "items": [{"track": track_item("a")}, {"track": track_item("ep", "episode")}, {"track": None}],
            "next": "page2",
        }
        second = {"items": [{"track": track_item(None)}, {"track": track_item("b")}], "next": None}
        sp.playlist_items.return_value = first
        sp.next.return_value = second

        tracks = await remote.playlist_tracks("pid")

        assert [t.id for t in tracks] == ["a", "b"]
        assert tracks[0].artists == "A, B"
        sp.next.assert_called_once_with(first)

    async def test_album_tracks(self, remote, sp):
        sp.album_tracks.return_value = {"items": [track_item("x"), track_item("y")], "next": None}

        tracks = await remote.album_tracks("alb")

        assert [t.uri for t in tracks] == ["spotify:track:x", "spotify:track:y"]

    async def test_context_name(self, remote, sp):
        sp.playlist.return_value = {"name": "Road Trip"}

        assert await remote.context_name("spotify:playlist:pid") == "Road Trip"
        assert await remote.context_name("spotify:artist:zzz") is None


class TestPlayback:
    async def test_start_playback_prefers_active_device(self, remote, sp):
        sp.devices.return_value = {
            "devices": [{"id": "idle", "is_active": False}, {"id": "phone", "is_active": True, "name": "Phone"}]
        }

        device_id = await remote.start_playback("spotify:playlist:v", offset_uri="spotify:track:a")

        assert device_id == "phone"
        sp.start_playback.assert_called_once_with(
            device_id="phone", context_uri="spotify:playlist:v", offset={"uri": "spotify:track:a"}
        )

    async def test_start_playback_falls_back_to_first_device(self, remote, sp):
        sp.devices.return_value = {"devices": [{"id": "first", "is_active": False}]}

        assert await remote.start_playback("spotify:playlist:v") == "first"

    async def test_no_devices_is_transient(self, remote, sp):
        sp.devices.return_value = {"devices": []}

        with pytest.raises(RemoteTransient):
            await remote.start_playback("spotify:playlist:v")

    async def test_playlist_add_is_chunked(self, remote, sp):
        uris = [f"spotify:track:{i}" for i in range(150)]

        await remote.playlist_add("pid", uris)

        assert sp.playlist_add_items.call_count == 2

    async def test_create_playlist_is_private(self, remote, sp):
        sp.current_user.return_value = {"id": "me"}
        sp.user_playlist_create.return_value = {"id": "new"}

        assert await remote.create_playlist("[STSD] Mix", "desc") == "new"
        sp.user_playlist_create.assert_called_once_with("me", "[STSD] Mix", public=False, description="desc")


class TestHelpers:
    def test_parse_context_uri(self):
        assert parse_context_uri("spotify:playlist:abc") == ("playlist", "abc")
        assert parse_context_uri("spotify:Album:abc") == ("album", "abc")
        assert parse_context_uri("https://open.spotify.com/playlist/abc") is None
        assert parse_context_uri("spotify:playlist:") is None
        assert parse_context_uri(None) is None

    def test_track_from_spotify_skips_episodes_and_local(self):
        assert Track.from_spotify(track_item("ep", "episode")) is None
        assert Track.from_spotify(track_item(None)) is None
        assert Track.from_spotify({}) is None


class TestSettings:
    @pytest.mark.parametrize(
        "kwargs",
        [{"target_depth": 0}, {"tick_interval_sec": 0}, {"add_delay_sec": -1}, {"recent_window": 0}, {"vehicle_prefix": " "}],
    )
    def test_invalid_settings_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ShuffleSettings(**kwargs)
