"""Test configuration and fixtures"""

import random
from typing import Dict, List, Optional

import pytest

from trueshuffle.config import ShuffleSettings
from trueshuffle.core.context_sync import ContextSynchronizer
from trueshuffle.core.errors import RemoteTransient
from trueshuffle.core.play_count_store import PlayCountStore
from trueshuffle.core.reconciler import Reconciler
from trueshuffle.core.selector import LeastPlayedSelector
from trueshuffle.core.shuffle_service import ShuffleService
from trueshuffle.core.vehicle_playlist import VehiclePlaylistManager
from trueshuffle.models.session import ShuffleSession
from trueshuffle.models.track import Track

CONTEXT = "spotify:playlist:ctx1"
USER_ID = "user_1"


def make_track(track_id: str) -> Track:
    return Track(
        id=track_id,
        uri=f"spotify:track:{track_id}",
        name=f"Song {track_id}",
        artists="Test Artist",
        duration_ms=180000,
    )


class FakeRemote:
    """In-memory stand-in for SpotifyRemote.

    ``fail`` maps a method name to a list of outcomes consumed per call:
    an exception instance is raised, ``None`` lets the call succeed.
    """

    def __init__(self) -> None:
        self.authenticated = True
        self.playback: Optional[dict] = None
        self.queue_items: List[dict] = []
        self.playlists: Dict[str, List[Track]] = {}
        self.albums: Dict[str, List[Track]] = {}
        self.names: Dict[str, str] = {}
        self.user_playlist_list: List[dict] = []
        self.device_list: List[dict] = [{"id": "dev1", "name": "Laptop", "is_active": True}]
        self.fail: Dict[str, list] = {}
        self.calls: List[tuple] = []
        self._next_playlist = 0

    def _check(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        outcomes = self.fail.get(name)
        if outcomes:
            outcome = outcomes.pop(0)
            if outcome is not None:
                raise outcome

    def called(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def is_authenticated(self) -> bool:
        return self.authenticated

    async def current_playback(self):
        self._check("current_playback")
        return self.playback

    async def queue(self):
        self._check("queue")
        return {"currently_playing": (self.playback or {}).get("item"), "queue": list(self.queue_items)}

    async def devices(self):
        self._check("devices")
        return self.device_list

    async def start_playback(self, context_uri, offset_uri=None):
        self._check("start_playback", context_uri, offset_uri)
        if not self.device_list:
            raise RemoteTransient("No Spotify devices available.")
        self.playback = {
            "is_playing": True,
            "context": {"uri": context_uri},
            "item": {"uri": offset_uri, "id": offset_uri.split(":")[-1] if offset_uri else None},
        }
        return self.device_list[0]["id"]

    async def set_shuffle(self, state, device_id=None):
        self._check("set_shuffle", state, device_id)

    async def context_name(self, context_uri):
        self._check("context_name", context_uri)
        return self.names.get(context_uri)

    async def playlist_tracks(self, playlist_id):
        self._check("playlist_tracks", playlist_id)
        return list(self.playlists.get(playlist_id, []))

    async def album_tracks(self, album_id):
        self._check("album_tracks", album_id)
        return list(self.albums.get(album_id, []))

    async def current_user_id(self):
        return USER_ID

    async def user_playlists(self):
        self._check("user_playlists")
        return list(self.user_playlist_list)

    async def create_playlist(self, name, description):
        self._check("create_playlist", name)
        self._next_playlist += 1
        playlist_id = f"vehicle{self._next_playlist}"
        self.playlists[playlist_id] = []
        self.user_playlist_list.append({"id": playlist_id, "name": name, "owner": {"id": USER_ID}})
        return playlist_id

    async def unfollow_playlist(self, playlist_id):
        self._check("unfollow_playlist", playlist_id)
        self.user_playlist_list = [p for p in self.user_playlist_list if p["id"] != playlist_id]
        self.playlists.pop(playlist_id, None)

    async def playlist_add(self, playlist_id, uris):
        self._check("playlist_add", playlist_id, list(uris))
        self.playlists.setdefault(playlist_id, []).extend(make_track(u.split(":")[-1]) for u in uris)

    async def playlist_remove(self, playlist_id, uris):
        self._check("playlist_remove", playlist_id, list(uris))
        drop = set(uris)
        self.playlists[playlist_id] = [t for t in self.playlists.get(playlist_id, []) if t.uri not in drop]

    async def playlist_replace(self, playlist_id, uris):
        self._check("playlist_replace", playlist_id, list(uris))
        self.playlists[playlist_id] = [make_track(u.split(":")[-1]) for u in uris]


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def settings():
    return ShuffleSettings(
        target_depth=5,
        tick_interval_sec=15,
        add_delay_sec=0.25,
        recent_window=50,
        vehicle_prefix="[STSD]",
        vehicle_max_tracks=50,
        random_seed=1234,
    )


@pytest.fixture
async def store(tmp_path):
    s = PlayCountStore(tmp_path / "shuffle.db")
    await s.initialize()
    return s


@pytest.fixture
def remote():
    r = FakeRemote()
    r.playlists["ctx1"] = [make_track(f"t{i}") for i in range(1, 9)]
    r.names[CONTEXT] = "Road Trip"
    return r


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def session():
    return ShuffleSession()


@pytest.fixture
def components(settings, store, remote, sleeper, session):
    """Wired graph of the real core objects around the fake remote."""
    selector = LeastPlayedSelector(store, random.Random(settings.random_seed))
    vehicle = VehiclePlaylistManager(remote, settings.vehicle_prefix, settings.vehicle_description)
    synchronizer = ContextSynchronizer(remote, store)
    reconciler = Reconciler(session, store, remote, selector, vehicle, settings, sleep=sleeper)
    service = ShuffleService(session, store, remote, synchronizer, vehicle, reconciler, settings)
    return {
        "selector": selector,
        "vehicle": vehicle,
        "synchronizer": synchronizer,
        "reconciler": reconciler,
        "service": service,
    }
