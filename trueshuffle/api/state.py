"""Shared application state (injected into routes)."""
import random
from pathlib import Path
from typing import Optional

from trueshuffle.config import PLAY_COUNT_DB_PATH, ShuffleSettings
from trueshuffle.core.context_sync import ContextSynchronizer
from trueshuffle.core.play_count_store import PlayCountStore
from trueshuffle.core.reconciler import Reconciler
from trueshuffle.core.scheduler import ReconcileScheduler
from trueshuffle.core.selector import LeastPlayedSelector
from trueshuffle.core.shuffle_service import ShuffleService
from trueshuffle.core.spotify_client import SpotifyRemote
from trueshuffle.core.vehicle_playlist import VehiclePlaylistManager
from trueshuffle.models.session import ShuffleSession


class AppState:
    def __init__(
        self,
        settings: Optional[ShuffleSettings] = None,
        db_path: Path = PLAY_COUNT_DB_PATH,
        remote: Optional[SpotifyRemote] = None,
    ) -> None:
        self.settings = settings or ShuffleSettings()
        self.session = ShuffleSession()
        self.store = PlayCountStore(db_path)
        self.remote = remote or SpotifyRemote()
        self.selector = LeastPlayedSelector(self.store, random.Random(self.settings.random_seed))
        self.synchronizer = ContextSynchronizer(self.remote, self.store)
        self.vehicle = VehiclePlaylistManager(
            self.remote, self.settings.vehicle_prefix, self.settings.vehicle_description
        )
        self.reconciler = Reconciler(
            self.session, self.store, self.remote, self.selector, self.vehicle, self.settings
        )
        self.service = ShuffleService(
            self.session,
            self.store,
            self.remote,
            self.synchronizer,
            self.vehicle,
            self.reconciler,
            self.settings,
        )
        self.scheduler = ReconcileScheduler(self.reconciler.tick, self.settings.tick_interval_sec)


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState()
    return _state
