"""Core services: play-count store, Spotify adapter, selector, vehicle playlist, reconcile loop."""
from trueshuffle.core.play_count_store import PlayCountStore
from trueshuffle.core.reconciler import Reconciler
from trueshuffle.core.shuffle_service import ShuffleService

__all__ = ["PlayCountStore", "Reconciler", "ShuffleService"]
