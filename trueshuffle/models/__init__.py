"""Data models for tracks, play counts and the shuffle session."""
from trueshuffle.models.play_count import ContextStats, PlayCountRecord
from trueshuffle.models.session import SessionPhase, ShuffleSession
from trueshuffle.models.track import Track

__all__ = [
    "ContextStats",
    "PlayCountRecord",
    "SessionPhase",
    "ShuffleSession",
    "Track",
]
