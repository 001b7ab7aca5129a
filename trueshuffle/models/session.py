"""In-memory shuffle session (one per daemon process)."""
import enum
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from trueshuffle.models.track import Track


class SessionPhase(str, enum.Enum):
    IDLE = "idle"
    SEEDING = "seeding"  # vehicle created and playback requested, not yet observed
    STEADY = "steady"


@dataclass
class ShuffleSession:
    """Which context is managed, its tracks, and the vehicle playlist.

    Mutated only by the shuffle service (start/stop) and the reconciler's
    bookkeeping, all on the event loop.
    """
    active: bool = False
    phase: SessionPhase = SessionPhase.IDLE
    context_id: Optional[str] = None
    context_name: Optional[str] = None
    tracks: List[Track] = field(default_factory=list)
    shadow_playlist_id: Optional[str] = None
    initial_track: Optional[str] = None
    last_managed_track: Optional[str] = None
    last_check_time: Optional[float] = None

    def start(
        self,
        context_id: str,
        tracks: List[Track],
        shadow_playlist_id: str,
        *,
        context_name: Optional[str] = None,
        initial_track: Optional[str] = None,
    ) -> None:
        """Replace the whole session with a freshly seeded one."""
        self.active = True
        self.phase = SessionPhase.SEEDING
        self.context_id = context_id
        self.context_name = context_name
        self.tracks = list(tracks)
        self.shadow_playlist_id = shadow_playlist_id
        self.initial_track = initial_track
        self.last_managed_track = initial_track
        self.last_check_time = time.time()

    def stop(self) -> bool:
        """Deactivate. Returns whether a session was active."""
        was_active = self.active
        self.active = False
        self.phase = SessionPhase.IDLE
        return was_active

    def mark_steady(self) -> None:
        if self.active:
            self.phase = SessionPhase.STEADY

    def is_managing(self, context_id: Optional[str]) -> bool:
        return self.active and context_id is not None and self.context_id == context_id

    def set_last_managed_track(self, uri: str) -> None:
        self.last_managed_track = uri
        self.last_check_time = time.time()

    @property
    def vehicle_uri(self) -> Optional[str]:
        if not self.shadow_playlist_id:
            return None
        return f"spotify:playlist:{self.shadow_playlist_id}"

    def track_by_id(self, track_id: str) -> Optional[Track]:
        for t in self.tracks:
            if t.id == track_id:
                return t
        return None

    def snapshot(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "phase": self.phase.value,
            "context_id": self.context_id,
            "context_name": self.context_name,
            "track_count": len(self.tracks),
            "last_managed_track": self.last_managed_track,
            "vehicle_playlist_id": self.shadow_playlist_id,
            "last_check_time": self.last_check_time,
        }
