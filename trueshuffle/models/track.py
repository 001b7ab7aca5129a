"""Track descriptors as returned by Spotify, reduced to what the selector needs."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Track:
    """Read-only track descriptor captured when a session starts."""
    id: str
    uri: str
    name: str
    artists: str  # joined display names
    duration_ms: int

    @classmethod
    def from_spotify(cls, item: dict) -> Optional["Track"]:
        """Build from a Spotify track object. Returns None for episodes and local files."""
        if not item or item.get("type", "track") != "track" or not item.get("id"):
            return None
        artists = item.get("artists") or []
        return cls(
            id=item["id"],
            uri=item.get("uri") or track_uri(item["id"]),
            name=item.get("name") or "",
            artists=", ".join(a.get("name", "") for a in artists),
            duration_ms=int(item.get("duration_ms") or 0),
        )


def track_uri(track_id: str) -> str:
    return f"spotify:track:{track_id}"

