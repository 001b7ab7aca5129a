"""Play-count rows persisted per (context, track)."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PlayCountRecord:
    """One row of the play_counts table."""
    context_id: str
    track_id: str
    play_count: int
    last_played: Optional[datetime]


@dataclass(frozen=True)
class ContextStats:
    """Aggregate play counts for one context."""
    total_tracks: int
    min_plays: int
    max_plays: int
    avg_plays: float
    total_plays: int
