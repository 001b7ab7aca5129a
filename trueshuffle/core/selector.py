"""Pick the next track to play: uniformly at random among the least played."""
import random
from typing import Optional

from trueshuffle.core.errors import NoCandidates
from trueshuffle.core.play_count_store import PlayCountStore
from trueshuffle.models.play_count import PlayCountRecord


class LeastPlayedSelector:
    """Call ``select_one`` once per track needed; the least-played set moves
    as the caller increments counts between calls."""

    def __init__(self, store: PlayCountStore, rng: Optional[random.Random] = None) -> None:
        self._store = store
        self._rng = rng or random.Random()

    async def select_one(self, context_id: str) -> PlayCountRecord:
        candidates = await self._store.least_played(context_id)
        if not candidates:
            raise NoCandidates(f"No tracks recorded for {context_id}")
        return candidates[self._rng.randrange(len(candidates))]
