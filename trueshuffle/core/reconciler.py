"""One reconciliation pass: keep the queue topped up with least-played tracks.

Each tick reads remote playback and queue, counts how many managed tracks are
still upcoming, and adds the deficit to the vehicle playlist one track at a
time. A track's play count is only incremented after Spotify accepted it.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from trueshuffle.config import ShuffleSettings
from trueshuffle.core.errors import ShuffleError
from trueshuffle.core.play_count_store import PlayCountStore
from trueshuffle.core.selector import LeastPlayedSelector
from trueshuffle.core.spotify_client import SpotifyRemote
from trueshuffle.core.vehicle_playlist import VehiclePlaylistManager
from trueshuffle.models.session import SessionPhase, ShuffleSession
from trueshuffle.models.track import track_uri

logger = logging.getLogger(__name__)


@dataclass
class TopUpResult:
    added: List[str] = field(default_factory=list)  # track URIs, in order
    error: Optional[ShuffleError] = None


@dataclass
class TickResult:
    status: str  # busy | inactive | unauthenticated | not_vehicle | user_takeover | full | topped_up | partial
    needed: int = 0
    added: int = 0
    error: Optional[str] = None


class Reconciler:
    def __init__(
        self,
        session: ShuffleSession,
        store: PlayCountStore,
        remote: SpotifyRemote,
        selector: LeastPlayedSelector,
        vehicle: VehiclePlaylistManager,
        settings: ShuffleSettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._session = session
        self._store = store
        self._remote = remote
        self._selector = selector
        self._vehicle = vehicle
        self._settings = settings
        self._sleep = sleep
        # Held by a tick and by start for its whole seed/play/top-up sequence.
        self.lock = asyncio.Lock()

    def _still_managing(self, context_id: str, playlist_id: str) -> bool:
        s = self._session
        return s.active and s.context_id == context_id and s.shadow_playlist_id == playlist_id

    def _uri_for(self, track_id: str) -> str:
        track = self._session.track_by_id(track_id)
        return track.uri if track else track_uri(track_id)

    async def top_up(self, count: int) -> TopUpResult:
        """Add ``count`` least-played tracks to the vehicle, stopping at the first failure.

        The caller must hold ``lock``.
        """
        result = TopUpResult()
        context_id = self._session.context_id
        playlist_id = self._session.shadow_playlist_id
        if not context_id or not playlist_id:
            return result
        for _ in range(count):
            await self._sleep(self._settings.add_delay_sec)
            if not self._still_managing(context_id, playlist_id):
                logger.info("Session changed during top-up, stopping after %d", len(result.added))
                break
            try:
                record = await self._selector.select_one(context_id)
                uri = self._uri_for(record.track_id)
                await self._vehicle.add(playlist_id, [uri])
                new_count = await self._store.increment(context_id, record.track_id)
            except ShuffleError as e:
                logger.warning("Top-up aborted after %d/%d: %s", len(result.added), count, e)
                result.error = e
                break
            self._session.set_last_managed_track(uri)
            result.added.append(uri)
            logger.info("Queued %s (play count now %d)", uri, new_count)
        return result

    async def tick(self) -> TickResult:
        if self.lock.locked():
            logger.debug("Tick: another pass holds the queue, skipping")
            return TickResult("busy")
        async with self.lock:
            return await self._tick()

    async def _tick(self) -> TickResult:
        session = self._session
        if not session.active or not session.context_id:
            return TickResult("inactive")
        if not await self._remote.is_authenticated():
            logger.debug("Tick: not authenticated")
            return TickResult("unauthenticated")

        context_id = session.context_id
        playback = await self._remote.current_playback() or {}
        playing_context = (playback.get("context") or {}).get("uri")
        if playing_context != session.vehicle_uri:
            # A track played outside any context counts as a switch too.
            if session.phase is SessionPhase.STEADY and playback.get("is_playing"):
                logger.info("Tick: user switched to %s, releasing %s", playing_context or "a single track", context_id)
                session.stop()
                return TickResult("user_takeover")
            logger.debug("Tick: vehicle not playing (context=%s)", playing_context)
            return TickResult("not_vehicle")
        if session.phase is SessionPhase.SEEDING:
            session.mark_steady()

        queue = await self._remote.queue()
        upcoming = [
            item for item in queue.get("queue") or []
            if item and item.get("uri") != session.initial_track
        ]
        recent = await self._store.recently_touched(context_id, self._settings.recent_window)
        managed = {r.track_id for r in recent}
        present = sum(1 for item in upcoming if item.get("id") in managed)
        needed = max(0, self._settings.target_depth - present)
        if needed == 0:
            logger.debug("Tick: %d managed tracks queued, nothing to add", present)
            await self._prune(playback, upcoming)
            return TickResult("full")

        logger.info("Tick: %d/%d managed tracks queued, adding %d", present, self._settings.target_depth, needed)
        result = await self.top_up(needed)
        if result.error is not None:
            return TickResult("partial", needed=needed, added=len(result.added), error=str(result.error))
        await self._prune(playback, upcoming)
        return TickResult("topped_up", needed=needed, added=len(result.added))

    async def _prune(self, playback: dict, upcoming: List[dict]) -> None:
        playlist_id = self._session.shadow_playlist_id
        current = (playback.get("item") or {}).get("uri")
        if not playlist_id:
            return
        try:
            await self._vehicle.prune_played(
                playlist_id,
                current,
                [item.get("uri") for item in upcoming if item.get("uri")],
                self._settings.vehicle_max_tracks,
            )
        except ShuffleError as e:
            logger.warning("Vehicle pruning skipped: %s", e)
