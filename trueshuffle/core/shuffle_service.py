"""Control operations: start, stop, status and reset of the shuffle session."""
import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from trueshuffle.config import ShuffleSettings
from trueshuffle.core.context_sync import ContextSynchronizer
from trueshuffle.core.errors import AuthRequired, ContextUnavailable, NoCandidates, RemoteError
from trueshuffle.core.play_count_store import PlayCountStore
from trueshuffle.core.reconciler import Reconciler
from trueshuffle.core.spotify_client import SpotifyRemote
from trueshuffle.core.vehicle_playlist import VehiclePlaylistManager
from trueshuffle.models.session import ShuffleSession

logger = logging.getLogger(__name__)


@dataclass
class StartResult:
    already_active: bool
    context_id: Optional[str]
    context_name: Optional[str]
    track_count: int
    vehicle_playlist_id: Optional[str]
    new_tracks: int = 0
    seed_track: Optional[str] = None
    queued: int = 0
    warning: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, **asdict(self)}


class ShuffleService:
    def __init__(
        self,
        session: ShuffleSession,
        store: PlayCountStore,
        remote: SpotifyRemote,
        synchronizer: ContextSynchronizer,
        vehicle: VehiclePlaylistManager,
        reconciler: Reconciler,
        settings: ShuffleSettings,
    ) -> None:
        self._session = session
        self._store = store
        self._remote = remote
        self._synchronizer = synchronizer
        self._vehicle = vehicle
        self._reconciler = reconciler
        self._settings = settings
        self._start_lock = asyncio.Lock()

    async def _resolve_context(self, context_uri: Optional[str]) -> str:
        """Requested context, else the one currently playing.

        The vehicle maps back to the context it was built from, even after a stop.
        """
        if not context_uri:
            playback = await self._remote.current_playback() or {}
            context_uri = (playback.get("context") or {}).get("uri")
        if not context_uri:
            raise ContextUnavailable("Nothing is playing from a playlist or album; pass context_uri")
        if context_uri == self._session.vehicle_uri and self._session.context_id:
            return self._session.context_id
        return context_uri

    def _already_active(self) -> StartResult:
        s = self._session
        return StartResult(
            already_active=True,
            context_id=s.context_id,
            context_name=s.context_name,
            track_count=len(s.tracks),
            vehicle_playlist_id=s.shadow_playlist_id,
            seed_track=s.initial_track,
        )

    async def start(self, context_uri: Optional[str] = None) -> StartResult:
        """Begin managing a context: sync counts, create the vehicle, seed, play, queue more.

        Starting the context that is already managed is a no-op reporting
        ``already_active``.
        """
        async with self._start_lock:
            if not await self._remote.is_authenticated():
                raise AuthRequired("Spotify not linked. Use /api/spotify/auth-url to log in.")
            context_id = await self._resolve_context(context_uri)
            if self._session.is_managing(context_id):
                logger.info("Shuffle already active for %s", context_id)
                return self._already_active()

            try:
                name = await self._remote.context_name(context_id) or context_id
            except RemoteError as e:
                logger.warning("Could not read name of %s: %s", context_id, e)
                name = context_id
            if self._vehicle.is_vehicle_name(name):
                raise ContextUnavailable(f"{context_id} is a shuffle vehicle playlist", context_id=context_id)

            synced = await self._synchronizer.sync(context_id)
            if not synced.tracks:
                raise ContextUnavailable(f"{context_id} has no playable tracks", context_id=context_id)

            playlist_id = await self._vehicle.create_fresh(name)

            # Ticks are skipped until the initial queue is in place.
            async with self._reconciler.lock:
                self._session.start(context_id, synced.tracks, playlist_id, context_name=name)

                seed = await self._reconciler.top_up(1)
                if not seed.added:
                    self._session.stop()
                    raise seed.error or NoCandidates(f"No track could be seeded for {context_id}")
                self._session.initial_track = seed.added[0]

                # Failures from here on leave the session active; the loop takes over once the vehicle plays.
                device_id = await self._remote.start_playback(self._session.vehicle_uri, offset_uri=seed.added[0])
                try:
                    await self._remote.set_shuffle(False, device_id)
                except RemoteError as e:
                    logger.warning("Could not turn off Spotify shuffle: %s", e)

                more = await self._reconciler.top_up(self._settings.target_depth)
            warning = None
            if more.error is not None:
                warning = f"Queued {len(more.added)}/{self._settings.target_depth}: {more.error}"
            logger.info(
                "Started shuffle for %s (%d tracks, %d new) in vehicle %s",
                context_id, len(synced.tracks), synced.inserted, playlist_id,
            )
            return StartResult(
                already_active=False,
                context_id=context_id,
                context_name=name,
                track_count=len(synced.tracks),
                vehicle_playlist_id=playlist_id,
                new_tracks=synced.inserted,
                seed_track=seed.added[0],
                queued=len(more.added),
                warning=warning,
            )

    async def stop(self, clear_vehicle: bool = False) -> bool:
        """Deactivate the session; optionally empty the vehicle playlist. Returns whether it was active."""
        was_active = self._session.stop()
        if was_active:
            logger.info("Stopped shuffle for %s", self._session.context_id)
        if clear_vehicle and self._session.shadow_playlist_id:
            await self._vehicle.clear(self._session.shadow_playlist_id)
            logger.info("Cleared vehicle playlist %s", self._session.shadow_playlist_id)
        return was_active

    async def status(self) -> dict[str, Any]:
        out = self._session.snapshot()
        out["authenticated"] = await self._remote.is_authenticated()
        out["stats"] = None
        if self._session.context_id:
            out["stats"] = asdict(await self._store.stats(self._session.context_id))
        return out

    async def reset_play_counts(self) -> int:
        return await self._store.reset_all()
