"""Reconcile the play-count store with a context's current track list."""
import logging
from dataclasses import dataclass
from typing import List

from trueshuffle.core.errors import ContextUnavailable, RemoteError, RemoteTransient
from trueshuffle.core.play_count_store import PlayCountStore
from trueshuffle.core.spotify_client import SpotifyRemote, parse_context_uri
from trueshuffle.models.track import Track

logger = logging.getLogger(__name__)

SUPPORTED_KINDS = ("playlist", "album")
# Spotify answers these for generated/algorithmic playlists it no longer lets apps read.
RESTRICTED_STATUSES = (403, 404)


@dataclass(frozen=True)
class SyncResult:
    context_id: str
    tracks: List[Track]
    inserted: int


class ContextSynchronizer:
    def __init__(self, remote: SpotifyRemote, store: PlayCountStore) -> None:
        self._remote = remote
        self._store = store

    async def fetch_tracks(self, context_id: str) -> List[Track]:
        """Full paginated track list of a playlist or album.

        Raises ContextUnavailable when the context cannot be enumerated;
        transient and auth failures propagate unchanged.
        """
        parsed = parse_context_uri(context_id)
        if parsed is None or parsed[0] not in SUPPORTED_KINDS:
            raise ContextUnavailable(
                f"Cannot shuffle {context_id!r}: only playlists and albums are supported",
                context_id=context_id,
            )
        kind, id_ = parsed
        try:
            if kind == "playlist":
                return await self._remote.playlist_tracks(id_)
            return await self._remote.album_tracks(id_)
        except RemoteTransient:
            raise
        except RemoteError as e:
            restricted = kind == "playlist" and e.http_status in RESTRICTED_STATUSES
            if restricted:
                message = (
                    f"Spotify does not allow reading the tracks of {context_id} "
                    "(generated or restricted playlist). Save its tracks to your own playlist and shuffle that."
                )
            else:
                message = f"Could not list the tracks of {context_id}: {e}"
            raise ContextUnavailable(message, context_id=context_id, restricted=restricted) from e

    async def sync(self, context_id: str) -> SyncResult:
        """Fetch the context's tracks and add unseen ones to the store at count 0."""
        tracks = await self.fetch_tracks(context_id)
        inserted = await self._store.sync(context_id, [t.id for t in tracks])
        logger.info("Synced %s: %d tracks, %d new", context_id, len(tracks), inserted)
        return SyncResult(context_id=context_id, tracks=tracks, inserted=inserted)
