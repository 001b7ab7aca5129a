"""The daemon-owned playlist actually played, separate from the user's context."""
import logging
from typing import List, Optional, Sequence

from trueshuffle.core.errors import RemoteError
from trueshuffle.core.spotify_client import SpotifyRemote
from trueshuffle.models.track import Track

logger = logging.getLogger(__name__)


class VehiclePlaylistManager:
    """Create, fill and trim the single ``<prefix> <label>`` playlist."""

    def __init__(self, remote: SpotifyRemote, prefix: str, description: str = "") -> None:
        self._remote = remote
        self._prefix = prefix
        self._description = description

    def name_for(self, label: str) -> str:
        return f"{self._prefix} {label}".strip()

    def is_vehicle_name(self, name: Optional[str]) -> bool:
        return bool(name) and name.startswith(self._prefix)

    async def remove_existing(self) -> int:
        """Unfollow every prefixed playlist owned by the current user. Returns how many."""
        user_id = await self._remote.current_user_id()
        playlists = await self._remote.user_playlists()
        owned = [
            p for p in playlists
            if self.is_vehicle_name(p.get("name"))
            and (p.get("owner") or {}).get("id") == user_id
        ]
        removed = 0
        for p in owned:
            try:
                await self._remote.unfollow_playlist(p["id"])
                removed += 1
                logger.info("Removed vehicle playlist %s (%s)", p.get("name"), p["id"])
            except RemoteError as e:
                logger.warning("Failed to remove vehicle playlist %s: %s", p["id"], e)
        return removed

    async def create_fresh(self, label: str) -> str:
        """Drop old vehicle playlists, then create a new private one. Returns its id."""
        found = await self.remove_existing()
        if found:
            logger.info("Removed %d previous vehicle playlist(s)", found)
        name = self.name_for(label)
        playlist_id = await self._remote.create_playlist(name, self._description)
        logger.info("Created vehicle playlist %r (%s)", name, playlist_id)
        return playlist_id

    async def clear(self, playlist_id: str) -> None:
        await self._remote.playlist_replace(playlist_id, [])

    async def add(self, playlist_id: str, track_uris: Sequence[str]) -> None:
        if track_uris:
            await self._remote.playlist_add(playlist_id, list(track_uris))

    async def remove(self, playlist_id: str, track_uris: Sequence[str]) -> None:
        if track_uris:
            await self._remote.playlist_remove(playlist_id, list(track_uris))

    async def list(self, playlist_id: str) -> List[Track]:
        return await self._remote.playlist_tracks(playlist_id)

    async def prune_played(
        self,
        playlist_id: str,
        current_uri: Optional[str],
        keep_uris: Sequence[str],
        max_tracks: int,
    ) -> int:
        """Once the vehicle holds more than ``max_tracks``, remove tracks placed
        before the current one. Current and ``keep_uris`` tracks are never removed."""
        tracks = await self.list(playlist_id)
        if len(tracks) <= max_tracks or not current_uri:
            return 0
        uris = [t.uri for t in tracks]
        if current_uri not in uris:
            return 0
        idx = uris.index(current_uri)
        # Removal drops every occurrence, so anything still upcoming must stay.
        keep = set(keep_uris) | set(uris[idx:])
        played = [u for u in uris[:idx] if u not in keep]
        played = list(dict.fromkeys(played))
        if not played:
            return 0
        await self.remove(playlist_id, played)
        logger.info("Pruned %d played track(s) from vehicle %s", len(played), playlist_id)
        return len(played)
