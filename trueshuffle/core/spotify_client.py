"""Spotify API client via Spotipy; uses cached OAuth token.

Spotipy is blocking, so ``SpotifyRemote`` dispatches every call with
``asyncio.to_thread`` and translates failures into the daemon's error types.
"""
import asyncio
import logging
from typing import Callable, List, Optional, TypeVar

import requests
from spotipy import Spotify
from spotipy.cache_handler import CacheFileHandler
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from trueshuffle.config import (
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
    SPOTIFY_TIMEOUT_SEC,
    SPOTIFY_TOKEN_CACHE,
)
from trueshuffle.core.errors import AuthRequired, RemoteError, RemoteTransient
from trueshuffle.models.track import Track

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLAYLIST_PAGE_SIZE = 100
ALBUM_PAGE_SIZE = 50
PLAYLIST_WRITE_CHUNK = 100  # Spotify accepts at most 100 items per add/remove


def _oauth() -> Optional[SpotifyOAuth]:
    if not SPOTIFY_CLIENT_ID or not SPOTIFY_CLIENT_SECRET:
        return None
    cache = CacheFileHandler(cache_path=str(SPOTIFY_TOKEN_CACHE))
    return SpotifyOAuth(
        client_id=SPOTIFY_CLIENT_ID,
        client_secret=SPOTIFY_CLIENT_SECRET,
        redirect_uri=SPOTIFY_REDIRECT_URI,
        scope=SPOTIFY_SCOPES,
        cache_handler=cache,
        open_browser=False,
    )


def get_spotify_client() -> Optional[Spotify]:
    """Return an authenticated Spotipy Spotify client, or None if not logged in."""
    auth = _oauth()
    if auth is None:
        return None
    token_info = auth.validate_token(auth.cache_handler.get_cached_token())
    if token_info is None:
        return None
    return Spotify(auth_manager=auth, requests_timeout=SPOTIFY_TIMEOUT_SEC)


def get_auth_url() -> Optional[str]:
    """Spotify authorization URL, or None when client credentials are missing."""
    auth = _oauth()
    if auth is None:
        return None
    return auth.get_authorize_url()


def exchange_code_and_save_token(code: str) -> bool:
    """Exchange OAuth code for tokens and save to cache. Returns True on success."""
    auth = _oauth()
    if auth is None:
        return False
    try:
        auth.get_access_token(code=code, check_cache=False)
        return True
    except (SpotifyOauthError, SpotifyException, requests.RequestException) as e:
        logger.warning("Spotify code exchange failed: %s", e)
        return False


def clear_token() -> None:
    """Remove the cached token so the daemon is logged out."""
    try:
        if SPOTIFY_TOKEN_CACHE.exists():
            SPOTIFY_TOKEN_CACHE.unlink()
    except OSError as e:
        logger.warning("Could not remove token cache %s: %s", SPOTIFY_TOKEN_CACHE, e)


def parse_context_uri(uri: Optional[str]) -> Optional[tuple[str, str]]:
    """Return (kind, id) for spotify:<kind>:<id>, e.g. ('playlist', '37i9...'), or None."""
    if not uri or ":" not in uri:
        return None
    parts = uri.split(":")
    if len(parts) < 3 or parts[0] != "spotify" or not parts[2]:
        return None
    return parts[1].lower(), parts[2]


def _translate(e: Exception, what: str) -> Exception:
    if isinstance(e, SpotifyOauthError):
        return AuthRequired(f"Spotify token refresh failed during {what}: {e}")
    if isinstance(e, SpotifyException):
        status = e.http_status
        message = f"{what} failed: HTTP {status} {e.msg}"
        if status == 401:
            return AuthRequired(f"Spotify rejected the credential during {what}")
        if status == 429 or (status is not None and status >= 500):
            return RemoteTransient(message, http_status=status)
        return RemoteError(message, http_status=status)
    if isinstance(e, requests.RequestException):
        return RemoteTransient(f"{what} failed: {e}")
    return e


def _playlist_entry_track(entry: dict) -> Optional[Track]:
    return Track.from_spotify(entry.get("track") or entry.get("item") or {})


class SpotifyRemote:
    """Async facade over the Spotify Web API calls the shuffle daemon uses."""

    def __init__(self, client_factory: Callable[[], Optional[Spotify]] = get_spotify_client) -> None:
        self._client_factory = client_factory
        self._user_id: Optional[str] = None

    async def is_authenticated(self) -> bool:
        try:
            return await asyncio.to_thread(self._client_factory) is not None
        except (SpotifyOauthError, SpotifyException, requests.RequestException) as e:
            logger.warning("Spotify token validation failed: %s", e)
            return False

    async def _call(self, what: str, fn: Callable[[Spotify], T]) -> T:
        def run() -> T:
            sp = self._client_factory()
            if sp is None:
                raise AuthRequired("Spotify not linked. Use /api/spotify/auth-url to log in.")
            return fn(sp)

        try:
            return await asyncio.to_thread(run)
        except (SpotifyOauthError, SpotifyException, requests.RequestException) as e:
            raise _translate(e, what) from e

    # Playback

    async def current_playback(self) -> Optional[dict]:
        return await self._call("current_playback", lambda sp: sp.current_playback())

    async def queue(self) -> dict:
        result = await self._call("queue", lambda sp: sp.queue())
        return result or {"currently_playing": None, "queue": []}

    async def devices(self) -> List[dict]:
        result = await self._call("devices", lambda sp: sp.devices())
        return (result or {}).get("devices") or []

    async def start_playback(self, context_uri: str, offset_uri: Optional[str] = None) -> str:
        """Start ``context_uri`` on the active device (or the first available). Returns the device id."""
        devices = await self.devices()
        if not devices:
            raise RemoteTransient("No Spotify devices available. Open Spotify on a device and retry.")
        device = next((d for d in devices if d.get("is_active")), devices[0])
        device_id = device["id"]
        offset = {"uri": offset_uri} if offset_uri else {"position": 0}
        logger.info("Starting %s on %s", context_uri, device.get("name") or device_id)
        await self._call(
            "start_playback",
            lambda sp: sp.start_playback(device_id=device_id, context_uri=context_uri, offset=offset),
        )
        return device_id

    async def set_shuffle(self, state: bool, device_id: Optional[str] = None) -> None:
        await self._call("shuffle", lambda sp: sp.shuffle(state, device_id=device_id))

    # Context enumeration

    async def context_name(self, context_uri: str) -> Optional[str]:
        parsed = parse_context_uri(context_uri)
        if parsed is None:
            return None
        kind, id_ = parsed
        if kind == "playlist":
            meta = await self._call("playlist", lambda sp: sp.playlist(id_, fields="name"))
        elif kind == "album":
            meta = await self._call("album", lambda sp: sp.album(id_))
        else:
            return None
        return (meta or {}).get("name") or None

    async def playlist_tracks(self, playlist_id: str) -> List[Track]:
        """All track items of a playlist, in playlist order (episodes and local files skipped)."""
        def collect(sp: Spotify) -> List[Track]:
            out: List[Track] = []
            page = sp.playlist_items(playlist_id, limit=PLAYLIST_PAGE_SIZE, additional_types=("track",))
            while page:
                for entry in page.get("items") or []:
                    track = _playlist_entry_track(entry)
                    if track is not None:
                        out.append(track)
                page = sp.next(page) if page.get("next") else None
            return out

        return await self._call("playlist_items", collect)

    async def album_tracks(self, album_id: str) -> List[Track]:
        def collect(sp: Spotify) -> List[Track]:
            out: List[Track] = []
            page = sp.album_tracks(album_id, limit=ALBUM_PAGE_SIZE)
            while page:
                for item in page.get("items") or []:
                    track = Track.from_spotify(item)
                    if track is not None:
                        out.append(track)
                page = sp.next(page) if page.get("next") else None
            return out

        return await self._call("album_tracks", collect)

    # Playlists owned by the current user

    async def current_user_id(self) -> str:
        if self._user_id is None:
            user = await self._call("current_user", lambda sp: sp.current_user())
            self._user_id = user["id"]
        return self._user_id

    async def user_playlists(self) -> List[dict]:
        def collect(sp: Spotify) -> List[dict]:
            out: List[dict] = []
            page = sp.current_user_playlists(limit=50)
            while page:
                out.extend(p for p in page.get("items") or [] if p)
                page = sp.next(page) if page.get("next") else None
            return out

        return await self._call("current_user_playlists", collect)

    async def create_playlist(self, name: str, description: str) -> str:
        user_id = await self.current_user_id()
        created = await self._call(
            "user_playlist_create",
            lambda sp: sp.user_playlist_create(user_id, name, public=False, description=description),
        )
        return created["id"]

    async def unfollow_playlist(self, playlist_id: str) -> None:
        await self._call(
            "current_user_unfollow_playlist",
            lambda sp: sp.current_user_unfollow_playlist(playlist_id),
        )

    async def playlist_add(self, playlist_id: str, uris: List[str]) -> None:
        for i in range(0, len(uris), PLAYLIST_WRITE_CHUNK):
            chunk = uris[i:i + PLAYLIST_WRITE_CHUNK]
            await self._call("playlist_add_items", lambda sp: sp.playlist_add_items(playlist_id, chunk))

    async def playlist_remove(self, playlist_id: str, uris: List[str]) -> None:
        for i in range(0, len(uris), PLAYLIST_WRITE_CHUNK):
            chunk = uris[i:i + PLAYLIST_WRITE_CHUNK]
            await self._call(
                "playlist_remove_all_occurrences_of_items",
                lambda sp: sp.playlist_remove_all_occurrences_of_items(playlist_id, chunk),
            )

    async def playlist_replace(self, playlist_id: str, uris: List[str]) -> None:
        await self._call("playlist_replace_items", lambda sp: sp.playlist_replace_items(playlist_id, uris))
