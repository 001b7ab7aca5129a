"""Spotify OAuth: auth URL, callback and logout."""
from fastapi import APIRouter
from fastapi.responses import HTMLResponse, RedirectResponse

from trueshuffle.config import STSD_WEB_ORIGIN
from trueshuffle.core.spotify_client import (
    clear_token,
    exchange_code_and_save_token,
    get_auth_url,
    get_spotify_client,
)

router = APIRouter()


@router.get("/auth-url")
def auth_url():
    """Return Spotify OAuth authorization URL and whether the user is logged in."""
    url = get_auth_url()
    if url is None:
        return {"auth_url": None, "error": "SPOTIFY_CLIENT_ID/SPOTIFY_CLIENT_SECRET not set", "logged_in": False}
    return {"auth_url": url, "logged_in": get_spotify_client() is not None}


@router.get("/callback")
def spotify_callback(code: str | None = None, error: str | None = None):
    """Exchange code for tokens, store them, then redirect to the web origin or show success."""
    if error or not code:
        return HTMLResponse(
            f"<body><p>Spotify login failed ({error or 'missing code'}). Try again from /api/spotify/auth-url.</p></body>",
            status_code=400,
        )
    if not exchange_code_and_save_token(code):
        return HTMLResponse(
            "<body><p>Failed to link Spotify. Check daemon logs and try again.</p></body>",
            status_code=500,
        )
    if STSD_WEB_ORIGIN:
        return RedirectResponse(url=f"{STSD_WEB_ORIGIN.rstrip('/')}/?spotify=success", status_code=302)
    return HTMLResponse("<body><p>Spotify linked successfully. You can close this window.</p></body>")


@router.post("/logout")
def logout():
    """Clear the Spotify token so the daemon is logged out."""
    clear_token()
    return {"ok": True}
