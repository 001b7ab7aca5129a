"""Configuration: env, data paths, Spotify credentials, reconciliation tuning."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Base paths (project root = parent of trueshuffle package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so SPOTIFY_CLIENT_ID etc. are set
load_dotenv(BASE_DIR / ".env")

DATA_DIR = Path(os.getenv("STSD_DATA_DIR", str(BASE_DIR / "data")))
PLAY_COUNT_DB_PATH = DATA_DIR / "shuffle.db"
SPOTIFY_TOKEN_CACHE = DATA_DIR / ".spotify-token"

SERVICE_NAME = "STSD (Spotify True Shuffle Daemon)"
SERVICE_VERSION = "1.0.0"

# API
API_HOST = os.getenv("STSD_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("STSD_API_PORT", "3000"))

# Spotify (OAuth; tokens cached on disk after first connect)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", "http://localhost:3000/api/spotify/callback")
SPOTIFY_SCOPES = (
    "user-read-playback-state user-modify-playback-state user-read-currently-playing "
    "playlist-read-private playlist-read-collaborative "
    "playlist-modify-private playlist-modify-public"
)
SPOTIFY_TIMEOUT_SEC = float(os.getenv("STSD_SPOTIFY_TIMEOUT_SEC", "10"))
# After OAuth callback, redirect here (e.g. http://localhost:5173 for a dev UI)
STSD_WEB_ORIGIN = os.getenv("STSD_WEB_ORIGIN", "")

# Reconciliation
QUEUE_TARGET_DEPTH = int(os.getenv("STSD_QUEUE_TARGET_DEPTH", "5"))
TICK_INTERVAL_SEC = float(os.getenv("STSD_TICK_INTERVAL_SEC", "15"))
ADD_DELAY_SEC = float(os.getenv("STSD_ADD_DELAY_SEC", "0.5"))  # between remote additions (rate limits)
RECENT_WINDOW = int(os.getenv("STSD_RECENT_WINDOW", "50"))

# Vehicle playlist
VEHICLE_PREFIX = os.getenv("STSD_VEHICLE_PREFIX", "[STSD]")
VEHICLE_DESCRIPTION = "Managed by Spotify True Shuffle Daemon - Auto-generated playlist"
VEHICLE_MAX_TRACKS = int(os.getenv("STSD_VEHICLE_MAX_TRACKS", "50"))

_seed = os.getenv("STSD_RANDOM_SEED", "")
RANDOM_SEED: Optional[int] = int(_seed) if _seed else None


@dataclass(frozen=True)
class ShuffleSettings:
    """Tuning passed to the selector, vehicle manager and reconciler."""
    target_depth: int = QUEUE_TARGET_DEPTH
    tick_interval_sec: float = TICK_INTERVAL_SEC
    add_delay_sec: float = ADD_DELAY_SEC
    recent_window: int = RECENT_WINDOW
    vehicle_prefix: str = VEHICLE_PREFIX
    vehicle_description: str = VEHICLE_DESCRIPTION
    vehicle_max_tracks: int = VEHICLE_MAX_TRACKS
    random_seed: Optional[int] = RANDOM_SEED

    def __post_init__(self) -> None:
        if self.target_depth < 1:
            raise ValueError(f"target_depth must be a positive integer, got {self.target_depth}")
        if self.tick_interval_sec <= 0:
            raise ValueError(f"tick_interval_sec must be positive, got {self.tick_interval_sec}")
        if self.add_delay_sec < 0:
            raise ValueError(f"add_delay_sec must not be negative, got {self.add_delay_sec}")
        if self.recent_window < 1:
            raise ValueError(f"recent_window must be a positive integer, got {self.recent_window}")
        if not self.vehicle_prefix.strip():
            raise ValueError("vehicle_prefix must not be empty")


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
