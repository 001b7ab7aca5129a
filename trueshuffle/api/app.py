"""FastAPI app, CORS, lifespan (store + reconcile scheduler), and route registration."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging in the worker process (so INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(name)s: %(message)s",
)

from trueshuffle.api.state import AppState, get_state
from trueshuffle.config import SERVICE_NAME, SERVICE_VERSION, ensure_data_dir

# Import routes after state to avoid circular imports
from trueshuffle.api.routes import shuffle, spotify

__all__ = ["app", "AppState", "get_state"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_data_dir()
    state = get_state()
    await state.store.initialize()
    state.scheduler.start()

    yield

    state.session.stop()
    await state.scheduler.stop()


app = FastAPI(
    title="STSD API",
    description="Spotify True Shuffle Daemon: least-played-first playback",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/api/status")
def service_status():
    return {"message": f"{SERVICE_NAME} is running", "version": SERVICE_VERSION}


app.include_router(shuffle.router, prefix="/api/shuffle", tags=["shuffle"])
app.include_router(spotify.router, prefix="/api/spotify", tags=["spotify"])
