"""Shuffle control: start, stop, status and play-count reset."""
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from trueshuffle.api.state import AppState, get_state
from trueshuffle.core.errors import (
    AuthRequired,
    ContextUnavailable,
    RemoteError,
    ShuffleError,
    StoreFault,
)

router = APIRouter()


def _http_error(e: ShuffleError) -> HTTPException:
    if isinstance(e, AuthRequired):
        status = 503
    elif isinstance(e, ContextUnavailable):
        status = 422
    elif isinstance(e, RemoteError):
        status = 502
    elif isinstance(e, StoreFault):
        status = 500
    else:
        status = 409
    return HTTPException(status_code=status, detail=e.to_detail())


class StartShuffleBody(BaseModel):
    context_uri: Optional[str] = None


@router.post("/start")
async def start_shuffle(
    body: StartShuffleBody | None = Body(None),
    state: AppState = Depends(get_state),
):
    """Start managing a playlist/album; without context_uri, use what is playing now."""
    context_uri = body.context_uri if body else None
    try:
        result = await state.service.start(context_uri)
    except ShuffleError as e:
        raise _http_error(e)
    return result.to_dict()


@router.post("/stop")
async def stop_shuffle(clear: bool = False, state: AppState = Depends(get_state)):
    """Stop managing the current context. ``clear=true`` also empties the vehicle playlist."""
    try:
        was_active = await state.service.stop(clear_vehicle=clear)
    except ShuffleError as e:
        raise _http_error(e)
    return {"ok": True, "was_active": was_active}


@router.get("/status")
async def shuffle_status(state: AppState = Depends(get_state)):
    try:
        return await state.service.status()
    except ShuffleError as e:
        raise _http_error(e)


@router.post("/reset")
async def reset_play_counts(state: AppState = Depends(get_state)):
    """Zero every play count across all contexts."""
    try:
        reset = await state.service.reset_play_counts()
    except ShuffleError as e:
        raise _http_error(e)
    return {"ok": True, "reset": reset}
