"""Typed failures raised by the store, the Spotify adapter and the shuffle service."""
from typing import Any, Optional


class ShuffleError(Exception):
    """Base for every failure the daemon reports to a caller."""
    code = "shuffle_error"

    def to_detail(self) -> dict[str, Any]:
        """Shape used for HTTP error details."""
        return {"error": self.code, "message": str(self)}


class AuthRequired(ShuffleError):
    """No valid Spotify credential. Never retried automatically."""
    code = "not_authenticated"


class ContextUnavailable(ShuffleError):
    """The context's tracks cannot be enumerated.

    ``restricted`` is True when Spotify refuses to list a generated or
    otherwise restricted playlist (e.g. algorithmic mixes).
    """
    code = "context_unavailable"

    def __init__(self, message: str, *, context_id: Optional[str] = None, restricted: bool = False) -> None:
        super().__init__(message)
        self.context_id = context_id
        self.restricted = restricted

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["context_id"] = self.context_id
        detail["restricted"] = self.restricted
        return detail


class RemoteError(ShuffleError):
    """A Spotify call failed for a reason not assumed to clear on its own."""
    code = "remote_error"

    def __init__(self, message: str, *, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class RemoteTransient(RemoteError):
    """Rate limit, timeout, 5xx or no device; the next tick retries."""
    code = "remote_transient"


class StoreFault(ShuffleError):
    """Local persistence failure. The operation must be assumed not to have happened."""
    code = "store_fault"


class NoCandidates(ShuffleError):
    """The play-count store has no tracks for the context."""
    code = "no_candidates"
