"""Entry: start API server (the reconcile loop runs inside the app lifespan)."""
import logging
import uvicorn

from trueshuffle.config import API_HOST, API_PORT

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    uvicorn.run(
        "trueshuffle.api.app:app",
        host=API_HOST,
        port=API_PORT,
    )
