import logging

from fastapi import FastAPI

from gemmirror import __version__
from gemmirror.api.mirror import router as mirror_router

logger = logging.getLogger(__name__)


app = FastAPI(
    title="gemmirror",
    version=__version__,
    description="Read-only view of a locally mirrored gem registry.",
)


@app.get("/health")
def health() -> dict:
    """
    Lightweight health check endpoint.
    """
    return {"status": "ok"}


app.include_router(mirror_router, tags=["mirror"])
