"""
Read-only HTTP view of a mirror store.

Serves the same listing the ``each-gem`` command prints, plus the verified
.gem archives themselves, so a mirror can be consumed over the network.
"""
from __future__ import annotations

from typing import List
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from gemmirror.core.dependencies import get_store
from gemmirror.domain.errors import BlobNotFound, GemNotStoredError
from gemmirror.domain.models import GemListing
from gemmirror.services.listing import iter_stored_gems
from gemmirror.storage.fs_store import FsStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/indices")
def list_indices(store: FsStore = Depends(get_store)) -> List[dict]:
    """One summary per mirrored source."""
    results = []
    for index in store.list_indices():
        gems = [gem for namespace in index.gems.values() for gem in namespace.versions.values()]
        results.append(
            {
                "source": index.source,
                "namespaces": len(index.gems),
                "gems": len(gems),
                "stored": sum(1 for gem in gems if gem.stored),
            }
        )
    return results


@router.get("/gems")
def list_gems(store: FsStore = Depends(get_store)) -> List[GemListing]:
    try:
        return list(iter_stored_gems(store.root, store.list_indices()))
    except GemNotStoredError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/gems/{filename}")
def download_gem(filename: str, store: FsStore = Depends(get_store)) -> Response:
    """Serve a stored .gem archive. Bytes are re-verified on every read."""
    if not filename.endswith(".gem"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    full_name = filename[: -len(".gem")]

    for index in store.list_indices():
        for namespace in index.gems.values():
            gem = namespace.versions.get(full_name)
            if gem is None or not gem.stored:
                continue
            try:
                data = store.get_blob(gem.package_integrity)
            except BlobNotFound:
                logger.warning(f"Gem {full_name} is marked stored but its blob is missing")
                continue
            return Response(content=data, media_type="application/octet-stream")

    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Gem {full_name} not found")
