from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

from gemmirror.domain.errors import GemNotStoredError
from gemmirror.domain.models import GemListing, Index, gem_key, namespace_key
from gemmirror.storage.fs_store import content_path


def iter_stored_gems(store_root: Path, indices: Iterable[Index]) -> Iterator[GemListing]:
    """
    Yield one GemListing per gem across all indices.

    Raises:
        GemNotStoredError: on the first gem that has not been stored yet.
    """
    for index in indices:
        for namespace in sorted(index.gems.values(), key=namespace_key):
            for gem in sorted(namespace.versions.values(), key=gem_key):
                if not gem.stored:
                    raise GemNotStoredError(f"Gem {gem.full_name} is not stored")
                yield GemListing(
                    name=gem.name,
                    version=gem.version,
                    source=index.source,
                    platform=gem.platform,
                    full_name=gem.full_name,
                    integrity=str(gem.package_integrity),
                    path=str(content_path(store_root, gem.package_integrity)),
                )
