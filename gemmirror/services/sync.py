"""
Incremental synchronization of mirrored indices.

One run walks every index in the store:

1. fetch ``/versions`` and diff each namespace's info checksum against what we have
2. fetch ``/info/{name}`` for changed or new namespaces and merge it in
3. download and verify every gem that is not stored yet, then extract ``metadata.gz``

All of it happens inside a single ``Store.mutate_indices`` call, so the index
manifest is only written when the whole run succeeds. Blobs written along the
way are kept regardless and are reused by the next run.
"""
from __future__ import annotations

import io
import logging
import tarfile
from typing import Dict, List, Optional

from gemmirror.domain.compact_index import (
    info_checksums_match,
    normalize_etag,
    parse_info_page,
    parse_versions_listing,
)
from gemmirror.domain.errors import IntegrityMismatch, MetadataMissing, TransportFailure
from gemmirror.domain.merge import merge_namespaces
from gemmirror.domain.models import Gem, Index, Namespace, SyncEvent, gem_key, namespace_key
from gemmirror.services.client import RegistryClient
from gemmirror.services.observer import LoggingObserver, SyncObserver
from gemmirror.storage.store import Store

logger = logging.getLogger(__name__)

METADATA_MEMBER = "metadata.gz"


def extract_metadata(archive: bytes, full_name: str) -> bytes:
    """
    Return the bytes of the ``metadata.gz`` member of a .gem (tar) archive.

    Raises:
        MetadataMissing: if the archive is unreadable or has no such member.
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(archive), mode="r:") as tar:
            for member in tar:
                if member.isfile() and member.name == METADATA_MEMBER:
                    f = tar.extractfile(member)
                    if f is not None:
                        return f.read()
    except tarfile.TarError as e:
        raise MetadataMissing(f"Failed to read gem archive for {full_name}: {e}") from e
    raise MetadataMissing(f"Failed to find {METADATA_MEMBER} in blob for {full_name}")


class SyncEngine:
    """Drives fetch, diff, parse, merge, download and verify for every index."""

    def __init__(
        self,
        store: Store,
        client: Optional[RegistryClient] = None,
        observer: Optional[SyncObserver] = None,
    ):
        self.store = store
        self.client = client or RegistryClient()
        self.observer = observer or LoggingObserver()

    def run(self) -> List[Index]:
        """Sync every index and persist the result. Any fatal error persists nothing."""
        return self.store.mutate_indices(self.sync_indices)

    def sync_indices(self, indices: List[Index]) -> None:
        for index in indices:
            self.sync_index(index)

    def sync_index(self, index: Index) -> None:
        self._emit(index, None, "index", "started")

        listing = self._fetch_listing(index)
        for name, info_checksum in listing.items():
            local = index.gems.get(name)
            if local is not None and info_checksums_match(local.info_checksum, info_checksum):
                self._emit(index, name, "page", "skipped", "info checksum unchanged")
                continue

            remote = self._fetch_namespace(index, name, info_checksum)
            if remote is None:
                continue

            if local is not None:
                index.gems[name] = merge_namespaces(local, remote)
                self._emit(index, name, "merge", "updated", f"{local.info_checksum} -> {remote.info_checksum}")
            else:
                index.gems[name] = remote
                self._emit(index, name, "merge", "created", f"{len(remote.versions)} versions")

        self._store_gems(index)
        self._emit(index, None, "index", "completed")

    def _fetch_listing(self, index: Index) -> Dict[str, str]:
        url = f"{index.source}/versions"
        response = self.client.get_ok(url)
        listing = parse_versions_listing(response.text)
        self._emit(index, None, "listing", "completed", f"{len(listing)} namespaces")
        return listing

    def _fetch_namespace(self, index: Index, name: str, listed_checksum: str) -> Optional[Namespace]:
        url = f"{index.source}/info/{name}"
        try:
            response = self.client.get_ok(url)
        except TransportFailure as e:
            # A single unreachable page leaves that namespace as it was for this run.
            self._emit(index, name, "page", "failed", str(e))
            return None

        etag = response.headers.get("ETag")
        if etag is not None:
            info_checksum = normalize_etag(etag)
        else:
            logger.warning(f"No ETag for {url}, using checksum from versions listing")
            info_checksum = listed_checksum

        versions = parse_info_page(name, response.text)
        return Namespace(name=name, info_checksum=info_checksum, versions=versions)

    def _store_gems(self, index: Index) -> None:
        for namespace in sorted(index.gems.values(), key=namespace_key):
            for gem in sorted(namespace.versions.values(), key=gem_key):
                if gem.stored:
                    continue
                self._store_gem(index, gem)

    def _store_gem(self, index: Index, gem: Gem) -> None:
        if not self.store.has_blob(gem.package_integrity):
            url = f"{index.source}/gems/{gem.full_name}.gem"
            response = self.client.get_ok(url)
            integrity = self.store.store_blob(response.content)
            if integrity != gem.package_integrity:
                raise IntegrityMismatch(
                    f"Checksum mismatch for {gem.full_name}: index says {gem.package_integrity}, "
                    f"server sent {integrity}",
                    expected=gem.package_integrity,
                    actual=integrity,
                )
            self._emit(index, gem.name, "blob", "stored", gem.full_name)

        archive = self.store.get_blob(gem.package_integrity)
        metadata = extract_metadata(archive, gem.full_name)
        gem.metadata_integrity = self.store.store_blob(metadata)
        gem.stored = True
        self._emit(index, gem.name, "metadata", "stored", gem.full_name)

    def _emit(
        self,
        index: Index,
        namespace: Optional[str],
        action: str,
        outcome: str,
        detail: Optional[str] = None,
    ) -> None:
        self.observer.emit(
            SyncEvent(source=index.source, namespace=namespace, action=action, outcome=outcome, detail=detail)
        )
