from __future__ import annotations

from gemmirror.domain.models import Namespace


def merge_namespaces(local: Namespace, remote: Namespace) -> Namespace:
    """
    Combine a locally known namespace with a freshly fetched one.

    The remote namespace is the base (name, info checksum and entries). A local
    entry wins only when it is already stored and the remote entry is not, and
    entries that disappeared upstream are kept. A fresh parse never carries
    ``stored=True``, so this is what keeps downloaded gems from being reset.
    """
    versions = dict(remote.versions)
    for key, gem in local.versions.items():
        other = versions.get(key)
        if other is None or (gem.stored and not other.stored):
            versions[key] = gem
    return Namespace(name=remote.name, info_checksum=remote.info_checksum, versions=versions)
