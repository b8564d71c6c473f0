"""Tests for gemmirror.domain.merge."""
from gemmirror.domain.integrity import Integrity
from gemmirror.domain.merge import merge_namespaces
from gemmirror.domain.models import Gem, Namespace


def _gem(version, stored=False, payload=b""):
    gem = Gem(
        full_name=f"rack-{version}",
        name="rack",
        version=version,
        package_integrity=Integrity.compute(f"rack-{version}".encode() + payload),
    )
    if stored:
        gem.metadata_integrity = Integrity.compute(b"meta")
        gem.stored = True
    return gem


def _ns(checksum, *gems):
    return Namespace(name="rack", info_checksum=checksum, versions={g.full_name: g for g in gems})


class TestMerge:

    def test_stored_local_beats_fresh_remote(self):
        local = _ns("old", _gem("1.0", stored=True))
        remote = _ns("new", _gem("1.0"))
        merged = merge_namespaces(local, remote)
        assert merged.versions["rack-1.0"] == local.versions["rack-1.0"]
        assert merged.versions["rack-1.0"].stored

    def test_remote_base_fields(self):
        merged = merge_namespaces(_ns("old"), _ns("new", _gem("2.0")))
        assert merged.info_checksum == "new"
        assert list(merged.versions) == ["rack-2.0"]

    def test_unstored_local_loses_to_remote(self):
        local = _ns("old", _gem("1.0", payload=b"old"))
        remote = _ns("new", _gem("1.0", payload=b"new"))
        merged = merge_namespaces(local, remote)
        assert merged.versions["rack-1.0"] == remote.versions["rack-1.0"]

    def test_stored_remote_wins(self):
        local = _ns("old", _gem("1.0", stored=True, payload=b"old"))
        remote = _ns("new", _gem("1.0", stored=True, payload=b"new"))
        merged = merge_namespaces(local, remote)
        assert merged.versions["rack-1.0"] == remote.versions["rack-1.0"]

    def test_dropped_upstream_preserved(self):
        local = _ns("old", _gem("0.9", stored=True), _gem("0.8"))
        remote = _ns("new", _gem("1.0"))
        merged = merge_namespaces(local, remote)
        assert sorted(merged.versions) == ["rack-0.8", "rack-0.9", "rack-1.0"]

    def test_identical_is_noop(self):
        ns = _ns("same", _gem("1.0", stored=True), _gem("1.1"))
        merged = merge_namespaces(ns, ns.model_copy(deep=True))
        assert merged == ns

    def test_inputs_untouched(self):
        local = _ns("old", _gem("1.0", stored=True))
        remote = _ns("new", _gem("1.1"))
        merge_namespaces(local, remote)
        assert list(remote.versions) == ["rack-1.1"]
        assert list(local.versions) == ["rack-1.0"]
