"""
gemmirror test fixtures

Provides an in-memory fake compact-index registry served through
httpx.MockTransport, helpers for building .gem archives, and an observer that
records sync events.

Run with: pytest tests/ -v
"""
import hashlib
import io
import tarfile
from collections import Counter

import httpx
import pytest

from gemmirror.services.client import RegistryClient
from gemmirror.services.observer import SyncObserver

SOURCE = "https://gems.example.test"


def make_gem(files=None) -> bytes:
    """Build a .gem (plain tar) archive; defaults to a metadata.gz + data.tar.gz pair."""
    if files is None:
        files = {"metadata.gz": b"\x1f\x8bfake-metadata", "data.tar.gz": b"\x1f\x8bfake-data"}
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class FakeRegistry:
    """A mutable compact-index registry; tests edit it between sync runs."""

    def __init__(self, source: str = SOURCE):
        self.source = source
        self.namespaces = {}  # name -> {"etag": str, "lines": [str]}
        self.gems = {}  # full_name -> bytes
        self.overrides = {}  # path -> httpx.Response or Exception
        self.requests = Counter()

    def add_version(self, name, version, platform=None, body=None, etag=None, deps=""):
        """Publish one version; returns the archive bytes."""
        body = body if body is not None else make_gem(
            {"metadata.gz": f"meta:{name}-{version}".encode(), "data.tar.gz": b"data"}
        )
        token = version if platform is None else f"{version}-{platform}"
        full_name = f"{name}-{token}"
        ns = self.namespaces.setdefault(name, {"etag": None, "lines": []})
        ns["lines"].append(f"{token} {deps}|checksum:{sha256_hex(body)}")
        ns["etag"] = etag or sha256_hex("\n".join(ns["lines"]).encode())
        self.gems[full_name] = body
        return body

    def versions_body(self) -> str:
        lines = ["created_at: 2024-01-01T00:00:00Z", "---"]
        for name, ns in self.namespaces.items():
            lines.append(f"{name} 1.0 {ns['etag']}")
        return "\n".join(lines) + "\n"

    def info_body(self, name) -> str:
        return "---\n" + "\n".join(self.namespaces[name]["lines"]) + "\n"

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests[path] += 1
        override = self.overrides.get(path)
        if isinstance(override, Exception):
            raise override
        if override is not None:
            return override
        if path == "/versions":
            return httpx.Response(200, text=self.versions_body())
        if path.startswith("/info/"):
            name = path[len("/info/"):]
            if name not in self.namespaces:
                return httpx.Response(404)
            return httpx.Response(
                200,
                text=self.info_body(name),
                headers={"ETag": f'W/"{self.namespaces[name]["etag"]}"'},
            )
        if path.startswith("/gems/") and path.endswith(".gem"):
            full_name = path[len("/gems/"):-len(".gem")]
            if full_name in self.gems:
                return httpx.Response(200, content=self.gems[full_name])
        return httpx.Response(404)

    def client(self) -> RegistryClient:
        return RegistryClient(client=httpx.Client(transport=httpx.MockTransport(self.handler)))


class RecordingObserver(SyncObserver):
    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)

    def matching(self, **fields):
        return [e for e in self.events if all(getattr(e, k) == v for k, v in fields.items())]


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def observer():
    return RecordingObserver()
