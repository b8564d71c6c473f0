"""
Pydantic models for the gem mirror.

This module defines the data models used throughout the mirror, including:
- Mirrored metadata (Gem, Namespace, Index)
- Mirror configuration persisted in the store root
- Records emitted to callers (GemListing, SyncEvent)

Identity for deduplication and sorted iteration is by name-like key only. That
projection is exposed as explicit key functions (``gem_key`` and friends)
instead of overriding ``__eq__``, so payload fields still compare normally.
"""

from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field

from gemmirror import __version__
from gemmirror.domain.integrity import Integrity


DEFAULT_PLATFORM = "ruby"


# ---------------------------------------------------------------------------
# Mirrored metadata
# ---------------------------------------------------------------------------


class Gem(BaseModel):
    """
    One package-version-platform record and its verified blob references.

    ``stored`` is only ever set once both the archive and its ``metadata.gz``
    member have been written to the store and verified.
    """

    full_name: str
    name: str
    version: str
    platform: str = DEFAULT_PLATFORM
    package_integrity: Integrity
    metadata_integrity: Optional[Integrity] = None
    stored: bool = False

    @staticmethod
    def compose_full_name(name: str, version: str, platform: str = DEFAULT_PLATFORM) -> str:
        if platform == DEFAULT_PLATFORM:
            return f"{name}-{version}"
        return f"{name}-{version}-{platform}"


class Namespace(BaseModel):
    """All known versions of one gem name within one source."""

    name: str
    info_checksum: str = ""
    versions: Dict[str, Gem] = Field(
        default_factory=dict,
        description="Gems keyed by full_name.",
    )


class Index(BaseModel):
    """One mirrored registry source and everything known about it locally."""

    source: str
    gems: Dict[str, Namespace] = Field(
        default_factory=dict,
        description="Namespaces keyed by gem name.",
    )


def gem_key(gem: Gem) -> str:
    return gem.full_name


def namespace_key(namespace: Namespace) -> str:
    return namespace.name


def index_key(index: Index) -> str:
    return index.source


def normalize_source(source: str) -> str:
    """Strip surrounding whitespace and trailing slashes from a source URL."""
    return source.strip().rstrip("/")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MirrorConfig(BaseModel):
    """
    Settings for talking to remote registries.

    Persisted at: <STORE_DIR>/mirror.json
    """

    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout applied to every registry request, in seconds.",
    )
    follow_redirects: bool = Field(
        default=True,
        description="Follow HTTP redirects (registries commonly redirect .gem downloads to a CDN).",
    )
    user_agent: str = Field(
        default=f"gemmirror/{__version__}",
        description="User-Agent header sent with every request.",
    )


# ---------------------------------------------------------------------------
# Output records
# ---------------------------------------------------------------------------


class GemListing(BaseModel):
    """One stored gem as reported to callers of the listing operation."""

    name: str
    version: str
    source: str
    platform: str
    full_name: str
    integrity: str
    path: str


SyncAction = Literal["listing", "page", "merge", "blob", "metadata", "index"]
SyncOutcome = Literal["started", "skipped", "updated", "created", "stored", "failed", "completed"]


class SyncEvent(BaseModel):
    """A structured progress record emitted by the sync engine."""

    source: str
    namespace: Optional[str] = None
    action: SyncAction
    outcome: SyncOutcome
    detail: Optional[str] = None
