"""
Parsing for the compact index text protocol.

Both ``/versions`` and ``/info/{name}`` bodies start with a header that ends at
a line consisting of ``---``; everything after it is one record per line.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from gemmirror.domain.errors import InvalidIntegrityFormat, ParseError
from gemmirror.domain.integrity import Integrity
from gemmirror.domain.models import DEFAULT_PLATFORM, Gem

logger = logging.getLogger(__name__)

SENTINEL = "---"
CHECKSUM_KEY = "checksum"


def body_lines(text: str, what: str) -> List[str]:
    """
    Return the non-blank lines following the ``---`` sentinel.

    Raises:
        ParseError: if the sentinel line is missing.
    """
    lines = text.splitlines()
    try:
        start = lines.index(SENTINEL)
    except ValueError:
        raise ParseError(f"Failed to find separator in {what}") from None
    return [line for line in lines[start + 1:] if line.strip()]


def parse_versions_listing(text: str) -> Dict[str, str]:
    """
    Parse a ``/versions`` body into ``{name: info_checksum}``.

    The first token of each line is the gem name, the last is its info
    checksum. If a name repeats, the last occurrence wins.
    """
    checksums: Dict[str, str] = {}
    for line in body_lines(text, "versions"):
        parts = line.split()
        if len(parts) < 2:
            raise ParseError(f"Invalid versions line: {line!r}")
        checksums[parts[0]] = parts[-1]
    return checksums


def parse_info_line(name: str, line: str) -> Gem:
    """
    Parse one ``/info/{name}`` line: ``<version>[-<platform>] <deps>|<metadata>``.

    Returns an unstored Gem whose package integrity comes from the
    ``checksum`` metadata entry (hex SHA-256).
    """
    version_token, sep, rest = line.partition(" ")
    if not sep:
        raise ParseError(f"Invalid line format for {name}: missing space in {line!r}")
    _deps, sep, metadata = rest.partition("|")
    if not sep:
        raise ParseError(f"Invalid line format for {name}: missing '|' in {line!r}")

    version, sep, platform = version_token.partition("-")
    if not sep:
        platform = DEFAULT_PLATFORM

    checksum = None
    for item in metadata.split(","):
        key, _, value = item.partition(":")
        if key.strip() == CHECKSUM_KEY:
            checksum = value.strip()
    if not checksum:
        raise ParseError(f"No checksum for {name} {version_token}")

    try:
        package_integrity = Integrity.from_hex(checksum, "sha256")
    except InvalidIntegrityFormat as e:
        raise ParseError(f"Invalid checksum for {name} {version_token}: {e}") from e

    return Gem(
        full_name=Gem.compose_full_name(name, version, platform),
        name=name,
        version=version,
        platform=platform,
        package_integrity=package_integrity,
    )


def parse_info_page(name: str, text: str) -> Dict[str, Gem]:
    """Parse an ``/info/{name}`` body into gems keyed by full_name."""
    gems: Dict[str, Gem] = {}
    for line in body_lines(text, f"info for {name}"):
        gem = parse_info_line(name, line)
        gems[gem.full_name] = gem
    logger.debug(f"Parsed {len(gems)} versions for {name}")
    return gems


def normalize_etag(etag: str) -> str:
    """Strip a leading weak-validator marker and surrounding quotes."""
    if etag.startswith("W/"):
        etag = etag[2:]
    return etag.strip('"')


def info_checksums_match(local: str, listed: str) -> bool:
    """
    Compare a locally recorded info checksum with the one from ``/versions``.

    Older manifests recorded the raw quoted ETag, so a quoted local value also
    matches its unquoted form. This is deliberately limited to this one field.
    """
    if local == listed:
        return True
    return len(local) >= 2 and local.startswith('"') and local.endswith('"') and local[1:-1] == listed
