import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from gemmirror.domain.errors import BlobNotFound, StoreIOError
from gemmirror.domain.integrity import Integrity
from gemmirror.domain.models import Index, MirrorConfig
from gemmirror.storage.store import IndexMutation, Store

logger = logging.getLogger(__name__)

MANIFEST_NAME = "indices.json"
CONFIG_NAME = "mirror.json"
CONTENT_DIR = "content-v2"

_INDICES = TypeAdapter(List[Index])


def content_path(root: Path, integrity: Integrity) -> Path:
    """Blob location: ``<root>/content-v2/<algorithm>/<hex[:2]>/<hex[2:4]>/<hex[4:]>``."""
    algorithm, hex_digest = integrity.to_hex()
    return Path(root) / CONTENT_DIR / algorithm / hex_digest[0:2] / hex_digest[2:4] / hex_digest[4:]


def _atomic_write(path: Path, data: bytes) -> None:
    # Write to a sibling temp file first so a crash never leaves a truncated file behind.
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FsStore(Store):
    """Durable store: a JSON manifest plus a content-addressed blob tree on disk."""

    def __init__(self, root: Path):
        self._root = Path(root)
        self._config: Optional[MirrorConfig] = None

        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"Failed to create directory {self._root}: {e}") from e

    @property
    def root(self) -> Path:
        return self._root

    @property
    def manifest_path(self) -> Path:
        return self._root / MANIFEST_NAME

    def list_indices(self) -> List[Index]:
        path = self.manifest_path
        if not path.exists():
            return []
        try:
            return _INDICES.validate_json(path.read_bytes())
        except OSError as e:
            raise StoreIOError(f"Failed to read {path}: {e}") from e
        except ValidationError as e:
            raise StoreIOError(f"Failed to decode {path}: {e}") from e

    def store_blob(self, data: bytes) -> Integrity:
        integrity = Integrity.compute(data)
        path = content_path(self._root, integrity)
        if path.is_file() and self._blob_intact(path, integrity):
            return integrity
        try:
            _atomic_write(path, data)
        except OSError as e:
            raise StoreIOError(f"Failed to store blob {integrity}: {e}") from e
        logger.debug(f"Stored blob {integrity} ({len(data)} bytes)")
        return integrity

    def get_blob(self, integrity: Integrity) -> bytes:
        path = content_path(self._root, integrity)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise BlobNotFound(f"Blob not found: {integrity}") from None
        except OSError as e:
            raise StoreIOError(f"Failed to read blob {integrity}: {e}") from e
        integrity.verify(data)
        return data

    def has_blob(self, integrity: Integrity) -> bool:
        return content_path(self._root, integrity).is_file()

    def mutate_indices(self, mutate: IndexMutation) -> List[Index]:
        indices = self.list_indices()
        mutate(indices)
        self._write_manifest(indices)
        return indices

    def get_mirror_config(self) -> MirrorConfig:
        if self._config is None:
            self._config = self._load_mirror_config()
        return self._config

    def save_mirror_config(self, config: MirrorConfig) -> None:
        self._config = config
        path = self._root / CONFIG_NAME
        path.write_text(config.model_dump_json(indent=2), encoding="utf-8")

    def _blob_intact(self, path: Path, integrity: Integrity) -> bool:
        try:
            return integrity.matches(path.read_bytes())
        except OSError:
            return False

    def _write_manifest(self, indices: List[Index]) -> None:
        payload = [index.model_dump(mode="json") for index in indices]
        data = json.dumps(payload, indent=2, sort_keys=True).encode("utf-8")
        try:
            _atomic_write(self.manifest_path, data)
        except OSError as e:
            raise StoreIOError(f"Failed to write {self.manifest_path}: {e}") from e

    def _load_mirror_config(self) -> MirrorConfig:
        """
        Load mirror.json, filling in defaults for missing fields, and write it
        back so new fields are persisted.
        """
        path = self._root / CONFIG_NAME
        if path.exists():
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                config = MirrorConfig(**raw)
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Ignoring unreadable {path}: {e}")
                config = MirrorConfig()
        else:
            config = MirrorConfig()

        self.save_mirror_config(config)
        return config
