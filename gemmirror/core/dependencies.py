from pathlib import Path
from typing import Optional
import os

from gemmirror.storage.fs_store import FsStore

STORE_DIR_ENV_VAR = "GEMMIRROR_STORE_DIR"
_DEFAULT_STORE_DIR = Path("store")

_store_dir: Optional[Path] = None
_store: Optional[FsStore] = None


def get_store_dir() -> Path:
    """
    Determine the store directory.

    Priority:
    1. A directory set explicitly via set_store_dir() (the CLI's --store-path)
    2. Environment variable GEMMIRROR_STORE_DIR
    3. './store'
    """
    if _store_dir is not None:
        return _store_dir
    env_path = os.environ.get(STORE_DIR_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return _DEFAULT_STORE_DIR


def set_store_dir(path: Path) -> None:
    global _store_dir, _store
    _store_dir = Path(path).expanduser()
    _store = None


def get_store() -> FsStore:
    global _store
    if _store is None:
        _store = FsStore(get_store_dir())
    return _store
