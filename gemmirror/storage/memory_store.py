import threading
from typing import Dict, List, Optional

from gemmirror.domain.errors import BlobNotFound
from gemmirror.domain.integrity import Integrity
from gemmirror.domain.models import Index
from gemmirror.storage.store import IndexMutation, Store


def _copy(indices: List[Index]) -> List[Index]:
    return [index.model_copy(deep=True) for index in indices]


class MemoryStore(Store):
    """In-process store for tests and composition. Nothing survives the process."""

    def __init__(self, indices: Optional[List[Index]] = None):
        self._indices: List[Index] = _copy(indices or [])
        self._blobs: Dict[Integrity, bytes] = {}
        self._lock = threading.Lock()

    def list_indices(self) -> List[Index]:
        return _copy(self._indices)

    def store_blob(self, data: bytes) -> Integrity:
        integrity = Integrity.compute(data)
        with self._lock:
            self._blobs.setdefault(integrity, bytes(data))
        return integrity

    def get_blob(self, integrity: Integrity) -> bytes:
        with self._lock:
            data = self._blobs.get(integrity)
        if data is None:
            raise BlobNotFound(f"Blob not found: {integrity}")
        integrity.verify(data)
        return data

    def has_blob(self, integrity: Integrity) -> bool:
        with self._lock:
            return integrity in self._blobs

    def mutate_indices(self, mutate: IndexMutation) -> List[Index]:
        working = _copy(self._indices)
        mutate(working)
        self._indices = working
        return _copy(working)

