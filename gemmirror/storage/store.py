from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List

from gemmirror.domain.errors import MirrorError
from gemmirror.domain.integrity import Integrity
from gemmirror.domain.models import Index, normalize_source

IndexMutation = Callable[[List[Index]], None]


class Store(ABC):
    """
    Abstract base class for index metadata and content-addressed blob storage.
    """

    @abstractmethod
    def list_indices(self) -> List[Index]:
        """Return the persisted indices, or an empty list if none exist yet."""
        pass

    @abstractmethod
    def store_blob(self, data: bytes) -> Integrity:
        """Write ``data`` keyed by its integrity. Writing identical bytes again is a no-op."""
        pass

    @abstractmethod
    def get_blob(self, integrity: Integrity) -> bytes:
        """
        Read a blob and re-verify it against ``integrity``.

        Raises BlobNotFound if absent and IntegrityMismatch if the stored bytes
        no longer hash to ``integrity``.
        """
        pass

    def has_blob(self, integrity: Integrity) -> bool:
        """Existence probe; never raises for a missing or corrupt blob."""
        try:
            self.get_blob(integrity)
        except MirrorError:
            return False
        return True

    @abstractmethod
    def mutate_indices(self, mutate: IndexMutation) -> List[Index]:
        """
        Load the indices, let ``mutate`` change them in place and persist the
        result only if ``mutate`` returns without raising.

        Blobs written by ``mutate`` are not rolled back.
        """
        pass

    def add_index(self, source: str) -> List[Index]:
        """Add a source to mirror. No-op if it is already present."""
        source = normalize_source(source)

        def _add(indices: List[Index]) -> None:
            if any(normalize_source(index.source) == source for index in indices):
                return
            indices.append(Index(source=source))

        return self.mutate_indices(_add)
