"""Abstract vector storage interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..core.models import VectorEntry


class VectorStore(ABC):
    """Abstract base class for vector storage backends.

    The indexer is the only writer. ``insert`` is an upsert keyed by
    ``VectorEntry.id`` so re-indexing the same source is idempotent.
    """

    @abstractmethod
    def insert(self, entry: VectorEntry) -> None:
        """Insert or replace an entry."""
        pass

    @abstractmethod
    def get_all(self, source_file: Optional[str] = None) -> List[VectorEntry]:
        """Return stored entries, optionally only those of one source file."""
        pass

    @abstractmethod
    def delete(self, entry_id: str) -> None:
        pass

    @abstractmethod
    def rebuild(self) -> None:
        """Drop every entry ahead of a full re-index."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def search(self, embedding: List[float], limit: int) -> List[Tuple[float, VectorEntry]]:
        """Nearest entries as (similarity, entry), best first."""
        pass

    def close(self) -> None:
        """Release backend resources (default implementation does nothing)."""
