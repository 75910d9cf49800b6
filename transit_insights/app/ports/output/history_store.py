from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from transit_insights.domain.models import HistoryIndexEntry


class IHistoryStore(ABC):
    """Blob storage port for history entries and their index.

    Entry blobs are addressed by the `filename` of their index descriptor.
    Implementations raise `PersistenceError` on read/write failures.
    """

    @abstractmethod
    def list_index(self) -> list[HistoryIndexEntry]:
        """Return all descriptors in append order (empty if no index exists)."""

    @abstractmethod
    def append_index_entry(self, entry: HistoryIndexEntry) -> None:
        raise NotImplementedError

    @abstractmethod
    def prune_index(self, cutoff: int) -> list[HistoryIndexEntry]:
        """Drop descriptors older than `cutoff` from the index; return the dropped ones."""

    @abstractmethod
    def read_entry(self, reference: str) -> Mapping[str, Any] | None:
        """Return the decoded blob, or None if it does not exist."""

    @abstractmethod
    def write_entry(self, reference: str, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_entry(self, reference: str) -> bool:
        """Delete a blob; return False if it did not exist."""
