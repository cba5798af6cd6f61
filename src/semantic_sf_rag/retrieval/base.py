"""Abstract base class for vector-store backends.

Adding a new backend only requires subclassing :class:`VectorStoreBase`
and implementing the abstract methods.  Ingestion and retrieval are
backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from semantic_sf_rag.retrieval.models import ChunkRecord, MetadataFilter, SourceSummary


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / table / database file.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def add_chunks(self, records: list[ChunkRecord]) -> int:
        """Insert *records* atomically and return how many were written."""
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        """Return the *k* chunks nearest to *query_embedding* by cosine distance.

        Each result dict **must** contain:

        * ``"id"`` – chunk identifier
        * ``"content"`` – the enriched chunk text
        * ``"distance"`` – cosine distance (ascending order)
        * ``"score"`` – ``1 - distance``
        * ``"metadata"`` – at least ``{"source": ...}``
        """
        ...

    @abstractmethod
    def delete_source(self, source: str) -> int:
        """Delete every chunk of *source*; return the number removed."""
        ...

    @abstractmethod
    def list_sources(self) -> list[SourceSummary]:
        """Return every distinct source with its chunk count, sorted by source."""
        ...

    @abstractmethod
    def count(self) -> int:
        """Total number of stored chunks."""
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- optional overrides ---------------------------------------------------

    def has_source(self, source: str) -> bool:
        return any(s.source == source for s in self.list_sources())

    def close(self) -> None:
        """Release backend resources.  No-op by default."""
