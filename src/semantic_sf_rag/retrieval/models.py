"""Domain models for stored chunks, search results and source tracking."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

SUPPORTED_OPERATORS = ("eq", "ne", "in", "nin")


class ChunkRecord(BaseModel):
    """An enriched chunk and its embedding, ready to be written to a store."""

    source: str
    text: str
    embedding: list[float]


class SourceSummary(BaseModel):
    """A distinct source in the store and how many chunks it contributed."""

    source: str
    chunk_count: int


class MetadataFilter(BaseModel):
    """Declarative filter on chunk metadata.

    Attributes
    ----------
    field:
        The metadata key to filter on.  Only ``"source"`` is stored by
        every backend.
    operator:
        One of ``eq``, ``ne``, ``in``, ``nin``.
    value:
        The value (or list of values for ``in`` / ``nin``) to compare against.
    """

    field: str = "source"
    operator: str = "eq"
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)

    @classmethod
    def not_equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="ne", value=value)

    @classmethod
    def one_of(cls, field: str, values: list[Any]) -> MetadataFilter:
        return cls(field=field, operator="in", value=values)


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its source.

    Attributes
    ----------
    document_id:
        The store's identifier for the chunk (row id or Chroma id).
    source:
        Page URL or logical ``file://`` URI the chunk came from.
    distance:
        Cosine distance between query and chunk (lower = closer).
    score:
        ``1 - distance``.
    retrieved_at:
        UTC timestamp of when the retrieval happened.
    """

    document_id: str | None = None
    source: str = "unknown"
    distance: float | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    retrieved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def short_ref(self) -> str:
        ref = self.document_id if self.document_id is not None else "?"
        return f"[{self.source}#{ref}]"


class RetrievalResult(BaseModel):
    """A single retrieved chunk together with its citation."""

    content: str
    citation: Citation

    @property
    def similarity_percent(self) -> float:
        if self.citation.score is None:
            return 0.0
        return self.citation.score * 100

    def __str__(self) -> str:  # noqa: D105
        return f"{self.citation.short_ref()} {self.content[:120]}…"
