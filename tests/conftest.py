"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import math
from collections import Counter
from typing import Any

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from semantic_sf_rag.retrieval.base import VectorStoreBase
from semantic_sf_rag.retrieval.models import ChunkRecord, MetadataFilter, SourceSummary


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── In-memory vector store ──────────────────────────────────────────────


def _cosine_distance(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return 1.0 - dot / norm if norm else 1.0


class InMemoryVectorStore(VectorStoreBase):
    """Brute-force cosine store used in place of a real backend."""

    def __init__(self) -> None:
        super().__init__("in-memory")
        self.rows: list[tuple[int, ChunkRecord]] = []
        self._next_id = 1

    def add_chunks(self, records: list[ChunkRecord]) -> int:
        for record in records:
            self.rows.append((self._next_id, record))
            self._next_id += 1
        return len(records)

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        scored = sorted(
            ((_cosine_distance(query_embedding, r.embedding), rowid, r) for rowid, r in self.rows),
            key=lambda item: item[0],
        )
        return [
            {
                "id": str(rowid),
                "content": r.text,
                "distance": dist,
                "score": 1.0 - dist,
                "metadata": {"source": r.source},
            }
            for dist, rowid, r in scored[:k]
        ]

    def delete_source(self, source: str) -> int:
        before = len(self.rows)
        self.rows = [(i, r) for i, r in self.rows if r.source != source]
        return before - len(self.rows)

    def list_sources(self) -> list[SourceSummary]:
        counts = Counter(r.source for _, r in self.rows)
        return [SourceSummary(source=s, chunk_count=n) for s, n in sorted(counts.items())]

    def count(self) -> int:
        return len(self.rows)

    def health_check(self) -> bool:
        return True

    def sources(self) -> list[str]:
        return [r.source for _, r in self.rows]


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture()
def fake_embedder() -> DeterministicFakeEmbedding:
    """384-dimensional embedder that returns the same vector for the same text."""
    return DeterministicFakeEmbedding(size=384)
