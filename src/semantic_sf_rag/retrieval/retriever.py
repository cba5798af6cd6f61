"""Semantic retriever — embeds a query and ranks stored chunks with citations.

Usage::

    from semantic_sf_rag.retrieval.retriever import SemanticRetriever

    retriever = SemanticRetriever()
    for r in retriever.search("How do I create a permission set?", k=5):
        print(f"{r.similarity_percent:.1f}%", r.citation.source)
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.embeddings import Embeddings

from semantic_sf_rag.config import settings
from semantic_sf_rag.retrieval.base import VectorStoreBase
from semantic_sf_rag.retrieval.models import Citation, MetadataFilter, RetrievalResult

logger = logging.getLogger(__name__)


def get_vector_store(backend: str | None = None) -> VectorStoreBase:
    """Instantiate the configured backend (``"sqlite"`` or ``"chroma"``)."""
    backend = (backend or settings.vector_backend).lower()
    if backend == "sqlite":
        from semantic_sf_rag.retrieval.sqlite_store import SqliteVecStore

        return SqliteVecStore()
    if backend == "chroma":
        from semantic_sf_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore()
    raise ValueError(f"Unsupported vector backend {backend!r}. Choose from: sqlite, chroma.")


def describe_store_location() -> str:
    """Human-readable location of the configured store, for error messages."""
    if settings.vector_backend.lower() == "chroma":
        if settings.chroma_host:
            return f"chroma://{settings.chroma_host}:{settings.chroma_port}/{settings.chroma_collection}"
        return f"{settings.chroma_path} (collection {settings.chroma_collection})"
    return str(settings.db_path)


class SemanticRetriever:
    """High-level retriever that wraps any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.  When *None*, the configured
        backend is created from the global settings.
    embedder:
        Embedding model for queries; defaults to the shared sentence-transformer.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score.  When *None* (the default) the *k* nearest
        chunks are returned whatever their score.
    """

    def __init__(
        self,
        store: VectorStoreBase | None = None,
        *,
        embedder: Embeddings | None = None,
        default_k: int | None = None,
        score_threshold: float | None = None,
    ) -> None:
        self._store = store or get_vector_store()
        self._embedder = embedder
        self.default_k = default_k or settings.default_k
        self.score_threshold = score_threshold

    @property
    def store(self) -> VectorStoreBase:
        return self._store

    @property
    def embedder(self) -> Embeddings | None:
        return self._embedder

    # -- public API -----------------------------------------------------------

    def search(
        self,
        query: str,
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalResult]:
        """Embed *query* and return the nearest chunks, closest first."""
        from semantic_sf_rag.ingestion.embedder import embed_query

        logger.info("Embedding query: %r", query)
        embedding = embed_query(query, self._embedder)
        return self.search_by_embedding(embedding, k=k, filters=filters)

    def search_by_embedding(
        self,
        embedding: list[float],
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalResult]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        k = k or self.default_k
        logger.info("Searching for top %d closest chunks", k)
        raw_hits = self._store.similarity_search(embedding, k=k, filters=filters)
        return self._to_results(raw_hits)

    # -- internals ------------------------------------------------------------

    def _to_results(self, raw_hits: list[dict[str, Any]]) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in raw_hits:
            score = hit.get("score")
            threshold = self.score_threshold
            if threshold is not None and score is not None and score < threshold:
                continue

            meta = hit.get("metadata", {})
            citation = Citation(
                document_id=hit.get("id"),
                source=meta.get("source", "unknown"),
                distance=hit.get("distance"),
                score=score,
                metadata=meta,
            )
            results.append(RetrievalResult(content=hit.get("content", ""), citation=citation))
        return results
