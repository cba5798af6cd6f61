"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any
from uuid import uuid4

import chromadb

from semantic_sf_rag.config import settings
from semantic_sf_rag.retrieval.base import VectorStoreBase
from semantic_sf_rag.retrieval.models import ChunkRecord, MetadataFilter, SourceSummary

logger = logging.getLogger(__name__)

_OP_MAP = {
    "eq": "$eq",
    "ne": "$ne",
    "in": "$in",
    "nin": "$nin",
}


def _build_chroma_where(filters: list[MetadataFilter] | None) -> dict[str, Any] | None:
    """Translate source filters into a Chroma ``where`` document (``None`` when unfiltered)."""
    if not filters:
        return None
    clauses: list[dict[str, Any]] = []
    for f in filters:
        if f.operator not in _OP_MAP:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
        clauses.append({f.field: {_OP_MAP[f.operator]: f.value}})
    return clauses[0] if len(clauses) == 1 else {"$and": clauses}


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store using cosine space.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    path:
        Directory for a local persistent client (used when *host* is empty).
    host / port:
        Chroma server address for an HTTP client.
    client:
        Pre-built Chroma client (e.g. ``chromadb.EphemeralClient()`` in tests).
    """

    def __init__(
        self,
        collection_name: str | None = None,
        *,
        path: str | Path | None = None,
        host: str | None = None,
        port: int | None = None,
        client: Any = None,
    ) -> None:
        super().__init__(collection_name or settings.chroma_collection)
        host = settings.chroma_host if host is None else host
        if client is not None:
            self._client = client
        elif host:
            self._client = chromadb.HttpClient(host=host, port=port or settings.chroma_port)
            logger.info("Initialized Chroma HttpClient: %s:%s", host, port or settings.chroma_port)
        else:
            path = Path(path or settings.chroma_path)
            self._client = chromadb.PersistentClient(path=str(path))
            logger.info("Initialized Chroma PersistentClient at: %s", path)
        self._collection = self._client.get_or_create_collection(
            self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    # -- VectorStoreBase overrides --------------------------------------------

    def add_chunks(self, records: list[ChunkRecord]) -> int:
        if not records:
            return 0
        # Chroma rejects a single add() above the client's max batch size.
        batch_size = self._client.get_max_batch_size()
        for start in range(0, len(records), batch_size):
            batch = records[start : start + batch_size]
            self._collection.add(
                ids=[uuid4().hex for _ in batch],
                documents=[r.text for r in batch],
                embeddings=[r.embedding for r in batch],
                metadatas=[{"source": r.source} for r in batch],
            )
        return len(records)

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        response = self._collection.query(
            query_embeddings=[query_embedding],
            n_results=k,
            where=_build_chroma_where(filters),
            include=["documents", "metadatas", "distances"],
        )

        # query() returns one list per query embedding; we only send one.
        rows = zip(
            *((response.get(key) or [[]])[0] for key in ("ids", "documents", "metadatas", "distances"))
        )
        return [
            {
                "id": chunk_id,
                "content": text or "",
                "distance": float(distance),
                "score": 1.0 - float(distance),
                "metadata": meta or {"source": "unknown"},
            }
            for chunk_id, text, meta, distance in rows
        ]

    def delete_source(self, source: str) -> int:
        ids = self._collection.get(where={"source": source}, include=[])["ids"]
        if ids:
            self._collection.delete(ids=ids)
        return len(ids)

    def list_sources(self) -> list[SourceSummary]:
        metas = self._collection.get(include=["metadatas"])["metadatas"] or []
        counts = Counter((m or {}).get("source", "unknown") for m in metas)
        return [SourceSummary(source=s, chunk_count=n) for s, n in sorted(counts.items())]

    def has_source(self, source: str) -> bool:
        return bool(self._collection.get(where={"source": source}, limit=1, include=[])["ids"])

    def count(self) -> int:
        return self._collection.count()

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
        except Exception:
            logger.warning("Chroma heartbeat failed (collection %s)", self.collection_name, exc_info=True)
            return False
        return True
