"""
Retrieval — vector storage and nearest-neighbour search.

Public surface
--------------
- :class:`SemanticRetriever` — main entry point for search with citations.
- :class:`VectorStoreBase` — abstract backend.
- :class:`SqliteVecStore` — default single-file sqlite-vec backend.
- :class:`ChromaVectorStore` — Chroma backend.
- :func:`get_vector_store` — backend factory driven by settings.
- :class:`ChunkRecord`, :class:`Citation`, :class:`RetrievalResult`,
  :class:`MetadataFilter`, :class:`SourceSummary` — data models.
"""

from semantic_sf_rag.retrieval.base import VectorStoreBase
from semantic_sf_rag.retrieval.models import (
    ChunkRecord,
    Citation,
    MetadataFilter,
    RetrievalResult,
    SourceSummary,
)
from semantic_sf_rag.retrieval.retriever import SemanticRetriever, get_vector_store

__all__ = [
    "ChromaVectorStore",
    "ChunkRecord",
    "Citation",
    "MetadataFilter",
    "RetrievalResult",
    "SemanticRetriever",
    "SourceSummary",
    "SqliteVecStore",
    "VectorStoreBase",
    "get_vector_store",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import backends so chromadb / sqlite-vec load only when used."""
    if name == "ChromaVectorStore":
        from semantic_sf_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    if name == "SqliteVecStore":
        from semantic_sf_rag.retrieval.sqlite_store import SqliteVecStore

        return SqliteVecStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
