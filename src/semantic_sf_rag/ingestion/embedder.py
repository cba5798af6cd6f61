"""Sentence-embedding model access."""

from __future__ import annotations

import logging
from functools import lru_cache

from langchain_core.embeddings import Embeddings
from langchain_huggingface import HuggingFaceEmbeddings

from semantic_sf_rag.config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_embedding_function() -> HuggingFaceEmbeddings:
    """Return the configured sentence-transformer, loading it once per process.

    Embeddings are mean-pooled and L2-normalised, so cosine distance
    between stored vectors is meaningful.
    """
    logger.info("Loading embedding model %s", settings.embedding_model)
    settings.model_cache_dir.mkdir(parents=True, exist_ok=True)
    return HuggingFaceEmbeddings(
        model_name=settings.embedding_model,
        cache_folder=str(settings.model_cache_dir),
        encode_kwargs={"normalize_embeddings": True},
    )


def _check_dim(vector: list[float]) -> list[float]:
    if len(vector) != settings.embedding_dim:
        raise ValueError(f"Expected {settings.embedding_dim} dimensions, got {len(vector)}")
    return vector


def embed_texts(texts: list[str], embedder: Embeddings | None = None) -> list[list[float]]:
    """Embed a batch of chunk texts."""
    if not texts:
        return []
    embedder = embedder or get_embedding_function()
    return [_check_dim(list(v)) for v in embedder.embed_documents(texts)]


def embed_query(text: str, embedder: Embeddings | None = None) -> list[float]:
    """Embed a search query."""
    embedder = embedder or get_embedding_function()
    return _check_dim(list(embedder.embed_query(text)))


def warm_up(embedder: Embeddings | None = None) -> int:
    """Load the model (downloading it on first use) and return its vector size."""
    return len(embed_query("test", embedder))
