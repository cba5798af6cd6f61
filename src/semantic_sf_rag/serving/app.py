"""FastAPI application exposing semantic search as a REST API."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, FastAPI
from pydantic import BaseModel, Field

from semantic_sf_rag.retrieval.models import SourceSummary
from semantic_sf_rag.retrieval.retriever import SemanticRetriever

app = FastAPI(
    title="Semantic SF Docs RAG API",
    version="1.0.0",
    description="REST interface to the local Salesforce documentation vector store.",
)


@lru_cache(maxsize=1)
def get_retriever() -> SemanticRetriever:
    """Shared retriever over the configured store."""
    return SemanticRetriever()


# ── Request / Response schemas ────────────────────────────────────────
class SearchRequest(BaseModel):
    """Incoming question from the user."""

    query: str = Field(min_length=1, max_length=1000)
    k: int = Field(default=5, ge=1, le=20)


class SearchHit(BaseModel):
    """One ranked chunk."""

    source: str
    content: str
    distance: float | None = None
    similarity: float


class SearchResponse(BaseModel):
    """Hits returned for a query, closest first."""

    query: str
    results: list[SearchHit] = []


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/search", response_model=SearchResponse)
def search(request: SearchRequest, retriever: SemanticRetriever = Depends(get_retriever)) -> SearchResponse:
    """Embed the query and return the nearest chunks."""
    results = retriever.search(request.query, k=request.k)
    hits = [
        SearchHit(
            source=r.citation.source,
            content=r.content,
            distance=r.citation.distance,
            similarity=round(r.similarity_percent, 1),
        )
        for r in results
    ]
    return SearchResponse(query=request.query, results=hits)


@app.get("/sources", response_model=list[SourceSummary])
def sources(retriever: SemanticRetriever = Depends(get_retriever)) -> list[SourceSummary]:
    """Every indexed source with its chunk count."""
    return retriever.store.list_sources()
