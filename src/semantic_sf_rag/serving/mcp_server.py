"""MCP server exposing semantic search over the local docs store on stdio.

Run with ``sf-docs-rag-mcp`` (or ``sf-docs-rag serve``) and register the
command with any MCP-capable client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import BaseModel, Field

from semantic_sf_rag.config import settings
from semantic_sf_rag.retrieval.models import RetrievalResult, SourceSummary
from semantic_sf_rag.retrieval.retriever import SemanticRetriever, describe_store_location

logger = logging.getLogger(__name__)

SERVER_NAME = "semantic-sf-rag"
SERVER_VERSION = "1.0.0"

SEARCH_TOOL = "semantic_search_docs"
LIST_SOURCES_TOOL = "list_sources"
DELETE_SOURCE_TOOL = "delete_source"

SEARCH_DESCRIPTION = (
    "Search the local Salesforce documentation vector database using semantic "
    "similarity (not keyword matching). This tool is provided by the "
    "'semantic-sf-docs-rag-mcp' MCP server. Use it to find 'how to' guides, "
    "architecture docs, permission sets, APIs, and configuration steps — even "
    "when you don't know the exact keywords. Searches are local, private, and "
    "require no API calls."
)


# ── Tool arguments ────────────────────────────────────────────────────
class SearchDocsArgs(BaseModel):
    """Arguments of ``semantic_search_docs``."""

    query: str = Field(
        min_length=1,
        max_length=1000,
        description="The natural language question to search relevant documents for.",
    )
    k: int = Field(default=5, ge=1, le=20, description="Number of results to return.")


class DeleteSourceArgs(BaseModel):
    """Arguments of ``delete_source``."""

    source: str = Field(min_length=1, description="Exact source URL or URI to remove.")


# ── Formatting ────────────────────────────────────────────────────────
def format_results(query: str, results: list[RetrievalResult]) -> str:
    """Render hits as the markdown document returned to the client."""
    lines = [f'# Semantic Search Results for "{query}"\n\n']
    for i, result in enumerate(results, start=1):
        lines.append(f"## Result {i} (Similarity: {result.similarity_percent:.1f}%)\n")
        lines.append(f"**Source**: {result.citation.source}\n\n")
        lines.append(f"{result.content}\n\n---\n")
    return "".join(lines)


def format_no_results(query: str, location: str) -> str:
    return (
        f'No results found for "{query}".\n\n'
        f"**Database path checked**: `{location}`\n\n"
        "**If the database is empty**, build it by running one of these from the repo directory:\n"
        "- `sf-docs-rag ingest-pdfs` — embed local PDFs from `./pdfs/`\n"
        "- `sf-docs-rag ingest-url <url>` — scrape a Salesforce Help URL\n"
        "- `sf-docs-rag migrate-legacy` — migrate from a legacy private-sf-doc-kb database\n\n"
        "Or clone the private repo which includes the pre-built database."
    )


def format_error(message: str, location: str) -> str:
    return (
        f"**[{SERVER_NAME}] Error**: {message}\n\n"
        f"Database path: `{location}`\n\n"
        "If you see a SQLite error, the database may be missing or corrupt. "
        "Check the server logs for startup warnings."
    )


def format_sources(sources: list[SourceSummary]) -> str:
    if not sources:
        return "The database contains no sources yet."
    total = sum(s.chunk_count for s in sources)
    lines = [f"# Indexed sources ({len(sources)} sources, {total} chunks)\n"]
    lines.extend(f"- {s.source} ({s.chunk_count} chunks)" for s in sources)
    return "\n".join(lines)


# ── Tool handlers ─────────────────────────────────────────────────────
class DocsSearchTools:
    """Tool implementations behind the MCP server.

    The retriever is created lazily by :meth:`load` so that tests can pass
    one backed by a fake store and embedder.
    """

    def __init__(self, retriever: SemanticRetriever | None = None) -> None:
        self.retriever = retriever
        self.ready = retriever is not None

    def load(self) -> None:
        """Open the store and warm up the embedding model (called once at startup)."""
        from semantic_sf_rag.ingestion.embedder import warm_up

        if self.retriever is None:
            self.retriever = SemanticRetriever()
        logger.info("Warming up %s model...", settings.embedding_model)
        dim = warm_up(self.retriever.embedder)
        logger.info("Model loaded (%d dimensions). Server is ready.", dim)
        self.ready = True

    def _retriever(self) -> SemanticRetriever:
        if self.retriever is None:
            self.load()
        return self.retriever

    def search(self, arguments: dict[str, Any] | None) -> str:
        args = SearchDocsArgs.model_validate(arguments or {})
        results = self._retriever().search(args.query, k=args.k)
        if not results:
            return format_no_results(args.query, describe_store_location())
        return format_results(args.query, results)

    def list_sources(self, arguments: dict[str, Any] | None = None) -> str:
        return format_sources(self._retriever().store.list_sources())

    def delete_source(self, arguments: dict[str, Any] | None) -> str:
        args = DeleteSourceArgs.model_validate(arguments or {})
        removed = self._retriever().store.delete_source(args.source)
        logger.info("Deleted %d chunks for %s", removed, args.source)
        if not removed:
            return f"No chunks found for source `{args.source}`."
        return f"Deleted {removed} chunks for source `{args.source}`."

    def call(self, name: str, arguments: dict[str, Any] | None) -> str:
        """Dispatch a tool call; failures are re-raised with the user-facing text."""
        handlers = {
            SEARCH_TOOL: self.search,
            LIST_SOURCES_TOOL: self.list_sources,
            DELETE_SOURCE_TOOL: self.delete_source,
        }
        handler = handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")
        try:
            return handler(arguments)
        except Exception as exc:
            logger.exception("Tool %s failed", name)
            raise RuntimeError(format_error(str(exc), describe_store_location())) from exc


def tool_definitions() -> list[types.Tool]:
    return [
        types.Tool(
            name=SEARCH_TOOL,
            description=SEARCH_DESCRIPTION,
            inputSchema=SearchDocsArgs.model_json_schema(),
        ),
        types.Tool(
            name=LIST_SOURCES_TOOL,
            description="List every documentation source in the local vector database with its chunk count.",
            inputSchema={"type": "object", "properties": {}},
        ),
        types.Tool(
            name=DELETE_SOURCE_TOOL,
            description="Remove all chunks of one source (URL or file URI) from the local vector database.",
            inputSchema=DeleteSourceArgs.model_json_schema(),
        ),
    ]


def build_server(tools: DocsSearchTools | None = None) -> Server:
    """Wire :class:`DocsSearchTools` into an MCP low-level server."""
    tools = tools or DocsSearchTools()
    server = Server(SERVER_NAME, version=SERVER_VERSION)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tool_definitions()

    # Arguments are validated by SearchDocsArgs so failures carry the database path.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        logger.info("Invoking tool %s", name)
        # Exceptions become isError results carrying the message text.
        text = await asyncio.to_thread(tools.call, name, arguments)
        return [types.TextContent(type="text", text=text)]

    return server


async def serve(tools: DocsSearchTools | None = None) -> None:
    logger.info("Starting server...")
    tools = tools or DocsSearchTools()
    tools.load()
    server = build_server(tools)
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Listening on stdio transport.")
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    """Console entry point for ``sf-docs-rag-mcp``."""
    from semantic_sf_rag.cli import setup_logging

    setup_logging()
    asyncio.run(serve())


if __name__ == "__main__":
    main()
