"""Unit tests for the MCP tool layer."""

from __future__ import annotations

import asyncio

import mcp.types as types
import pytest

from semantic_sf_rag.retrieval.models import ChunkRecord, Citation, RetrievalResult, SourceSummary
from semantic_sf_rag.retrieval.retriever import SemanticRetriever, describe_store_location
from semantic_sf_rag.serving.mcp_server import (
    SEARCH_TOOL,
    SERVER_NAME,
    DocsSearchTools,
    build_server,
    format_error,
    format_no_results,
    format_results,
    format_sources,
    tool_definitions,
)


@pytest.fixture()
def tools(memory_store, fake_embedder) -> DocsSearchTools:
    texts = {
        "https://help.salesforce.com/flows": "Source: Flows\nURL: https://help.salesforce.com/flows\n\nFlows automate.",
        "file://offline/apex.pdf": "Source: apex\nURL: file://offline/apex.pdf\n\nApex triggers.",
    }
    memory_store.add_chunks(
        [
            ChunkRecord(source=src, text=text, embedding=fake_embedder.embed_query(text))
            for src, text in texts.items()
        ]
    )
    return DocsSearchTools(SemanticRetriever(store=memory_store, embedder=fake_embedder))


# ── Formatting ──────────────────────────────────────────────────────────


def test_format_results_layout() -> None:
    results = [
        RetrievalResult(content="chunk one", citation=Citation(source="https://a", score=0.877)),
        RetrievalResult(content="chunk two", citation=Citation(source="file://offline/b.pdf", score=0.5)),
    ]
    assert format_results("permission sets", results) == (
        '# Semantic Search Results for "permission sets"\n\n'
        "## Result 1 (Similarity: 87.7%)\n"
        "**Source**: https://a\n\n"
        "chunk one\n\n---\n"
        "## Result 2 (Similarity: 50.0%)\n"
        "**Source**: file://offline/b.pdf\n\n"
        "chunk two\n\n---\n"
    )


def test_format_no_results_names_location_and_commands() -> None:
    text = format_no_results("flows", "data/rag.sqlite")
    assert text.startswith('No results found for "flows".')
    assert "`data/rag.sqlite`" in text
    assert "sf-docs-rag ingest-pdfs" in text


def test_format_error() -> None:
    text = format_error("no such table: chunks", "data/rag.sqlite")
    assert text.startswith("**[semantic-sf-rag] Error**: no such table: chunks")
    assert "Database path: `data/rag.sqlite`" in text


def test_format_sources() -> None:
    text = format_sources([SourceSummary(source="a", chunk_count=2), SourceSummary(source="b", chunk_count=1)])
    assert text.splitlines() == ["# Indexed sources (2 sources, 3 chunks)", "", "- a (2 chunks)", "- b (1 chunks)"]
    assert format_sources([]) == "The database contains no sources yet."


# ── Tool handlers ───────────────────────────────────────────────────────


class TestDocsSearchTools:
    def test_search(self, tools: DocsSearchTools) -> None:
        text = tools.call(SEARCH_TOOL, {"query": "Flows automate.", "k": 1})
        assert text.startswith('# Semantic Search Results for "Flows automate."\n\n## Result 1 (Similarity: ')
        assert text.count("## Result") == 1

    def test_default_k(self, tools: DocsSearchTools) -> None:
        assert tools.call(SEARCH_TOOL, {"query": "anything"}).count("## Result") == 2

    def test_empty_store(self, memory_store, fake_embedder) -> None:
        empty = DocsSearchTools(SemanticRetriever(store=memory_store, embedder=fake_embedder))
        text = empty.call(SEARCH_TOOL, {"query": "flows"})
        assert text.startswith('No results found for "flows".')
        assert describe_store_location() in text

    @pytest.mark.parametrize(
        "arguments",
        [{"query": ""}, {"query": "x" * 1001}, {"query": "ok", "k": 0}, {"query": "ok", "k": 21}, {}],
    )
    def test_invalid_arguments(self, tools: DocsSearchTools, arguments: dict) -> None:
        with pytest.raises(RuntimeError, match=r"\*\*\[semantic-sf-rag\] Error\*\*"):
            tools.call(SEARCH_TOOL, arguments)

    def test_store_failure_mentions_database(self, tools: DocsSearchTools, monkeypatch) -> None:
        def _boom(*args, **kwargs):
            raise RuntimeError("database disk image is malformed")

        monkeypatch.setattr(tools.retriever.store, "similarity_search", _boom)
        with pytest.raises(RuntimeError) as excinfo:
            tools.call(SEARCH_TOOL, {"query": "flows"})
        assert "database disk image is malformed" in str(excinfo.value)
        assert "Database path" in str(excinfo.value)

    def test_unknown_tool(self, tools: DocsSearchTools) -> None:
        with pytest.raises(ValueError, match="Unknown tool: summarize"):
            tools.call("summarize", {})

    def test_list_and_delete_sources(self, tools: DocsSearchTools) -> None:
        assert "- file://offline/apex.pdf (1 chunks)" in tools.call("list_sources", {})
        assert tools.call("delete_source", {"source": "file://offline/apex.pdf"}) == (
            "Deleted 1 chunks for source `file://offline/apex.pdf`."
        )
        assert "No chunks found" in tools.call("delete_source", {"source": "file://offline/apex.pdf"})

    def test_load_warms_up_injected_embedder(self, tools: DocsSearchTools) -> None:
        tools.load()
        assert tools.ready


def test_tool_definitions() -> None:
    defs = {t.name: t for t in tool_definitions()}
    assert set(defs) == {"semantic_search_docs", "list_sources", "delete_source"}
    schema = defs["semantic_search_docs"].inputSchema
    assert schema["required"] == ["query"]
    assert schema["properties"]["k"]["maximum"] == 20
    assert "semantic similarity" in defs["semantic_search_docs"].description


# ── Protocol wiring ─────────────────────────────────────────────────────


def _call(server, name: str, arguments: dict) -> types.CallToolResult:
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    result = asyncio.run(server.request_handlers[types.CallToolRequest](request))
    return result.root


class TestServerWiring:
    def test_identity(self, tools: DocsSearchTools) -> None:
        server = build_server(tools)
        assert server.name == SERVER_NAME
        assert server.version == "1.0.0"

    def test_call_tool_returns_markdown(self, tools: DocsSearchTools) -> None:
        result = _call(build_server(tools), SEARCH_TOOL, {"query": "Apex triggers.", "k": 1})
        assert not result.isError
        assert result.content[0].text.startswith('# Semantic Search Results for "Apex triggers."')

    def test_unknown_tool_is_error_result(self, tools: DocsSearchTools) -> None:
        result = _call(build_server(tools), "summarize", {})
        assert result.isError
        assert "Unknown tool: summarize" in result.content[0].text

    @pytest.mark.parametrize("arguments", [{"query": "ok", "k": 50}, {"query": ""}])
    def test_invalid_arguments_carry_database_path(self, tools: DocsSearchTools, arguments: dict) -> None:
        result = _call(build_server(tools), SEARCH_TOOL, arguments)
        assert result.isError
        text = result.content[0].text
        assert text.startswith("**[semantic-sf-rag] Error**")
        assert f"Database path: `{describe_store_location()}`" in text
