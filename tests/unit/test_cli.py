"""Unit tests for the ``sf-docs-rag`` command line."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock

import pytest

from semantic_sf_rag import cli
from semantic_sf_rag.ingestion import pipeline
from semantic_sf_rag.ingestion.pipeline import BatchReport, IngestionError, IngestReport
from semantic_sf_rag.retrieval import retriever as retriever_module
from semantic_sf_rag.retrieval.models import ChunkRecord
from semantic_sf_rag.retrieval.retriever import SemanticRetriever


@pytest.fixture()
def seeded_store(memory_store, fake_embedder, monkeypatch: pytest.MonkeyPatch):
    text = "Source: Flows\nURL: https://help.salesforce.com/flows\n\nFlows automate."
    memory_store.add_chunks(
        [ChunkRecord(source="https://help.salesforce.com/flows", text=text, embedding=fake_embedder.embed_query(text))]
    )
    monkeypatch.setattr(retriever_module, "get_vector_store", lambda backend=None: memory_store)
    monkeypatch.setattr(
        retriever_module,
        "SemanticRetriever",
        lambda: SemanticRetriever(store=memory_store, embedder=fake_embedder),
    )
    return memory_store


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == 1
    assert "sf-docs-rag" in capsys.readouterr().out


def test_parser_defaults() -> None:
    args = cli.build_parser().parse_args(["ingest-url", "https://help.salesforce.com/s/x"])
    assert args.mode == "browser"
    assert args.crawl_depth == 0
    assert not args.force


def test_search_prints_markdown(seeded_store, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["search", "how do flows work", "-k", "50"]) == 0
    out = capsys.readouterr().out
    assert out.startswith('# Semantic Search Results for "how do flows work"')
    assert "**Source**: https://help.salesforce.com/flows" in out


def test_sources_lists_store(seeded_store, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["sources"]) == 0
    assert "- https://help.salesforce.com/flows (1 chunks)" in capsys.readouterr().out


def test_delete_source(seeded_store) -> None:
    assert cli.main(["delete-source", "https://help.salesforce.com/flows"]) == 0
    assert seeded_store.count() == 0
    assert cli.main(["delete-source", "https://help.salesforce.com/flows"]) == 1


class TestIngestUrlCommand:
    def test_single_page(self, monkeypatch: pytest.MonkeyPatch) -> None:
        ingest = MagicMock(return_value=IngestReport(source="u", chunks=4))
        monkeypatch.setattr(pipeline, "ingest_url", ingest)
        assert cli.main(["ingest-url", "u", "--mode", "http", "--force"]) == 0
        ingest.assert_called_once_with("u", mode="http", force=True)

    def test_ingestion_error_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _fail(*args, **kwargs):
            raise IngestionError("Very little text extracted")

        monkeypatch.setattr(pipeline, "ingest_url", _fail)
        assert cli.main(["ingest-url", "u", "--mode", "http"]) == 1

    def test_crawl(self, monkeypatch: pytest.MonkeyPatch) -> None:
        crawl = MagicMock(return_value=BatchReport(succeeded=3, failed=1))
        monkeypatch.setattr(pipeline, "crawl_and_ingest", crawl)
        assert cli.main(["ingest-url", "https://ex.com/", "--crawl-depth", "2", "--max-pages", "10"]) == 0
        crawl.assert_called_once_with(
            "https://ex.com/", base_domain=None, max_depth=2, max_pages=10, force=False
        )

    def test_crawl_with_only_failures_exits_1(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(pipeline, "crawl_and_ingest", MagicMock(return_value=BatchReport(failed=2)))
        assert cli.main(["ingest-url", "https://ex.com/", "--crawl-depth", "1"]) == 1

    def test_http_mode_cannot_crawl(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["ingest-url", "https://ex.com/", "--mode", "http", "--crawl-depth", "1"])
        assert excinfo.value.code == 2
        assert "--crawl-depth" in capsys.readouterr().err


def test_batch_commands_delegate(monkeypatch: pytest.MonkeyPatch) -> None:
    pdfs = MagicMock(return_value=BatchReport(succeeded=1))
    official = MagicMock(return_value=BatchReport(skipped=70))
    legacy = MagicMock(return_value=BatchReport())
    monkeypatch.setattr(pipeline, "ingest_pdf_directory", pdfs)
    monkeypatch.setattr(pipeline, "ingest_official_pdfs", official)
    monkeypatch.setattr(pipeline, "migrate_legacy", legacy)

    assert cli.main(["ingest-pdfs", "my_pdfs", "--strategy", "window"]) == 0
    assert cli.main(["ingest-sfdc-pdfs"]) == 0
    assert cli.main(["migrate-legacy", "old.db"]) == 0

    pdfs.assert_called_once_with("my_pdfs", strategy="window", force=False)
    official.assert_called_once_with()
    legacy.assert_called_once_with("old.db")


def test_verify(monkeypatch: pytest.MonkeyPatch, memory_store, fake_embedder) -> None:
    real_verify = pipeline.verify_setup
    monkeypatch.setattr(pipeline, "verify_setup", lambda: real_verify(memory_store, fake_embedder))
    assert cli.main(["verify"]) == 0


def test_read_only_commands_skip_ingestion_stack(seeded_store, monkeypatch: pytest.MonkeyPatch) -> None:
    # A None entry makes any import of the module raise ImportError.
    monkeypatch.setitem(sys.modules, "semantic_sf_rag.ingestion.pipeline", None)
    assert cli.main(["sources"]) == 0
