"""End-to-end ingestion: fetch → extract → chunk → embed → insert.

Every entry point accepts an optional ``store`` and ``embedder`` so the
same flow runs against the configured backend in production and against
fakes in tests.
"""

from __future__ import annotations

import logging
import sqlite3
import tempfile
import time
from pathlib import Path

import requests
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from pydantic import BaseModel, Field

from semantic_sf_rag.config import settings
from semantic_sf_rag.ingestion import IngestionError
from semantic_sf_rag.ingestion.catalog import OFFICIAL_PDFS
from semantic_sf_rag.ingestion.chunker import chunk_document, enrich_chunk
from semantic_sf_rag.ingestion.embedder import embed_query, embed_texts
from semantic_sf_rag.ingestion.loader import (
    list_pdfs,
    load_legacy_chunks,
    load_pdf_text,
    offline_uri,
    official_uri,
    pdf_title,
)
from semantic_sf_rag.retrieval.base import VectorStoreBase
from semantic_sf_rag.retrieval.models import ChunkRecord
from semantic_sf_rag.retrieval.retriever import get_vector_store
from semantic_sf_rag.scraping.browser import close_browser
from semantic_sf_rag.scraping.http import build_session, fetch_html, fetch_pdf_bytes
from semantic_sf_rag.scraping.markdown import html_to_text, page_title
from semantic_sf_rag.scraping.models import ScrapedPage
from semantic_sf_rag.scraping.scraper import crawl, scrape_page

logger = logging.getLogger(__name__)

MIN_HTML_TEXT_CHARS = 200
MIN_PDF_TEXT_CHARS = 100
VERIFY_SENTENCE = "Salesforce provides an innovative CRM platform."
VERIFY_SOURCE = "test_source"


class IngestReport(BaseModel):
    """Outcome of ingesting one source."""

    source: str
    title: str = ""
    chunks: int = 0
    skipped: bool = False
    top_match: str | None = None


class BatchReport(BaseModel):
    """Outcome of a multi-source ingestion run."""

    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    chunks: int = 0
    failures: list[str] = Field(default_factory=list)
    elapsed_seconds: float = 0.0
    total_chunks: int = 0
    total_sources: int = 0

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    def record_failure(self, item: str, exc: Exception | str) -> None:
        self.failed += 1
        self.failures.append(f"{item}: {exc}")


# ---------------------------------------------------------------------------
# Core steps
# ---------------------------------------------------------------------------


def embed_and_store(
    documents: list[Document],
    store: VectorStoreBase,
    embedder: Embeddings | None = None,
) -> int:
    """Embed enriched chunks and write them to *store* in one batch."""
    if not documents:
        return 0
    embeddings = embed_texts([d.page_content for d in documents], embedder)
    records = [
        ChunkRecord(source=d.metadata["source"], text=d.page_content, embedding=e)
        for d, e in zip(documents, embeddings)
    ]
    return store.add_chunks(records)


def ingest_document(
    text: str,
    *,
    title: str,
    source: str,
    store: VectorStoreBase,
    embedder: Embeddings | None = None,
    strategy: str = "markdown",
) -> IngestReport:
    """Chunk, embed and insert one document's text."""
    documents = chunk_document(text, title=title, source=source, strategy=strategy)
    logger.info("Produced %d chunks for %s", len(documents), source)
    written = embed_and_store(documents, store, embedder)
    return IngestReport(source=source, title=title, chunks=written)


def _refresh_report(report: BatchReport, store: VectorStoreBase, started: float) -> BatchReport:
    report.elapsed_seconds = time.monotonic() - started
    report.total_chunks = store.count()
    report.total_sources = len(store.list_sources())
    return report


def _skip_or_replace(store: VectorStoreBase, source: str, force: bool) -> bool:
    """Return ``True`` when *source* is already indexed and should be skipped."""
    if not store.has_source(source):
        return False
    if force:
        removed = store.delete_source(source)
        logger.info("Removed %d existing chunks for %s before re-indexing", removed, source)
        return False
    logger.warning("Already indexed — source: %s (use --force to re-index)", source)
    return True


# ---------------------------------------------------------------------------
# Web pages
# ---------------------------------------------------------------------------


def ingest_scraped_page(
    page: ScrapedPage,
    store: VectorStoreBase | None = None,
    embedder: Embeddings | None = None,
    *,
    strategy: str = "markdown",
) -> IngestReport:
    """Index a successfully scraped page under its URL.

    Raises
    ------
    IngestionError
        When the page carries an error or no Markdown.
    """
    if not page.ok:
        raise IngestionError(f"Scraping failed for {page.url}: {page.error or 'No markdown extracted'}")
    store = store or get_vector_store()
    logger.info("Scraped successfully. Title: %r (%d chars)", page.title, len(page.markdown))
    return ingest_document(
        page.markdown,
        title=page.title,
        source=page.url,
        store=store,
        embedder=embedder,
        strategy=strategy,
    )


def ingest_url(
    url: str,
    *,
    mode: str = "browser",
    force: bool = False,
    store: VectorStoreBase | None = None,
    embedder: Embeddings | None = None,
    session: requests.Session | None = None,
) -> IngestReport:
    """Fetch one documentation URL and index it.

    Parameters
    ----------
    mode:
        ``"browser"`` — Aura fast path / PDF / headless Chrome, paragraph chunks.
        ``"http"`` — plain GET + tag stripping, sliding-window chunks.
    force:
        Re-index a source that is already present instead of skipping it.
    """
    store = store or get_vector_store()
    if _skip_or_replace(store, url, force):
        return IngestReport(source=url, skipped=True)

    if mode == "browser":
        logger.info("Scraping URL: %s", url)
        try:
            page = scrape_page(url, session=session)
        finally:
            close_browser()
        report = ingest_scraped_page(page, store, embedder)
        report.top_match = _verify_retrieval(report.title, store, embedder)
        return report

    if mode == "http":
        logger.info("Fetching URL: %s", url)
        try:
            html = fetch_html(url, session=session)
        except RuntimeError as exc:
            raise IngestionError(str(exc)) from exc
        text = html_to_text(html)
        if len(text) < MIN_HTML_TEXT_CHARS:
            raise IngestionError(
                "Very little text extracted — page may require JavaScript. Try a PDF instead."
            )
        logger.info("%d chars extracted", len(text))
        return ingest_document(
            text,
            title=page_title(html, url),
            source=url,
            store=store,
            embedder=embedder,
            strategy="window",
        )

    raise ValueError(f"Unsupported mode={mode!r}. Choose from: browser, http.")


def _verify_retrieval(title: str, store: VectorStoreBase, embedder: Embeddings | None) -> str | None:
    """Query the store with the page title and report the closest source."""
    hits = store.similarity_search(embed_query(title, embedder), k=1)
    if not hits:
        logger.warning("Verification query for %r returned nothing", title)
        return None
    top = hits[0]
    logger.info(
        "Verification: top match for %r is %s (distance %.4f)",
        title,
        top["metadata"].get("source"),
        top["distance"],
    )
    return top["metadata"].get("source")


def crawl_and_ingest(
    start_url: str,
    *,
    base_domain: str | None = None,
    max_depth: int = 1,
    max_pages: int = 50,
    force: bool = False,
    store: VectorStoreBase | None = None,
    embedder: Embeddings | None = None,
) -> BatchReport:
    """Breadth-first crawl from *start_url*, indexing every page that scrapes cleanly."""
    store = store or get_vector_store()
    report = BatchReport()
    started = time.monotonic()
    try:
        for _depth, page in crawl(start_url, base_domain, max_depth=max_depth, max_pages=max_pages):
            if not page.ok:
                logger.error("✗ %s: %s", page.url, page.error or "No content")
                report.record_failure(page.url, page.error or "No content")
                continue
            if _skip_or_replace(store, page.url, force):
                report.skipped += 1
                continue
            try:
                result = ingest_scraped_page(page, store, embedder)
            except Exception as exc:
                logger.error("✗ %s: %s", page.url, exc)
                report.record_failure(page.url, exc)
                continue
            report.succeeded += 1
            report.chunks += result.chunks
    finally:
        close_browser()
    return _refresh_report(report, store, started)


# ---------------------------------------------------------------------------
# PDFs
# ---------------------------------------------------------------------------


def ingest_pdf_directory(
    directory: str | Path | None = None,
    *,
    strategy: str = "markdown",
    force: bool = False,
    store: VectorStoreBase | None = None,
    embedder: Embeddings | None = None,
) -> BatchReport:
    """Index every PDF dropped into *directory* (default ``settings.pdf_dir``)."""
    directory = Path(directory or settings.pdf_dir)
    started = time.monotonic()
    report = BatchReport()

    files = list_pdfs(directory)
    if not files:
        logger.info("No PDF files found in %s. Drop some files and retry.", directory)
        return report

    store = store or get_vector_store()
    logger.info("Found %d PDFs to process", len(files))
    for path in files:
        source = offline_uri(path.name)
        if _skip_or_replace(store, source, force):
            report.skipped += 1
            continue
        logger.info("Processing: %s", path.name)
        try:
            text = load_pdf_text(path)
            title = pdf_title(path.name)
            result = ingest_document(
                f"# {title}\n\n{text}",
                title=title,
                source=source,
                store=store,
                embedder=embedder,
                strategy=strategy,
            )
        except Exception as exc:
            logger.error("Failed to parse %s: %s", path.name, exc)
            report.record_failure(path.name, exc)
            continue
        logger.info("Indexed %s (%d chunks)", path.name, result.chunks)
        report.succeeded += 1
        report.chunks += result.chunks

    logger.info("Finished embedding %d/%d PDFs", report.succeeded, len(files))
    return _refresh_report(report, store, started)


def ingest_official_pdfs(
    filenames: tuple[str, ...] | list[str] = OFFICIAL_PDFS,
    *,
    base_url: str | None = None,
    store: VectorStoreBase | None = None,
    embedder: Embeddings | None = None,
    session: requests.Session | None = None,
) -> BatchReport:
    """Download the curated developer PDFs and index any not yet present."""
    base_url = (base_url or settings.official_pdf_base_url).rstrip("/")
    store = store or get_vector_store()
    session = session or build_session()
    started = time.monotonic()
    report = BatchReport()
    total = len(filenames)

    with tempfile.TemporaryDirectory(prefix="sf-docs-pdfs-") as tmp:
        for i, filename in enumerate(filenames, start=1):
            source = official_uri(filename)
            if store.has_source(source):
                logger.info("[%d/%d] Already indexed: %s", i, total, filename)
                report.skipped += 1
                continue

            tmp_path = Path(tmp) / filename
            logger.info("[%d/%d] Downloading: %s", i, total, filename)
            try:
                tmp_path.write_bytes(fetch_pdf_bytes(f"{base_url}/{filename}", session=session))
                logger.info("   %.1f MB", tmp_path.stat().st_size / 1024 / 1024)
                text = load_pdf_text(tmp_path)
                if len(text) < MIN_PDF_TEXT_CHARS:
                    logger.warning("   Very little text extracted — skipping %s", filename)
                    report.record_failure(filename, "too little text")
                    continue
                result = ingest_document(
                    text,
                    title=pdf_title(filename),
                    source=source,
                    store=store,
                    embedder=embedder,
                    strategy="window",
                )
            except Exception as exc:
                logger.error("   %s failed: %s", filename, exc)
                report.record_failure(filename, exc)
                continue
            finally:
                tmp_path.unlink(missing_ok=True)
            logger.info("   Embedded %d chunks", result.chunks)
            report.succeeded += 1
            report.chunks += result.chunks

    return _refresh_report(report, store, started)


# ---------------------------------------------------------------------------
# Legacy knowledge base
# ---------------------------------------------------------------------------


def migrate_legacy(
    path: str | Path | None = None,
    *,
    store: VectorStoreBase | None = None,
    embedder: Embeddings | None = None,
) -> BatchReport:
    """Re-embed every chunk of a legacy ``documents``/``chunks`` database."""
    path = Path(path or settings.legacy_db_path)
    started = time.monotonic()
    report = BatchReport()

    logger.info("Connecting to legacy database %s", path)
    try:
        rows = load_legacy_chunks(path)
    except sqlite3.Error as exc:
        logger.error("Failed to open legacy database at %s: %s", path, exc)
        return report

    logger.info("Found %d existing legacy chunks", len(rows))
    if not rows:
        logger.info("Legacy database is empty.")
        return report

    store = store or get_vector_store()
    for i, row in enumerate(rows, start=1):
        logger.info("Migrating legacy chunk %d/%d: %r", i, len(rows), row.title)
        text = enrich_chunk(row.content, row.title, row.url)
        try:
            [embedding] = embed_texts([text], embedder)
            store.add_chunks([ChunkRecord(source=row.url, text=text, embedding=embedding)])
        except Exception as exc:
            logger.error("Failed to migrate %s: %s", row.url, exc)
            report.record_failure(row.url, exc)
            continue
        report.succeeded += 1
        report.chunks += 1

    logger.info("Migrated %d/%d legacy chunks", report.succeeded, len(rows))
    return _refresh_report(report, store, started)


# ---------------------------------------------------------------------------
# Smoke test
# ---------------------------------------------------------------------------


def verify_setup(
    store: VectorStoreBase | None = None,
    embedder: Embeddings | None = None,
    *,
    cleanup: bool = True,
) -> dict:
    """Embed, insert and query one sentence end to end; return the top hit.

    Raises
    ------
    ValueError
        When the model's vector size does not match ``settings.embedding_dim``.
    """
    store = store or get_vector_store()
    embedding = embed_query(VERIFY_SENTENCE, embedder)
    store.add_chunks([ChunkRecord(source=VERIFY_SOURCE, text=VERIFY_SENTENCE, embedding=embedding)])
    try:
        hits = store.similarity_search(embedding, k=1)
    finally:
        if cleanup:
            store.delete_source(VERIFY_SOURCE)
    if not hits:
        raise RuntimeError("Inserted a test chunk but the nearest-neighbour query returned nothing")
    return hits[0]
