"""Command-line interface for building and querying the docs store.

Usage::

    sf-docs-rag serve                         Run the MCP server on stdio
    sf-docs-rag ingest-url URL [--mode http]  Scrape one page (or crawl) and index it
    sf-docs-rag ingest-pdfs [DIR]             Index PDFs dropped into ./pdfs/
    sf-docs-rag ingest-sfdc-pdfs              Download and index official developer PDFs
    sf-docs-rag migrate-legacy [PATH]         Re-embed a legacy knowledge base
    sf-docs-rag download-model                Pre-download the embedding model
    sf-docs-rag verify                        End-to-end embed/insert/query smoke test
    sf-docs-rag search QUERY [-k N]           Query the store from the terminal
    sf-docs-rag sources                       List indexed sources
    sf-docs-rag delete-source SOURCE          Remove one source's chunks
"""

from __future__ import annotations

import argparse
import logging
import sys

from semantic_sf_rag.config import settings

logger = logging.getLogger("sf-docs-rag")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Send all logging to stderr; stdout is reserved for MCP traffic and results."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
#  Commands
# ---------------------------------------------------------------------------


def cmd_serve(args: argparse.Namespace) -> int:
    import asyncio

    from semantic_sf_rag.serving.mcp_server import serve

    asyncio.run(serve())
    return 0


def cmd_ingest_url(args: argparse.Namespace) -> int:
    from semantic_sf_rag.ingestion.pipeline import crawl_and_ingest, ingest_url

    if args.crawl_depth:
        report = crawl_and_ingest(
            args.url,
            base_domain=args.base_domain,
            max_depth=args.crawl_depth,
            max_pages=args.max_pages,
            force=args.force,
        )
        logger.info(
            "Crawl finished: %d indexed, %d skipped, %d failed (%d chunks)",
            report.succeeded,
            report.skipped,
            report.failed,
            report.chunks,
        )
        return 1 if report.failed and not report.succeeded else 0

    report = ingest_url(args.url, mode=args.mode, force=args.force)
    if report.skipped:
        return 0
    logger.info("Done! %d chunks embedded for %s", report.chunks, report.source)
    return 0


def cmd_ingest_pdfs(args: argparse.Namespace) -> int:
    from semantic_sf_rag.ingestion.pipeline import ingest_pdf_directory

    report = ingest_pdf_directory(args.dir, strategy=args.strategy, force=args.force)
    _log_batch("PDF ingestion", report)
    return 0


def cmd_ingest_sfdc_pdfs(args: argparse.Namespace) -> int:
    from semantic_sf_rag.ingestion.pipeline import ingest_official_pdfs

    report = ingest_official_pdfs()
    _log_batch("Official PDF ingestion", report)
    return 0


def cmd_migrate_legacy(args: argparse.Namespace) -> int:
    from semantic_sf_rag.ingestion.pipeline import migrate_legacy

    report = migrate_legacy(args.path)
    _log_batch("Legacy migration", report)
    return 0


def cmd_download_model(args: argparse.Namespace) -> int:
    from semantic_sf_rag.ingestion.embedder import warm_up

    logger.info("Downloading %s into %s (one-time, ~80MB)", settings.embedding_model, settings.model_cache_dir)
    try:
        dim = warm_up()
    except Exception:
        logger.exception("Model download failed. Check your internet connection or HuggingFace access.")
        return 1
    logger.info("Model downloaded and verified! (Vector size: %d dimensions)", dim)
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    from semantic_sf_rag.ingestion.pipeline import verify_setup

    hit = verify_setup()
    logger.info(
        "Setup OK: top hit %r from %s (distance %.4f)",
        hit["content"],
        hit["metadata"].get("source"),
        hit["distance"],
    )
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    from semantic_sf_rag.retrieval.retriever import SemanticRetriever, describe_store_location
    from semantic_sf_rag.serving.mcp_server import format_no_results, format_results

    k = max(1, min(args.k, settings.max_k))
    results = SemanticRetriever().search(args.query, k=k)
    if results:
        print(format_results(args.query, results))
    else:
        print(format_no_results(args.query, describe_store_location()))
    return 0


def cmd_sources(args: argparse.Namespace) -> int:
    from semantic_sf_rag.retrieval.retriever import get_vector_store
    from semantic_sf_rag.serving.mcp_server import format_sources

    print(format_sources(get_vector_store().list_sources()))
    return 0


def cmd_delete_source(args: argparse.Namespace) -> int:
    from semantic_sf_rag.retrieval.retriever import get_vector_store

    removed = get_vector_store().delete_source(args.source)
    if not removed:
        logger.warning("No chunks found for %s", args.source)
        return 1
    logger.info("Deleted %d chunks for %s", removed, args.source)
    return 0


def _log_batch(label: str, report) -> None:  # noqa: ANN001
    logger.info(
        "%s complete in %.1fs: %d succeeded, %d skipped, %d failed, %d new chunks",
        label,
        report.elapsed_seconds,
        report.succeeded,
        report.skipped,
        report.failed,
        report.chunks,
    )
    for failure in report.failures:
        logger.warning("  ✗ %s", failure)
    if report.total_sources:
        logger.info("Database: %d chunks across %d sources", report.total_chunks, report.total_sources)


# ---------------------------------------------------------------------------
#  Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sf-docs-rag",
        description="Local semantic search over Salesforce documentation.",
    )
    parser.add_argument("--log-level", help="Override SF_DOCS_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", help="Available commands")

    p = sub.add_parser("serve", help="Run the MCP server on stdio")
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("ingest-url", help="Scrape a documentation URL and index it")
    p.add_argument("url")
    p.add_argument("--mode", choices=["browser", "http"], default="browser", help="Fetch strategy (single page only)")
    p.add_argument("--force", action="store_true", help="Re-index a source that is already present")
    p.add_argument("--crawl-depth", type=int, default=0, help="Follow child links this many levels deep")
    p.add_argument("--max-pages", type=int, default=50, help="Stop crawling after this many pages")
    p.add_argument("--base-domain", help="Only follow links starting with this prefix")
    p.set_defaults(func=cmd_ingest_url)

    p = sub.add_parser("ingest-pdfs", help="Index local PDFs")
    p.add_argument("dir", nargs="?", help="PDF directory (default: ./pdfs)")
    p.add_argument("--strategy", choices=["markdown", "window", "recursive"], default="markdown")
    p.add_argument("--force", action="store_true", help="Re-index PDFs that are already present")
    p.set_defaults(func=cmd_ingest_pdfs)

    p = sub.add_parser("ingest-sfdc-pdfs", help="Download and index the official developer PDFs")
    p.set_defaults(func=cmd_ingest_sfdc_pdfs)

    p = sub.add_parser("migrate-legacy", help="Re-embed a legacy knowledge base")
    p.add_argument("path", nargs="?", help="Legacy SQLite database")
    p.set_defaults(func=cmd_migrate_legacy)

    p = sub.add_parser("download-model", help="Pre-download the embedding model")
    p.set_defaults(func=cmd_download_model)

    p = sub.add_parser("verify", help="Embed, insert and query a test sentence")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("search", help="Semantic search from the terminal")
    p.add_argument("query")
    p.add_argument("-k", type=int, default=settings.default_k, help="Number of results")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("sources", help="List indexed sources")
    p.set_defaults(func=cmd_sources)

    p = sub.add_parser("delete-source", help="Remove all chunks of one source")
    p.add_argument("source")
    p.set_defaults(func=cmd_delete_source)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    if getattr(args, "crawl_depth", 0) and args.mode == "http":
        parser.error("--mode http cannot be combined with --crawl-depth; crawling always renders pages")

    setup_logging(args.log_level)

    from semantic_sf_rag.ingestion import IngestionError

    try:
        return args.func(args)
    except IngestionError as exc:
        logger.error("Error: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
