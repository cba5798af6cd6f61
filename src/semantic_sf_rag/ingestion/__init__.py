"""
Ingestion — loading, chunking, and embedding into the vector store.

This module is responsible for the ETL-like flow that converts scraped
pages, PDFs and legacy knowledge bases into enriched, embedded chunks
stored in a vector database.
"""


class IngestionError(RuntimeError):
    """A source produced no content that could be indexed."""
