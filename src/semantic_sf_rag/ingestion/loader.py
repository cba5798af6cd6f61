"""Document loaders — PDFs and legacy knowledge-base databases."""

from __future__ import annotations

import logging
import re
import sqlite3
import tempfile
from pathlib import Path
from typing import NamedTuple

from langchain_community.document_loaders import PyPDFLoader

logger = logging.getLogger(__name__)


class LegacyChunk(NamedTuple):
    url: str
    title: str
    content: str


def pdf_title(filename: str) -> str:
    """``"apex_api.pdf"`` → ``"apex api"``."""
    return re.sub(r"\.pdf$", "", filename, flags=re.IGNORECASE).replace("_", " ")


def offline_uri(filename: str) -> str:
    """Logical source identifier for a user-supplied PDF."""
    name = re.sub(r"\s+", "_", filename)
    return f"file://offline/{name}"


def official_uri(filename: str) -> str:
    """Logical source identifier for a PDF from the official developer catalog."""
    return f"file://sfdc-official/{filename}"


def load_pdf_text(path: str | Path) -> str:
    """Extract the text of every page of a PDF, in page order."""
    pages = PyPDFLoader(str(path)).load()
    return "\n".join(page.page_content for page in pages)


def pdf_bytes_to_text(data: bytes) -> str:
    """Extract text from an in-memory PDF."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "document.pdf"
        path.write_bytes(data)
        return load_pdf_text(path)


def list_pdfs(directory: str | Path) -> list[Path]:
    """Return the PDFs in *directory*, creating it first if missing."""
    root = Path(directory)
    if not root.exists():
        root.mkdir(parents=True, exist_ok=True)
        logger.info("Created new directory at: %s", root)
        return []
    return sorted(p for p in root.iterdir() if p.is_file() and p.suffix.lower() == ".pdf")


def load_legacy_chunks(path: str | Path) -> list[LegacyChunk]:
    """Read every chunk from a legacy ``documents``/``chunks`` knowledge base.

    The database is opened read-only.

    Raises
    ------
    sqlite3.Error
        When the file is missing or does not have the legacy schema.
    """
    uri = f"{Path(path).resolve().as_uri()}?mode=ro"
    conn = sqlite3.connect(uri, uri=True)
    try:
        rows = conn.execute(
            """
            SELECT d.url, d.title, c.content
            FROM chunks c
            JOIN documents d ON d.id = c.document_id
            """
        ).fetchall()
    finally:
        conn.close()
    return [LegacyChunk(*row) for row in rows]
