"""Text chunking strategies."""

from __future__ import annotations

import re
from collections.abc import Callable

from langchain_core.documents import Document
from langchain_text_splitters import RecursiveCharacterTextSplitter

from semantic_sf_rag.config import settings

_PARAGRAPH_BREAK = re.compile(r"\n\n+")


def chunk_markdown(markdown: str, max_chunk_length: int = 800, overlap: int = 100) -> list[str]:
    """Paragraph-aware chunking with a character tail carried between chunks.

    Paragraphs are packed greedily up to *max_chunk_length* characters
    (joined by blank lines).  A paragraph that is itself too long is
    packed line by line instead.  Each new chunk starts with the last
    *overlap* characters of the previous one.  A single line longer
    than the limit is kept whole.
    """
    chunks: list[str] = []
    current = ""

    for para in _PARAGRAPH_BREAK.split(markdown):
        parts = para.split("\n") if len(para) > max_chunk_length else [para]
        for part in parts:
            if current and len(current) + len(part) + 2 > max_chunk_length:
                chunks.append(current.strip())
                tail = current[-overlap:] if overlap > 0 else ""
                current = f"{tail}\n\n{part}" if tail else part
            else:
                current += ("\n\n" if current else "") + part

    if current.strip():
        chunks.append(current.strip())
    return chunks


def chunk_window(text: str, chunk_size: int = 800, overlap: int = 100) -> list[str]:
    """Fixed-size sliding windows advancing by ``chunk_size - overlap`` characters."""
    if overlap >= chunk_size:
        raise ValueError(f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})")
    step = chunk_size - overlap
    return [text[pos : pos + chunk_size] for pos in range(0, len(text), step)]


def chunk_recursive(text: str, chunk_size: int = 800, overlap: int = 100) -> list[str]:
    """Separator-aware splitting via LangChain's recursive splitter."""
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=overlap,
        length_function=len,
        separators=["\n\n", "\n", ". ", " ", ""],
    )
    return splitter.split_text(text)


STRATEGIES: dict[str, Callable[[str, int, int], list[str]]] = {
    "markdown": chunk_markdown,
    "window": chunk_window,
    "recursive": chunk_recursive,
}


def enrich_chunk(text: str, title: str, source: str) -> str:
    """Prefix a chunk with its provenance so the embedding carries it too."""
    return f"Source: {title}\nURL: {source}\n\n{text}"


def chunk_document(
    text: str,
    *,
    title: str,
    source: str,
    strategy: str = "markdown",
    chunk_size: int | None = None,
    chunk_overlap: int | None = None,
) -> list[Document]:
    """Split *text* and return enriched chunks ready for embedding.

    Parameters
    ----------
    text:
        Extracted document body (Markdown or plain text).
    title / source:
        Provenance written into each chunk header and its metadata.
    strategy:
        One of ``"markdown"``, ``"window"``, ``"recursive"``.
    chunk_size / chunk_overlap:
        Characters per chunk and carried between chunks; default to settings.

    Returns
    -------
    list[Document]
        One document per chunk; metadata holds ``source``, ``title``,
        ``chunk_index`` and ``chunk_count``.
    """
    try:
        splitter = STRATEGIES[strategy]
    except KeyError:
        raise ValueError(
            f"Unknown chunking strategy {strategy!r}. Choose from: {', '.join(STRATEGIES)}."
        ) from None

    pieces = splitter(
        text,
        chunk_size or settings.chunk_size,
        settings.chunk_overlap if chunk_overlap is None else chunk_overlap,
    )
    return [
        Document(
            page_content=enrich_chunk(piece, title, source),
            metadata={
                "source": source,
                "title": title,
                "chunk_index": i,
                "chunk_count": len(pieces),
            },
        )
        for i, piece in enumerate(pieces)
    ]
