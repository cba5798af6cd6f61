"""SQLite + sqlite-vec implementation of the vector-store abstraction.

Schema (compatible with databases built by earlier releases)::

    chunks(rowid INTEGER PRIMARY KEY AUTOINCREMENT, source TEXT, text_chunk TEXT)
    vec_chunks USING vec0(embedding float[384])     -- rowid joins chunks.rowid
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

import sqlite_vec

from semantic_sf_rag.config import settings
from semantic_sf_rag.retrieval.base import VectorStoreBase
from semantic_sf_rag.retrieval.models import (
    SUPPORTED_OPERATORS,
    ChunkRecord,
    MetadataFilter,
    SourceSummary,
)

logger = logging.getLogger(__name__)

_SQL_OPS = {"eq": "=", "ne": "!="}


def _build_sql_where(filters: list[MetadataFilter]) -> tuple[str, list[Any]]:
    """Convert :class:`MetadataFilter` objects to a ``WHERE`` clause on ``chunks``."""
    clauses: list[str] = []
    params: list[Any] = []
    for f in filters:
        if f.field != "source":
            raise ValueError(f"Unsupported filter field: {f.field!r}")
        if f.operator not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
        if f.operator in _SQL_OPS:
            clauses.append(f"chunks.source {_SQL_OPS[f.operator]} ?")
            params.append(f.value)
        else:
            values = list(f.value or [])
            placeholders = ", ".join("?" for _ in values) or "NULL"
            negate = "NOT " if f.operator == "nin" else ""
            clauses.append(f"chunks.source {negate}IN ({placeholders})")
            params.extend(values)
    return " AND ".join(clauses), params


def _warn_missing_database(path: Path) -> None:
    logger.warning("No database found at: %s", path)
    logger.warning("Searches will return empty results until you ingest data.")
    logger.warning("Populate it with: sf-docs-rag ingest-pdfs (drop PDFs in ./pdfs/ first)")
    logger.warning("Override the path with the SF_DOCS_DB_PATH env var.")


class SqliteVecStore(VectorStoreBase):
    """Single-file vector store backed by the ``sqlite-vec`` extension.

    Parameters
    ----------
    db_path:
        Database file; created (with parent directories) when missing.
    dim:
        Embedding dimension of the ``vec0`` column.
    """

    def __init__(self, db_path: str | Path | None = None, *, dim: int | None = None) -> None:
        path = Path(db_path or settings.db_path)
        super().__init__(str(path))
        self.db_path = path
        self.dim = dim or settings.embedding_dim

        if str(path) != ":memory:":
            if not path.exists():
                _warn_missing_database(path)
            path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._load_extension()
        self._ensure_schema()
        logger.info("Database initialized at: %s", path)

    # -- setup -----------------------------------------------------------------

    def _load_extension(self) -> None:
        try:
            self._conn.enable_load_extension(True)
            sqlite_vec.load(self._conn)
            self._conn.enable_load_extension(False)
        except AttributeError as exc:
            raise RuntimeError(
                "This Python's sqlite3 module was built without extension loading; "
                "sqlite-vec cannot be used. Set SF_DOCS_VECTOR_BACKEND=chroma instead."
            ) from exc

    def _ensure_schema(self) -> None:
        self._conn.executescript(
            f"""
            CREATE TABLE IF NOT EXISTS chunks (
                rowid INTEGER PRIMARY KEY AUTOINCREMENT,
                source TEXT,
                text_chunk TEXT
            );

            CREATE VIRTUAL TABLE IF NOT EXISTS vec_chunks USING vec0(
                embedding float[{int(self.dim)}]
            );

            CREATE INDEX IF NOT EXISTS idx_chunks_source ON chunks(source);
            """
        )

    # -- VectorStoreBase overrides --------------------------------------------

    def add_chunks(self, records: list[ChunkRecord]) -> int:
        with self._conn:
            for record in records:
                cur = self._conn.execute(
                    "INSERT INTO chunks (source, text_chunk) VALUES (?, ?)",
                    (record.source, record.text),
                )
                self._conn.execute(
                    "INSERT INTO vec_chunks (rowid, embedding) VALUES (?, ?)",
                    (cur.lastrowid, sqlite_vec.serialize_float32(record.embedding)),
                )
        return len(records)

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        query = sqlite_vec.serialize_float32(query_embedding)

        if filters:
            # vec0 KNN cannot see columns of the joined table, so filtered
            # searches rank the matching rows exhaustively.
            where, params = _build_sql_where(filters)
            rows = self._conn.execute(
                f"""
                SELECT chunks.rowid, chunks.source, chunks.text_chunk,
                       vec_distance_cosine(vec_chunks.embedding, ?) AS distance
                FROM chunks
                JOIN vec_chunks ON vec_chunks.rowid = chunks.rowid
                WHERE {where}
                ORDER BY distance ASC
                LIMIT ?
                """,
                [query, *params, k],
            ).fetchall()
        else:
            rows = self._conn.execute(
                """
                SELECT chunks.rowid, chunks.source, chunks.text_chunk,
                       vec_distance_cosine(vec_chunks.embedding, ?) AS distance
                FROM vec_chunks
                JOIN chunks ON chunks.rowid = vec_chunks.rowid
                WHERE vec_chunks.embedding MATCH ? AND k = ?
                ORDER BY distance ASC
                """,
                (query, query, k),
            ).fetchall()

        return [
            {
                "id": str(rowid),
                "content": text or "",
                "distance": float(distance),
                "score": 1.0 - float(distance),
                "metadata": {"source": source},
            }
            for rowid, source, text, distance in rows
        ]

    def delete_source(self, source: str) -> int:
        with self._conn:
            rowids = [
                row[0]
                for row in self._conn.execute("SELECT rowid FROM chunks WHERE source = ?", (source,))
            ]
            for rowid in rowids:
                self._conn.execute("DELETE FROM vec_chunks WHERE rowid = ?", (rowid,))
            self._conn.execute("DELETE FROM chunks WHERE source = ?", (source,))
        return len(rowids)

    def list_sources(self) -> list[SourceSummary]:
        rows = self._conn.execute(
            "SELECT source, COUNT(*) FROM chunks GROUP BY source ORDER BY source"
        ).fetchall()
        return [SourceSummary(source=source, chunk_count=n) for source, n in rows]

    def has_source(self, source: str) -> bool:
        row = self._conn.execute("SELECT 1 FROM chunks WHERE source = ? LIMIT 1", (source,)).fetchone()
        return row is not None

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]

    def health_check(self) -> bool:
        try:
            self._conn.execute("SELECT vec_version()").fetchone()
            return True
        except sqlite3.Error:
            logger.warning("sqlite-vec health-check failed", exc_info=True)
            return False

    def close(self) -> None:
        self._conn.close()
