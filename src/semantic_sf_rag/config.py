"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application-wide settings, populated from ``SF_DOCS_*`` env vars or .env file."""

    # Vector store
    db_path: Path = Field(
        default=Path("data/rag.sqlite"),
        description="SQLite database holding chunks and sqlite-vec embeddings",
    )
    vector_backend: str = Field(default="sqlite", description="One of 'sqlite' or 'chroma'")
    chroma_path: Path = Path("data/chroma")
    chroma_host: str = Field(
        default="",
        description="Chroma server host. Leave empty to use a local persistent client.",
    )
    chroma_port: int = 8000
    chroma_collection: str = "sf_docs"

    # Embedding
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dim: int = 384
    model_cache_dir: Path = Path("models")

    # Chunking / retrieval
    chunk_size: int = 800
    chunk_overlap: int = 100
    default_k: int = 5
    max_k: int = 20

    # Sources
    pdf_dir: Path = Path("pdfs")
    official_pdf_base_url: str = "https://resources.docs.salesforce.com/258/latest/en-us/sfdc/pdf"
    legacy_db_path: Path = Path("../private-sf-doc-kb/salesforce-docs.db")

    # Fetching / scraping
    request_timeout: int = 60
    max_retries: int = 3
    max_redirects: int = 5
    page_load_timeout: int = 60
    user_agent: str = _CHROME_UA
    headless: bool = True
    debug_screenshot_path: Path | None = Field(
        default=None,
        description="When set, help.salesforce.com pages are screenshotted here before extraction",
    )

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="SF_DOCS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Singleton — import `settings` wherever needed.
settings = Settings()
