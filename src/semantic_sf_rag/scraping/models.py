"""Result model shared by every extraction strategy."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ScrapedPage(BaseModel):
    """Outcome of scraping a single URL.

    Failures are reported through :attr:`error` rather than raised, so a
    crawl can keep going past a broken page.
    """

    url: str
    title: str = "Untitled"
    markdown: str = ""
    hash: str = ""
    error: str | None = None
    child_links: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.markdown.strip())

    @classmethod
    def failed(
        cls,
        url: str,
        error: str,
        *,
        title: str = "Error",
        child_links: list[str] | None = None,
    ) -> ScrapedPage:
        return cls(url=url, title=title, error=error, child_links=child_links or [])
