"""
Scraping — turn Salesforce documentation URLs into Markdown.

Public surface
--------------
- :func:`scrape_page` — Aura fast path, PDF download, or headless Chrome.
- :func:`crawl` — breadth-first walk over a page's child links.
- :func:`close_browser` — shut down the shared Chrome instance.
- :class:`ScrapedPage` — result model (errors are reported, not raised).
"""

from semantic_sf_rag.scraping.models import ScrapedPage

__all__ = ["ScrapedPage", "close_browser", "crawl", "scrape_page"]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import the Selenium-backed helpers so importing the package stays cheap."""
    if name in ("scrape_page", "crawl"):
        from semantic_sf_rag.scraping import scraper

        return getattr(scraper, name)
    if name == "close_browser":
        from semantic_sf_rag.scraping.browser import close_browser

        return close_browser
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
