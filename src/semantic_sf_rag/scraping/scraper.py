"""Scrape a single documentation URL into Markdown.

Strategy order: Aura API fast path → native PDF download → headless
Chrome with the in-page extractor.  Page-level failures never raise;
they come back as a :class:`ScrapedPage` with ``error`` set.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Iterator
from typing import Any
from urllib.parse import urlparse

import requests
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from semantic_sf_rag.config import settings
from semantic_sf_rag.ingestion.loader import pdf_bytes_to_text
from semantic_sf_rag.scraping.aura import scrape_aura_article
from semantic_sf_rag.scraping.browser import dismiss_cookie_popup, get_browser
from semantic_sf_rag.scraping.extraction import DEVELOPER_READY_SCRIPT, run_extraction
from semantic_sf_rag.scraping.http import build_session, fetch_pdf_bytes
from semantic_sf_rag.scraping.markdown import content_hash, html_to_markdown, normalize_links
from semantic_sf_rag.scraping.models import ScrapedPage

logger = logging.getLogger(__name__)

RENDER_SETTLE_SECONDS = 2


def scrape_pdf(url: str, session: requests.Session | None = None) -> ScrapedPage:
    """Download a PDF and wrap its text as a Markdown document."""
    logger.info("[PDF Extraction] Downloading %s", url)
    try:
        data = fetch_pdf_bytes(url, session=session)
    except RuntimeError as exc:
        cause = exc.__cause__ or exc
        return ScrapedPage.failed(url, f"PDF HTTP Error: {cause}")

    try:
        text = pdf_bytes_to_text(data)
    except Exception as exc:  # pypdf raises a wide range of parse errors
        return ScrapedPage.failed(url, f"PDF Parse Error: {exc}")

    title = urlparse(url).path.rstrip("/").split("/")[-1] or "PDF Document"
    markdown = f"# {title}\n\n{text}"
    return ScrapedPage(url=url, title=title, markdown=markdown, hash=content_hash(markdown))


def _wait_for_content(driver: Any, url: str) -> None:
    try:
        if "help.salesforce.com" in url:
            WebDriverWait(driver, 15).until(EC.presence_of_element_located((By.TAG_NAME, "body")))
        elif "developer.salesforce.com" in url:
            WebDriverWait(driver, 10).until(lambda d: d.execute_script(DEVELOPER_READY_SCRIPT))
    except TimeoutException:
        logger.warning("Timeout waiting for specific content selectors on %s", url)


def _open_tab(driver: Any) -> str:
    """Open a fresh tab and return the handle to come back to afterwards."""
    original = driver.current_window_handle
    driver.switch_to.new_window("tab")
    return original


def _close_tab(driver: Any, original: str) -> None:
    try:
        driver.close()
        driver.switch_to.window(original)
    except WebDriverException as exc:
        logger.warning("Could not close browser tab: %s", exc)


def scrape_with_browser(url: str, base_domain: str | None = None, driver: Any = None) -> ScrapedPage:
    """Render *url* in headless Chrome and run the multi-strategy extractor."""
    driver = driver or get_browser()
    try:
        original = _open_tab(driver)
    except WebDriverException as exc:
        return ScrapedPage.failed(url, exc.msg or str(exc))
    try:
        driver.get(url)
        _wait_for_content(driver, url)
        if "help.salesforce.com" in url:
            dismiss_cookie_popup(driver, timeout=3)
        time.sleep(RENDER_SETTLE_SECONDS)

        if settings.debug_screenshot_path and "help.salesforce.com" in url:
            if not driver.save_screenshot(str(settings.debug_screenshot_path)):
                logger.debug("Debug screenshot failed for %s", url)

        extraction = run_extraction(driver)
        if not extraction["html"].strip():
            return ScrapedPage(
                url=url,
                title=extraction["title"],
                error=extraction["error"] or "No content found on page",
                child_links=normalize_links(extraction["child_links"], url, base_domain),
            )

        markdown = html_to_markdown(extraction["html"])
        return ScrapedPage(
            url=url,
            title=extraction["title"],
            markdown=markdown,
            hash=content_hash(markdown),
            child_links=normalize_links(extraction["child_links"], url, base_domain),
        )
    except WebDriverException as exc:
        return ScrapedPage.failed(url, exc.msg or str(exc))
    finally:
        _close_tab(driver, original)


def scrape_page(
    url: str,
    base_domain: str | None = None,
    *,
    driver: Any = None,
    session: requests.Session | None = None,
) -> ScrapedPage:
    """Extract Markdown content from a single URL.

    Parameters
    ----------
    url:
        Page or PDF to scrape.
    base_domain:
        When given, only child links starting with this prefix are kept.
    driver:
        Selenium driver to reuse; defaults to the shared headless Chrome.
    session:
        ``requests`` session for the Aura and PDF paths.
    """
    session = session or build_session()

    aura_result = scrape_aura_article(url, base_domain, session=session)
    if aura_result:
        logger.info("Fetched %s via Aura API", url)
        return aura_result

    if url.lower().endswith(".pdf"):
        return scrape_pdf(url, session=session)

    return scrape_with_browser(url, base_domain, driver=driver)


def crawl(
    start_url: str,
    base_domain: str | None = None,
    *,
    max_depth: int = 1,
    max_pages: int = 50,
    scrape: Any = None,
) -> Iterator[tuple[int, ScrapedPage]]:
    """Breadth-first walk over ``child_links``, yielding ``(depth, page)``.

    Stops once *max_pages* pages have been scraped; links deeper than
    *max_depth* are not followed.
    """
    scrape = scrape or scrape_page
    base_domain = base_domain or f"{urlparse(start_url).scheme}://{urlparse(start_url).netloc}"
    visited = {start_url}
    queue: deque[tuple[str, int]] = deque([(start_url, 0)])
    scraped = 0

    while queue and scraped < max_pages:
        url, depth = queue.popleft()
        page = scrape(url, base_domain)
        scraped += 1
        logger.info("Depth %d — %d/%d %s", depth, scraped, max_pages, url)
        yield depth, page

        if depth >= max_depth:
            continue
        for link in page.child_links:
            link = link.split("#", 1)[0]
            if not link or not link.startswith(base_domain):
                continue
            if link not in visited:
                visited.add(link)
                queue.append((link, depth + 1))

    if queue:
        logger.info("Reached max pages (%d) with %d links still queued", max_pages, len(queue))
