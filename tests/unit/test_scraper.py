"""Unit tests for the scraper: strategy routing, browser extraction and crawling.

Selenium is never started; a fake driver stands in for Chrome.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from selenium.common.exceptions import WebDriverException

from semantic_sf_rag.scraping import browser, scraper
from semantic_sf_rag.scraping.extraction import EXTRACTION_SCRIPT, SOFT_404_ERROR
from semantic_sf_rag.scraping.models import ScrapedPage


# ── Fake Chrome ─────────────────────────────────────────────────────────


class FakeDriver:
    """Records navigation and returns a canned extractor result."""

    def __init__(self, extraction: dict[str, Any] | None = None, *, fail_on_get: bool = False) -> None:
        self.extraction = extraction or {}
        self.fail_on_get = fail_on_get
        self.visited: list[str] = []
        self.closed_tabs = 0
        self.current_window_handle = "main"
        self.switch_to = MagicMock()

    def get(self, url: str) -> None:
        if self.fail_on_get:
            raise WebDriverException("net::ERR_NAME_NOT_RESOLVED")
        self.visited.append(url)

    def execute_script(self, script: str, *args: Any) -> Any:
        if script == EXTRACTION_SCRIPT:
            return self.extraction
        return True

    def close(self) -> None:
        self.closed_tabs += 1

    def save_screenshot(self, path: str) -> bool:
        return True


@pytest.fixture(autouse=True)
def _no_settle_delay(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(scraper, "RENDER_SETTLE_SECONDS", 0)


# ── Browser extraction ──────────────────────────────────────────────────


class TestScrapeWithBrowser:
    def test_success_converts_and_filters_links(self) -> None:
        driver = FakeDriver(
            {
                "html": "<h1>Hi</h1><p>Body text</p>",
                "title": "Hi",
                "error": None,
                "childLinks": ["/docs/other", "https://elsewhere.example.org/x"],
            }
        )
        page = scraper.scrape_with_browser(
            "https://example.com/docs/page", "https://example.com", driver=driver
        )

        assert page.ok
        assert page.title == "Hi"
        assert "# Hi" in page.markdown
        assert "Body text" in page.markdown
        assert page.child_links == ["https://example.com/docs/other"]
        assert driver.visited == ["https://example.com/docs/page"]

    def test_tab_closed_and_focus_restored(self) -> None:
        driver = FakeDriver({"html": "<p>x</p>", "title": "t"})
        scraper.scrape_with_browser("https://example.com/p", driver=driver)
        assert driver.closed_tabs == 1
        driver.switch_to.new_window.assert_called_once_with("tab")
        driver.switch_to.window.assert_called_once_with("main")

    def test_soft_404_reported(self) -> None:
        driver = FakeDriver({"html": "", "title": "Error", "error": SOFT_404_ERROR, "childLinks": []})
        page = scraper.scrape_with_browser("https://example.com/missing", driver=driver)
        assert not page.ok
        assert page.error == SOFT_404_ERROR

    def test_soft_404_links_are_resolved_and_filtered(self) -> None:
        driver = FakeDriver(
            {
                "html": "",
                "title": "Error",
                "error": SOFT_404_ERROR,
                "childLinks": ["https://evil.example.org/page", "/ok"],
            }
        )
        page = scraper.scrape_with_browser("https://ex.com/missing", "https://ex.com", driver=driver)
        assert not page.ok
        assert page.child_links == ["https://ex.com/ok"]

    def test_empty_page_gets_default_error(self) -> None:
        driver = FakeDriver({"html": "   ", "title": "Blank"})
        page = scraper.scrape_with_browser("https://example.com/blank", driver=driver)
        assert page.error == "No content found on page"
        assert page.markdown == ""

    def test_navigation_failure_is_reported_not_raised(self) -> None:
        driver = FakeDriver(fail_on_get=True)
        page = scraper.scrape_with_browser("https://nope.invalid/", driver=driver)
        assert page.error == "net::ERR_NAME_NOT_RESOLVED"
        assert page.title == "Error"
        assert driver.closed_tabs == 1

    def test_tab_open_failure(self) -> None:
        driver = FakeDriver()
        driver.switch_to.new_window.side_effect = WebDriverException("session deleted")
        page = scraper.scrape_with_browser("https://example.com/p", driver=driver)
        assert page.error == "session deleted"
        assert driver.visited == []


# ── PDF path ────────────────────────────────────────────────────────────


class TestScrapePdf:
    def test_success(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(scraper, "fetch_pdf_bytes", lambda url, session=None: b"%PDF")
        monkeypatch.setattr(scraper, "pdf_bytes_to_text", lambda data: "Apex reference text")
        page = scraper.scrape_pdf("https://resources.example.com/pdf/apex_api.pdf")
        assert page.ok
        assert page.title == "apex_api.pdf"
        assert page.markdown == "# apex_api.pdf\n\nApex reference text"

    def test_download_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _fail(url: str, session: Any = None) -> bytes:
            raise RuntimeError("Failed to fetch") from ConnectionError("404 Not Found")

        monkeypatch.setattr(scraper, "fetch_pdf_bytes", _fail)
        page = scraper.scrape_pdf("https://resources.example.com/pdf/missing.pdf")
        assert page.error == "PDF HTTP Error: 404 Not Found"

    def test_parse_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _bad(data: bytes) -> str:
            raise ValueError("invalid xref table")

        monkeypatch.setattr(scraper, "fetch_pdf_bytes", lambda url, session=None: b"junk")
        monkeypatch.setattr(scraper, "pdf_bytes_to_text", _bad)
        page = scraper.scrape_pdf("https://resources.example.com/pdf/broken.pdf")
        assert page.error == "PDF Parse Error: invalid xref table"


# ── Strategy routing ────────────────────────────────────────────────────


class TestScrapePage:
    def test_aura_result_short_circuits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        aura_page = ScrapedPage(url="u", title="Aura", markdown="body")
        monkeypatch.setattr(scraper, "scrape_aura_article", lambda url, base, session=None: aura_page)
        driver = FakeDriver()
        assert scraper.scrape_page("u", driver=driver, session=MagicMock()) is aura_page
        assert driver.visited == []

    def test_pdf_urls_skip_browser(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pdf_page = ScrapedPage(url="x.pdf", markdown="pdf")
        monkeypatch.setattr(scraper, "scrape_pdf", lambda url, session=None: pdf_page)
        driver = FakeDriver()
        assert scraper.scrape_page("https://example.com/Guide.PDF", driver=driver, session=MagicMock()) is pdf_page
        assert driver.visited == []

    def test_falls_back_to_browser(self) -> None:
        driver = FakeDriver({"html": "<p>Rendered</p>", "title": "Rendered"})
        page = scraper.scrape_page("https://example.com/spa", driver=driver, session=MagicMock())
        assert page.title == "Rendered"
        assert driver.visited == ["https://example.com/spa"]


# ── Crawling ────────────────────────────────────────────────────────────

SITE = {
    "https://ex.com/": ["https://ex.com/a", "https://ex.com/b#section"],
    "https://ex.com/a": ["https://ex.com/", "https://ex.com/c"],
    "https://ex.com/b": [],
    "https://ex.com/c": [],
}


@pytest.fixture()
def scrape_calls() -> list[tuple[str, str | None]]:
    return []


@pytest.fixture()
def fake_scrape(scrape_calls: list[tuple[str, str | None]]):
    def _scrape(url: str, base_domain: str | None) -> ScrapedPage:
        scrape_calls.append((url, base_domain))
        return ScrapedPage(url=url, markdown=f"content of {url}", child_links=SITE.get(url, []))

    return _scrape


class TestCrawl:
    def test_breadth_first_to_depth_one(self, fake_scrape, scrape_calls) -> None:
        visited = [(d, p.url) for d, p in scraper.crawl("https://ex.com/", max_depth=1, scrape=fake_scrape)]
        assert visited == [(0, "https://ex.com/"), (1, "https://ex.com/a"), (1, "https://ex.com/b")]
        assert {base for _, base in scrape_calls} == {"https://ex.com"}

    def test_deeper_crawl_never_revisits(self, fake_scrape) -> None:
        urls = [p.url for _, p in scraper.crawl("https://ex.com/", max_depth=5, scrape=fake_scrape)]
        assert urls == ["https://ex.com/", "https://ex.com/a", "https://ex.com/b", "https://ex.com/c"]

    def test_max_pages_caps_the_walk(self, fake_scrape, scrape_calls) -> None:
        pages = list(scraper.crawl("https://ex.com/", max_depth=5, max_pages=2, scrape=fake_scrape))
        assert len(pages) == 2
        assert len(scrape_calls) == 2

    def test_depth_zero_scrapes_only_start(self, fake_scrape) -> None:
        pages = list(scraper.crawl("https://ex.com/", max_depth=0, scrape=fake_scrape))
        assert [p.url for _, p in pages] == ["https://ex.com/"]

    def test_explicit_base_domain_passed_through(self, fake_scrape, scrape_calls) -> None:
        list(scraper.crawl("https://ex.com/", "https://ex.com/docs", max_depth=0, scrape=fake_scrape))
        assert scrape_calls == [("https://ex.com/", "https://ex.com/docs")]

    def test_off_domain_links_never_queued(self) -> None:
        def _scrape(url: str, base_domain: str | None) -> ScrapedPage:
            if url == "https://ex.com/":
                return ScrapedPage.failed(
                    url, SOFT_404_ERROR, child_links=["https://evil.example.org/page", "https://ex.com/ok"]
                )
            return ScrapedPage(url=url, markdown="ok")

        urls = [p.url for _, p in scraper.crawl("https://ex.com/", max_depth=2, scrape=_scrape)]
        assert urls == ["https://ex.com/", "https://ex.com/ok"]


def test_package_exposes_lazy_helpers() -> None:
    from semantic_sf_rag import scraping

    assert scraping.crawl is scraper.crawl
    assert scraping.close_browser is browser.close_browser


# ── Browser lifecycle ───────────────────────────────────────────────────


class TestBrowserLifecycle:
    def test_options_headless_and_stealthy(self) -> None:
        options = browser.build_options(headless=True)
        assert "--headless=new" in options.arguments
        assert "--disable-blink-features=AutomationControlled" in options.arguments

    def test_options_headed(self) -> None:
        assert "--headless=new" not in browser.build_options(headless=False).arguments

    def test_close_browser_is_idempotent(self, monkeypatch: pytest.MonkeyPatch) -> None:
        driver = MagicMock()
        monkeypatch.setattr(browser, "_driver", driver)
        browser.close_browser()
        browser.close_browser()
        driver.quit.assert_called_once()
        assert browser._driver is None

    def test_get_browser_reuses_driver(self, monkeypatch: pytest.MonkeyPatch) -> None:
        created = MagicMock()
        monkeypatch.setattr(browser, "_driver", None)
        monkeypatch.setattr(browser, "create_browser", lambda: created)
        assert browser.get_browser() is created
        assert browser.get_browser() is created

    def test_cookie_banner_clicked(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(browser.time, "sleep", lambda s: None)
        driver = MagicMock()
        button = driver.find_element.return_value
        button.is_displayed.return_value = True
        button.is_enabled.return_value = True
        browser.dismiss_cookie_popup(driver, timeout=1)
        button.click.assert_called_once()
