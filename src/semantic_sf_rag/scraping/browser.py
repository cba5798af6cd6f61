"""Headless Chrome lifecycle for JavaScript-rendered documentation."""

from __future__ import annotations

import logging
import time

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from semantic_sf_rag.config import settings

logger = logging.getLogger(__name__)

_driver: webdriver.Chrome | None = None


def build_options(headless: bool | None = None) -> webdriver.ChromeOptions:
    """Chrome options tuned to look like a regular desktop browser."""
    options = webdriver.ChromeOptions()
    if settings.headless if headless is None else headless:
        options.add_argument("--headless=new")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-setuid-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--window-size=1920,1080")
    options.add_argument(f"--user-agent={settings.user_agent}")
    # Hide the automation markers Akamai keys on.
    options.add_argument("--disable-blink-features=AutomationControlled")
    options.add_experimental_option("excludeSwitches", ["enable-automation"])
    options.add_experimental_option("useAutomationExtension", False)
    return options


def create_browser() -> webdriver.Chrome:
    """Create a new Chrome driver, letting webdriver-manager fetch chromedriver."""
    driver = webdriver.Chrome(
        service=Service(ChromeDriverManager().install()),
        options=build_options(),
    )
    driver.set_page_load_timeout(settings.page_load_timeout)
    driver.execute_cdp_cmd(
        "Page.addScriptToEvaluateOnNewDocument",
        {"source": "Object.defineProperty(navigator, 'webdriver', {get: () => undefined})"},
    )
    return driver


def get_browser() -> webdriver.Chrome:
    """Return the shared driver, starting Chrome on first use."""
    global _driver
    if _driver is None:
        logger.info("Starting headless Chrome")
        _driver = create_browser()
    return _driver


def close_browser() -> None:
    """Quit the shared driver if one is running.  Safe to call repeatedly."""
    global _driver
    if _driver is not None:
        try:
            _driver.quit()
        except WebDriverException as exc:
            logger.warning("Error while closing Chrome: %s", exc)
        _driver = None


def dismiss_cookie_popup(driver: webdriver.Chrome, timeout: int = 5) -> None:
    """Click the cookie banner's "Do Not Accept" button when present."""
    try:
        button = WebDriverWait(driver, timeout).until(
            EC.element_to_be_clickable((By.XPATH, "//button[normalize-space()='Do Not Accept']"))
        )
        button.click()
        time.sleep(1)
    except TimeoutException:
        pass
