"""Plain HTTP fetching with retries — no JavaScript rendering."""

from __future__ import annotations

import logging
import time

import requests

from semantic_sf_rag.config import settings

logger = logging.getLogger(__name__)


def build_session(user_agent: str | None = None) -> requests.Session:
    """Return a session carrying the configured user agent and redirect cap."""
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": user_agent or settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/pdf;q=0.9,*/*;q=0.8",
        }
    )
    session.max_redirects = settings.max_redirects
    return session


def get_with_retries(
    session: requests.Session,
    url: str,
    *,
    timeout: int | None = None,
    max_retries: int | None = None,
) -> requests.Response:
    """GET *url*, retrying transient failures with exponential back-off.

    Raises
    ------
    RuntimeError
        On a redirect loop, or once every attempt has failed.
    """
    timeout = timeout or settings.request_timeout
    max_retries = max_retries or settings.max_retries

    last_exc: Exception | None = None
    for attempt in range(1, max_retries + 1):
        try:
            resp = session.get(url, timeout=timeout)
            resp.raise_for_status()
            return resp
        except requests.TooManyRedirects as exc:
            raise RuntimeError(f"Too many redirects for {url}") from exc
        except requests.RequestException as exc:
            last_exc = exc
            if attempt < max_retries:
                wait = 2**attempt
                logger.warning("Retry %d/%d for %s (wait %ds): %s", attempt, max_retries, url, wait, exc)
                time.sleep(wait)
    raise RuntimeError(f"Failed to fetch {url} after {max_retries} attempts") from last_exc


def fetch_html(url: str, session: requests.Session | None = None) -> str:
    """Download an HTML page, following redirects."""
    session = session or build_session()
    resp = get_with_retries(session, url)
    if resp.status_code != 200:
        raise RuntimeError(f"HTTP {resp.status_code} for {url}")
    if resp.history:
        logger.info("Followed %d redirect(s) to %s", len(resp.history), resp.url)
    return resp.text


def fetch_pdf_bytes(url: str, session: requests.Session | None = None) -> bytes:
    """Download a PDF document and return its raw bytes."""
    session = session or build_session()
    resp = get_with_retries(session, url)
    return resp.content
