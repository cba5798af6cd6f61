"""Fast path for help.salesforce.com articles via the Aura action endpoint.

Help articles render client-side inside a Lightning community and sit
behind Akamai bot detection, so a headless browser often receives an
empty shell.  The community itself loads article bodies from
``/s/sfsites/aura`` with an ``ApexActionController`` call; issuing the
same call directly returns the article HTML as JSON.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qs, urlparse

import requests

from semantic_sf_rag.config import settings
from semantic_sf_rag.scraping.markdown import (
    content_hash,
    extract_hrefs,
    html_to_markdown,
    normalize_links,
)
from semantic_sf_rag.scraping.models import ScrapedPage

logger = logging.getLogger(__name__)

AURA_ENDPOINT = "https://help.salesforce.com/s/sfsites/aura"
HELP_LINK_BASE = "https://help.salesforce.com/s/"
DEFAULT_TITLE = "Salesforce Help Article"

_AURA_CONTEXT = {
    "mode": "PROD",
    "fwuid": "SHNaWGp5QlJqZFZLVGR5N0w0d0tYUTJEa1N5enhOU3R5QWl2VzNveFZTbGcxMy4tMjE0NzQ4MzY0OC45OTYxNDcy",
    "app": "siteforce:communityApp",
}


def article_id(url: str) -> str | None:
    """Return the ``id`` query parameter of a Help ``articleView`` URL, else ``None``."""
    parsed = urlparse(url)
    if "help.salesforce.com" not in parsed.netloc or "articleView" not in url:
        return None
    ids = parse_qs(parsed.query).get("id")
    return ids[0] if ids else None


def build_aura_form(url: str, urlname: str) -> dict[str, str]:
    """Form fields for a ``Help_ArticleDataController.getData`` action."""
    parsed = urlparse(url)
    message = {
        "actions": [
            {
                "id": "1;a",
                "descriptor": "aura://ApexActionController/ACTION$execute",
                "callingDescriptor": "UNKNOWN",
                "params": {
                    "namespace": "",
                    "classname": "Help_ArticleDataController",
                    "method": "getData",
                    "params": {
                        "articleParameters": {
                            "urlName": urlname,
                            "language": "en_US",
                            "release": "260.0.0",
                            "requestedArticleType": "HelpDocs",
                            "requestedArticleTypeNumber": "5",
                        }
                    },
                    "cacheable": False,
                    "isContinuation": False,
                },
            }
        ]
    }
    page_uri = parsed.path + (f"?{parsed.query}" if parsed.query else "")
    return {
        "message": json.dumps(message),
        "aura.context": json.dumps(_AURA_CONTEXT),
        "aura.pageURI": page_uri,
        "aura.token": "null",
    }


def _article_record(payload: dict[str, Any]) -> dict[str, Any] | None:
    actions = payload.get("actions") or [{}]
    action_result = actions[0].get("returnValue") or {}
    inner = action_result.get("returnValue") or {}
    return inner.get("record")


def scrape_aura_article(
    url: str,
    base_domain: str | None = None,
    session: requests.Session | None = None,
) -> ScrapedPage | None:
    """Fetch a Help article through the Aura API.

    Returns ``None`` whenever the fast path does not apply or fails, so
    the caller can fall through to the browser.
    """
    urlname = article_id(url)
    if not urlname:
        return None

    session = session or requests.Session()
    try:
        resp = session.post(
            AURA_ENDPOINT,
            data=build_aura_form(url, urlname),
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "User-Agent": settings.user_agent,
                "Accept": "*/*",
            },
            timeout=settings.request_timeout,
        )
        if not resp.ok:
            logger.info("Aura API returned HTTP %d for %s", resp.status_code, url)
            return None
        record = _article_record(resp.json())
    except (requests.RequestException, ValueError, AttributeError) as exc:
        logger.info("Aura fast path unavailable for %s: %s", url, exc)
        return None

    if not record:
        return None
    html = record.get("Content__c") or record.get("Summary")
    if not html:
        return None

    markdown = html_to_markdown(html)
    return ScrapedPage(
        url=url,
        title=record.get("Title") or DEFAULT_TITLE,
        markdown=markdown,
        hash=content_hash(markdown),
        child_links=normalize_links(extract_hrefs(html), HELP_LINK_BASE, base_domain),
    )
