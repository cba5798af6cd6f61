"""HTML → Markdown / plain-text conversion helpers."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from collections.abc import Iterable
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from markdownify import ATX
from markdownify import markdownify as md_convert

_BLOCK_TAGS = ["p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "tr", "br", "section", "article"]
_BOILERPLATE_TAGS = ["script", "style", "nav", "header", "footer"]
_SKIPPED_SCHEMES = ("javascript", "mailto")


def _code_language(el) -> str:
    """Return the fence language for a ``<pre>`` from its ``language-xxx`` code class."""
    code = el.find("code")
    classes = code.get("class", []) if code is not None else []
    for cls in classes:
        match = re.match(r"language-(\w+)", cls)
        if match:
            return match.group(1)
    return ""


def html_to_markdown(html: str) -> str:
    """Convert documentation HTML to Markdown (ATX headings, fenced code, GFM tables)."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    markdown = md_convert(
        str(soup),
        heading_style=ATX,
        bullets="-",
        code_language_callback=_code_language,
    )
    return re.sub(r"\n{3,}", "\n\n", markdown).strip()


def html_to_text(html: str) -> str:
    """Strip boiler-plate and markup from *html*, keeping block structure as newlines."""
    soup = BeautifulSoup(html, "html.parser")
    root = soup.body or soup
    for tag in root(_BOILERPLATE_TAGS):
        tag.decompose()
    for tag in root.find_all(_BLOCK_TAGS):
        tag.insert_after("\n")

    text = root.get_text(separator=" ")
    text = unicodedata.normalize("NFC", text).replace("\xa0", " ")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def page_title(html: str, fallback: str) -> str:
    """Best-effort page title with the trailing site suffix removed."""
    match = re.search(r"<title[^>]*>([^<]+)</title>", html, re.IGNORECASE)
    if not match:
        return fallback
    title = re.sub(r"\s*[|–-].*$", "", match.group(1).strip())
    return title or fallback


def normalize_links(
    hrefs: Iterable[str],
    base_url: str,
    base_domain: str | None = None,
) -> list[str]:
    """Resolve, filter and de-duplicate crawlable links, preserving order."""
    seen: dict[str, None] = {}
    for href in hrefs:
        href = (href or "").strip()
        if not href or href.startswith("#") or href.lower().startswith(_SKIPPED_SCHEMES):
            continue
        absolute = urljoin(base_url, href)
        if base_domain and not absolute.startswith(base_domain):
            continue
        seen.setdefault(absolute, None)
    return list(seen)


def extract_hrefs(html: str) -> list[str]:
    soup = BeautifulSoup(html, "html.parser")
    return [a["href"] for a in soup.find_all("a", href=True)]


def content_hash(markdown: str) -> str:
    return hashlib.sha256(markdown.encode("utf-8")).hexdigest()
