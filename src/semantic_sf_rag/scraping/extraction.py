"""In-page content extraction for rendered Salesforce documentation.

The script below is executed inside the page with
``driver.execute_script`` and returns a plain object::

    {"html": str, "title": str, "error": str | undefined, "childLinks": [str]}

Strategies, tried in order:

1. iframe-hosted developer guides (``#doc`` inside the frame)
2. ``.slds-text-longform`` anywhere in the shadow-DOM tree (Help site)
3. ``doc-xml-content`` → ``doc-content`` nested shadow roots
4. ``doc-amf-reference .markdown-content`` and ``doc-content-layout`` slots
5. ``<article>`` / ``<main>``, then the whole ``<body>``
"""

from __future__ import annotations

from typing import Any

NO_CONTENT_ERROR = (
    "Found no accessible documentation content on this page. It may require "
    "authentication, be a soft 404, rendering timed out, or JavaScript rendering is required."
)
SOFT_404_ERROR = "HTTP 404 - Page Not Found"

EXTRACTION_SCRIPT = """
const NO_CONTENT = arguments[0];
const SOFT_404 = arguments[1];

const titleEl = document.querySelector('title');
let title = (titleEl && titleEl.innerText) || 'Untitled';
const childLinks = new Set();

function collectLinks(root) {
    root.querySelectorAll('a').forEach(a => {
        if (a.href && !a.href.startsWith('java') && !a.href.startsWith('mailto')) {
            childLinks.add(a.href);
        }
    });
}

function shadowRoots(root) {
    const found = [];
    const all = root.querySelectorAll('*');
    for (let i = 0; i < all.length; i++) {
        if (all[i].shadowRoot) found.push(all[i].shadowRoot);
    }
    return found;
}

const pending = [document];
while (pending.length > 0) {
    const current = pending.pop();
    collectLinks(current);
    pending.push(...shadowRoots(current));
}

if (title.includes('404 Error')) {
    return {html: '', title: 'Error', error: SOFT_404, childLinks: Array.from(childLinks)};
}

if (document.body && document.body.innerText.includes('Sorry to interrupt')) {
    return {html: '', title: 'Error', error: NO_CONTENT, childLinks: []};
}

const iframe = document.querySelector('iframe');
let frameDoc = null;
try { frameDoc = iframe && iframe.contentDocument; } catch (e) { frameDoc = null; }
if (frameDoc && frameDoc.body) {
    const docEl = frameDoc.querySelector('#doc') || frameDoc.querySelector('body');
    const docHtml = (docEl && docEl.innerHTML) || '';
    const frameTitleEl = frameDoc.querySelector('title') || frameDoc.querySelector('h1');
    const docTitle = (frameTitleEl && frameTitleEl.innerText) || 'Untitled';
    collectLinks(frameDoc);
    if (docHtml.length > 500) {
        return {html: docHtml, title: docTitle, childLinks: Array.from(childLinks)};
    }
}

let longform = null;
const searchRoots = [document];
while (searchRoots.length > 0 && !longform) {
    const current = searchRoots.pop();
    longform = current.querySelector('.slds-text-longform');
    if (!longform) searchRoots.push(...shadowRoots(current));
}
if (longform) {
    title = title.replace(' | Salesforce', '').trim();
    return {html: longform.innerHTML, title: title, childLinks: Array.from(childLinks)};
}

const docXml = document.querySelector('doc-xml-content');
if (docXml && docXml.shadowRoot) {
    const docContent = docXml.shadowRoot.querySelector('doc-content');
    if (docContent && docContent.shadowRoot) {
        const innerHtml = docContent.shadowRoot.innerHTML;
        const h1 = innerHtml.match(/<h1[^>]*>(.*?)<\\/h1>/);
        if (h1) title = h1[1].replace(/<[^>]*>?/gm, '');
        collectLinks(docContent.shadowRoot);
        return {html: innerHtml, title: title, childLinks: Array.from(childLinks)};
    }
}

const docRef = document.querySelector('doc-amf-reference');
if (docRef) {
    const md = docRef.querySelector('.markdown-content');
    if (md) {
        const h1 = md.querySelector('h1');
        if (h1 && h1.textContent) title = h1.textContent.trim();
        return {html: md.innerHTML, title: title, childLinks: Array.from(childLinks)};
    }
}

const layout = document.querySelector('doc-content-layout');
if (layout && layout.shadowRoot) {
    const slot = layout.shadowRoot.querySelector('.content-body slot');
    if (slot) {
        const assigned = slot.assignedElements();
        if (assigned.length > 0) {
            let guideHtml = '';
            for (const el of assigned) {
                if (el.tagName && el.tagName.toLowerCase() === 'h1' && el.textContent) {
                    title = el.textContent.trim();
                }
                guideHtml += el.outerHTML;
            }
            return {html: guideHtml, title: title, childLinks: Array.from(childLinks)};
        }
    }
}

const container = document.querySelector('article') || document.querySelector('main');
if (container) {
    const h1 = document.querySelector('h1');
    if (h1 && h1.innerText) title = h1.innerText;
    return {html: container.innerHTML, title: title, childLinks: Array.from(childLinks)};
}

const isHelpSite = window.location.href.includes('help.salesforce.com');
if (isHelpSite || document.body.innerHTML.length > 100000) {
    return {html: '', title: 'Error', error: NO_CONTENT, childLinks: []};
}

return {html: document.body.innerHTML, title: title, childLinks: Array.from(childLinks)};
"""

DEVELOPER_READY_SCRIPT = """
return Boolean(
    document.querySelector('doc-content-layout') ||
    document.querySelector('doc-xml-content') ||
    document.querySelector('iframe')
);
"""


def run_extraction(driver: Any) -> dict[str, Any]:
    """Execute :data:`EXTRACTION_SCRIPT` in the current page."""
    result = driver.execute_script(EXTRACTION_SCRIPT, NO_CONTENT_ERROR, SOFT_404_ERROR) or {}
    return {
        "html": result.get("html") or "",
        "title": result.get("title") or "Untitled",
        "error": result.get("error"),
        "child_links": list(result.get("childLinks") or []),
    }
