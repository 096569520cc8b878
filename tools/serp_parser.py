"""
tools/serp_parser.py
====================
Turn a DuckDuckGo HTML results page into an ordered list of SearchResult.

Extraction rules:
    result links  – ``<a class="result__a" href=...>`` (title = anchor text)
    snippets      – ``<a class="result__snippet">`` or ``<div class="result__snippet">``

Links and snippets are siblings rather than nested, so they are collected
separately and paired by position. A page with fewer snippets than links
gets ``""`` for the missing ones.

Result hrefs are usually redirect wrappers
(``//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2F``); they are
resolved to the destination URL before de-duplication.
"""

from __future__ import annotations

from typing import List
from urllib.parse import parse_qs, unquote, urljoin, urlparse

import structlog
from bs4 import BeautifulSoup

from app.config import SEARCH_ORIGIN
from graph.state import SearchResult
from tools.html_text import normalize_text

logger = structlog.get_logger(__name__)

# Query parameters that carry the real destination on the redirector.
TARGET_PARAMS = ("uddg", "r")
MAX_DECODE_PASSES = 3


def multi_decode(value: str, max_passes: int = MAX_DECODE_PASSES) -> str:
    """Percent-decode *value* until it stops changing, at most *max_passes* times."""
    current = value
    for _ in range(max_passes):
        decoded = unquote(current)
        if decoded == current:
            break
        current = decoded
    return current


def _host(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def _is_search_host(host: str, origin: str) -> bool:
    search_host = _host(origin)
    if not host or not search_host:
        return False
    # duckduckgo.com also serves html.duckduckgo.com / links.duckduckgo.com
    base = search_host[4:] if search_host.startswith("www.") else search_host
    return host == base or host.endswith("." + base)


def normalize_serp_url(raw_url: str, origin: str = SEARCH_ORIGIN) -> str:
    """Resolve a result href to its final destination URL.

    Protocol-relative (``//host/...``) and absolute-path (``/l/?...``) hrefs
    are resolved against *origin*. When the resolved URL lives on the search
    engine host and carries a target parameter, the decoded target is
    returned instead.
    """
    if not raw_url:
        return ""

    url = raw_url.strip()
    if url.startswith("//"):
        url = "https:" + url
    elif url.startswith("/"):
        url = urljoin(origin, url)

    try:
        parsed = urlparse(url)
    except ValueError:
        return raw_url

    if _is_search_host((parsed.hostname or "").lower(), origin):
        # parse_qs performs the first decode pass itself.
        params = parse_qs(parsed.query)
        for name in TARGET_PARAMS:
            values = params.get(name)
            if values and values[0]:
                return multi_decode(values[0])

    return url


def _is_usable(url: str, origin: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    # Ads (/y.js) and unresolved wrappers point back at the engine itself.
    return not _is_search_host(parsed.hostname.lower(), origin)


def parse_search_results(html: str, origin: str = SEARCH_ORIGIN) -> List[SearchResult]:
    """Parse a search results page.

    Args:
        html: Raw HTML of the results page.
        origin: Search engine origin used to resolve relative hrefs.

    Returns:
        Results in document order, de-duplicated by final URL (first wins).
        An empty list when nothing matches; this is not an error.
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")

    anchors = soup.find_all("a", class_="result__a")
    snippet_tags = soup.find_all(["a", "div"], class_="result__snippet")
    snippets = [normalize_text(tag.get_text(separator=" ")) for tag in snippet_tags]

    results: List[SearchResult] = []
    seen: set[str] = set()
    skipped = 0

    for index, anchor in enumerate(anchors):
        final_url = normalize_serp_url(anchor.get("href", ""), origin)
        if not final_url or not _is_usable(final_url, origin):
            skipped += 1
            continue
        if final_url in seen:
            skipped += 1
            continue
        seen.add(final_url)

        results.append(
            SearchResult(
                url=final_url,
                title=normalize_text(anchor.get_text(separator=" ")),
                snippet=snippets[index] if index < len(snippets) else "",
            )
        )

    logger.debug(
        "serp_parser.parsed",
        anchors=len(anchors),
        snippets=len(snippets),
        results=len(results),
        skipped=skipped,
    )
    return results
