"""
tools/search.py
===============
Fetch a DuckDuckGo HTML results page and parse it into SearchResult objects.

The public surface is a single coroutine:

    results = await fetch_search_results("best coffee shops", top_n=8, lang="us-en")

Transport errors, non-2xx responses and empty bodies raise ``SearchFailure``
once every attempt has failed. A page that parses to zero results returns
``[]``; "no results" is a valid outcome that callers may cache.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

import httpx
import structlog

from app.config import (
    ACCEPT_LANGUAGE,
    SEARCH_ENDPOINT,
    SEARCH_MAX_ATTEMPTS,
    SEARCH_ORIGIN,
    SEARCH_TIMEOUT,
    USER_AGENT,
)
from app.errors import SearchFailure
from graph.state import SearchResult
from tools.serp_parser import parse_search_results

logger = structlog.get_logger(__name__)

BASE_DELAY = 1.0


def _is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


async def _get_results_page(
    client: httpx.AsyncClient, query: str, lang: str, timeout: float
) -> str:
    response = await asyncio.wait_for(
        client.get(
            SEARCH_ENDPOINT,
            params={"q": query, "kl": lang},
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml",
                "Accept-Language": ACCEPT_LANGUAGE,
            },
        ),
        timeout=timeout,
    )
    response.raise_for_status()
    return response.text


async def fetch_search_results(
    query: str,
    *,
    top_n: int,
    lang: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = SEARCH_TIMEOUT,
    max_attempts: int = SEARCH_MAX_ATTEMPTS,
) -> List[SearchResult]:
    """
    Query the search endpoint with retries and exponential backoff.

    Parameters
    ----------
    query:
        The search text.
    top_n:
        Number of results to keep (parsed results are truncated to this).
    lang:
        Region/locale hint passed as the ``kl`` parameter (e.g. "us-en", "tr-tr").
    client:
        Optional shared AsyncClient; a private one is created otherwise.
    timeout:
        Overall timeout per attempt, in seconds.
    max_attempts:
        Attempts before giving up. Only transient failures are retried.

    Returns
    -------
    List[SearchResult]
        At most ``top_n`` results, possibly empty.

    Raises
    ------
    SearchFailure
        When the endpoint is unreachable or returns unusable content.
    """
    log = logger.bind(query=query, lang=lang, top_n=top_n)

    if not query or not query.strip():
        raise SearchFailure("Search query is empty")

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(follow_redirects=True)

    last_error: Optional[SearchFailure] = None
    try:
        for attempt in range(1, max(1, max_attempts) + 1):
            try:
                html = await _get_results_page(client, query, lang, timeout)

                if not html or not html.strip():
                    raise SearchFailure("Search endpoint returned an empty body")

                results = parse_search_results(html, origin=SEARCH_ORIGIN)[:top_n]
                log.info("search.success", result_count=len(results), attempt=attempt)
                return results

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                last_error = SearchFailure(
                    f"Search request failed: {status}", status_code=status
                )
                if not _is_transient_status(status):
                    log.error("search.permanent_error", status_code=status)
                    raise last_error from e
                log.warning("search.status_error", status_code=status, attempt=attempt)

            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                last_error = SearchFailure(f"Search request timed out after {timeout}s")
                last_error.__cause__ = e
                log.warning("search.timeout", attempt=attempt, timeout=timeout)

            except httpx.RequestError as e:
                last_error = SearchFailure(f"Search request failed: {e}")
                last_error.__cause__ = e
                log.warning("search.network_error", attempt=attempt, error=str(e))

            except SearchFailure as e:
                last_error = e
                log.warning("search.unusable_response", attempt=attempt, error=str(e))

            if attempt < max_attempts:
                delay = BASE_DELAY * (2 ** (attempt - 1))
                log.debug("search.retry", next_attempt=attempt + 1, delay=delay)
                await asyncio.sleep(delay)
    finally:
        if owns_client:
            await client.aclose()

    log.error("search.failed_all", max_attempts=max_attempts)
    raise last_error or SearchFailure("Search failed")
