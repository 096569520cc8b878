"""
tools/web_fetcher.py
====================
Fetch the raw HTML of a competitor page.

Competitor fetches are made one at a time behind a politeness throttle.
Each URL gets a single attempt; the caller records a slow or failing site
as a placeholder.

Primary function: `fetch_page_html` (async)
"""

import asyncio
from typing import Optional

import httpx
import structlog

from app.config import ACCEPT_LANGUAGE, PAGE_FETCH_TIMEOUT, SEARCH_ORIGIN, USER_AGENT
from app.errors import PageFetchFailure

logger = structlog.get_logger(__name__)

PAGE_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": ACCEPT_LANGUAGE,
    "Referer": SEARCH_ORIGIN + "/",
}


async def fetch_page_html(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = PAGE_FETCH_TIMEOUT,
) -> str:
    """
    Fetch *url* and return the response body.

    Args:
        url: Page to fetch.
        client: Optional shared AsyncClient; a private one is created otherwise.
        timeout: Overall timeout for the request, in seconds.

    Returns:
        The decoded response text.

    Raises:
        PageFetchFailure: On an empty URL, a non-2xx status, a timeout or a
            transport error.
    """
    log = logger.bind(url=url)

    if not url or not url.strip():
        raise PageFetchFailure(url or "", "empty url")

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(follow_redirects=True)

    try:
        response = await asyncio.wait_for(
            client.get(url, headers=PAGE_HEADERS), timeout=timeout
        )
        response.raise_for_status()
        log.debug("fetch_page_html.success", chars=len(response.text))
        return response.text

    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        log.warning("fetch_page_html.status_error", status_code=status)
        raise PageFetchFailure(url, f"status {status}", status_code=status) from e
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        log.warning("fetch_page_html.timeout", timeout=timeout)
        raise PageFetchFailure(url, f"timed out after {timeout}s") from e
    except httpx.RequestError as e:
        log.warning("fetch_page_html.network_error", error=str(e))
        raise PageFetchFailure(url, str(e) or type(e).__name__) from e
    finally:
        if owns_client:
            await client.aclose()
