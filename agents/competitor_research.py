"""
agents/competitor_research.py
=============================
Search, scrape and aggregate the top competitor pages for one query.

Flow of ``CompetitorResearcher.research``:

    cache hit   -> cached report (no network)
    cache miss  -> search        (SearchFailure propagates, nothing cached)
                -> scrape        (sequential, throttled, failures -> placeholder)
                -> aggregate
                -> cache + return

An optional ``asyncio.Event`` aborts the scrape loop. The report built so
far is returned with ``partial=True`` and is not cached.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

import structlog

from app.config import DEFAULT_TOP_N, MAX_TOP_N, PAGE_FETCH_TIMEOUT, SERP_CACHE_TTL_SECONDS
from app.errors import InvalidAnalysisRequest
from graph.state import CompetitorPage, SearchResult, SerpCompetitorReport
from memory.cache import TTLCache, make_key
from tools.aggregation import aggregate_signals
from tools.page_features import extract_page_features
from tools.search import fetch_search_results
from tools.throttle import RandomDelayThrottle
from tools.web_fetcher import fetch_page_html

logger = structlog.get_logger(__name__)

DEFAULT_LANGUAGE = "us-en"
MIN_QUERY_LENGTH = 2

SearchFn = Callable[..., Awaitable[List[SearchResult]]]
FetchPageFn = Callable[..., Awaitable[str]]


def clamp_top_n(top_n: Optional[int], default: int = DEFAULT_TOP_N) -> int:
    try:
        value = int(top_n) if top_n is not None else default
    except (TypeError, ValueError):
        value = default
    return max(1, min(MAX_TOP_N, value))


class CompetitorResearcher:
    """
    Produce SerpCompetitorReport objects, cached per (query, top_n, language).

    The search function, page fetcher, cache and throttle are injected so the
    whole flow can run offline in tests.
    """

    def __init__(
        self,
        search: SearchFn = fetch_search_results,
        fetch_page: FetchPageFn = fetch_page_html,
        cache: Optional[TTLCache] = None,
        throttle: Optional[RandomDelayThrottle] = None,
        page_timeout: float = PAGE_FETCH_TIMEOUT,
        top_n: int = DEFAULT_TOP_N,
    ) -> None:
        self.search = search
        self.fetch_page = fetch_page
        self.cache = cache if cache is not None else TTLCache(SERP_CACHE_TTL_SECONDS, name="serp")
        self.throttle = throttle if throttle is not None else RandomDelayThrottle()
        self.page_timeout = page_timeout
        self.top_n = clamp_top_n(top_n)

    async def _scrape(self, result: SearchResult, query: str) -> CompetitorPage:
        log = logger.bind(url=result.url)
        try:
            html = await asyncio.wait_for(
                self.fetch_page(result.url, timeout=self.page_timeout),
                timeout=self.page_timeout,
            )
            return extract_page_features(html, query, result.url, result.title)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning(
                "competitor_research.page_failed",
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            return CompetitorPage.placeholder(result.url, result.title)

    async def research(
        self,
        query: str,
        *,
        top_n: Optional[int] = None,
        lang: str = DEFAULT_LANGUAGE,
        abort: Optional[asyncio.Event] = None,
    ) -> SerpCompetitorReport:
        """
        Run (or serve from cache) the competitor research for *query*.

        Args:
            query: Search text, at least two characters after trimming.
            top_n: Results to scrape, clamped to 1..10. Defaults to the instance value.
            lang: Search region hint, e.g. "us-en" or "tr-tr".
            abort: When set, no further pages are fetched.

        Raises:
            InvalidAnalysisRequest: For an empty or too-short query.
            SearchFailure: When the search step fails.
        """
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise InvalidAnalysisRequest("query must be at least 2 characters")

        n = clamp_top_n(top_n, self.top_n)
        key = make_key(query, n, lang)
        log = logger.bind(query=query, top_n=n, lang=lang)

        cached = self.cache.get(key)
        if cached is not None:
            log.info("competitor_research.cache_hit")
            return cached

        results = (await self.search(query, top_n=n, lang=lang))[:n]
        log.info("competitor_research.search_complete", results=len(results))

        competitors: List[CompetitorPage] = []
        aborted = False
        for result in results:
            if abort is not None and abort.is_set():
                aborted = True
                break
            await self.throttle.wait()
            if abort is not None and abort.is_set():
                aborted = True
                break
            competitors.append(await self._scrape(result, query))

        report = SerpCompetitorReport(
            query=query,
            language=lang,
            serp_results=results,
            competitors=competitors,
            signals=aggregate_signals(competitors, [r.snippet for r in results], query),
            partial=aborted,
        )

        if aborted:
            log.warning(
                "competitor_research.aborted",
                fetched=len(competitors),
                remaining=len(results) - len(competitors),
            )
            return report

        self.cache.set(key, report)
        log.info(
            "competitor_research.complete",
            competitors=len(competitors),
            failed=sum(1 for c in competitors if not c.fetched),
        )
        return report
