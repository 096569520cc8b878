"""
tools/trends.py
===============
Google Trends fetchers behind ``TrendsMeasurementProvider``.

pytrends is synchronous, so each request runs in a worker thread:

    client = GoogleTrendsClient()
    series = await client.fetch_interest("cold brew", "DE")   # 0-100, oldest first
    queries = await client.fetch_related("cold brew", "DE")   # top related queries

A fresh ``TrendReq`` session is opened per request because building one
already talks to Google (cookie handshake). Errors are not caught here; the
measurement provider logs them and falls back per value.
"""

import asyncio
from typing import Any, Callable, List, Optional

import structlog
from pytrends.request import TrendReq

from app.config import (
    TRENDS_ENABLED,
    TRENDS_HL,
    TRENDS_INTEREST_TIMEFRAME,
    TRENDS_RELATED_TIMEFRAME,
    TRENDS_TIMEOUT,
    TRENDS_TZ,
)
from tools.measurements import (
    HeuristicMeasurementProvider,
    MeasurementProvider,
    TrendsMeasurementProvider,
)

logger = structlog.get_logger(__name__)


class GoogleTrendsClient:
    """Interest-over-time and related-query lookups for a single keyword.

    Args:
        hl: Interface language sent to Google Trends.
        tz: Timezone offset in minutes.
        timeout: Connect and read timeout per HTTP request, in seconds.
        interest_timeframe: Window for the interest series (one year by default).
        related_timeframe: Window for related queries (three months by default).
        session_factory: Builds the pytrends session; injectable for tests.
    """

    def __init__(
        self,
        hl: str = TRENDS_HL,
        tz: int = TRENDS_TZ,
        timeout: float = TRENDS_TIMEOUT,
        interest_timeframe: str = TRENDS_INTEREST_TIMEFRAME,
        related_timeframe: str = TRENDS_RELATED_TIMEFRAME,
        session_factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.hl = hl
        self.tz = tz
        self.timeout = timeout
        self.interest_timeframe = interest_timeframe
        self.related_timeframe = related_timeframe
        self._session_factory = session_factory or TrendReq

    def _session(self, keyword: str, geo: str, timeframe: str) -> Any:
        session = self._session_factory(hl=self.hl, tz=self.tz, timeout=(self.timeout, self.timeout))
        session.build_payload([keyword], timeframe=timeframe, geo=geo)
        return session

    def _interest_sync(self, keyword: str, geo: str) -> List[float]:
        frame = self._session(keyword, geo, self.interest_timeframe).interest_over_time()
        if frame is None or frame.empty or keyword not in frame.columns:
            return []
        return [float(value) for value in frame[keyword].tolist()]

    def _related_sync(self, keyword: str, geo: str) -> List[str]:
        related = self._session(keyword, geo, self.related_timeframe).related_queries() or {}
        top = (related.get(keyword) or {}).get("top")
        if top is None or top.empty or "query" not in top.columns:
            return []
        return [str(query) for query in top["query"].tolist() if query]

    async def fetch_interest(self, keyword: str, geo: str) -> List[float]:
        values = await asyncio.to_thread(self._interest_sync, keyword, geo)
        logger.debug("trends.interest", keyword=keyword, geo=geo or "global", points=len(values))
        return values

    async def fetch_related(self, keyword: str, geo: str) -> List[str]:
        queries = await asyncio.to_thread(self._related_sync, keyword, geo)
        logger.debug("trends.related", keyword=keyword, geo=geo or "global", queries=len(queries))
        return queries


def build_measurement_provider(
    enabled: Optional[bool] = None,
    client: Optional[GoogleTrendsClient] = None,
) -> MeasurementProvider:
    """Google Trends backed provider when enabled, phrase-length heuristics otherwise."""
    if enabled is None:
        enabled = TRENDS_ENABLED
    if not enabled:
        logger.info("trends.disabled")
        return HeuristicMeasurementProvider()

    client = client if client is not None else GoogleTrendsClient()
    return TrendsMeasurementProvider(client.fetch_interest, client.fetch_related)
