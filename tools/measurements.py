"""
tools/measurements.py
=====================
Trend, search volume and competition for a topic.

Measured values always win over the model's own guesses during the merge,
so this module never raises: a provider that cannot reach its data source
falls back to phrase-length heuristics for each value independently.

    provider = TrendsMeasurementProvider(fetch_interest, fetch_related)
    m = await provider.measure("best coffee shops", "Turkey")
    m.trend, m.search_volume, m.competition, m.related_keywords

``fetch_interest(keyword, geo)`` returns a 0-100 interest series, oldest
first; ``fetch_related(keyword, geo)`` returns ranked related queries.
"""

from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple

import structlog

from graph.state import Competition, Measurements, Trend
from tools.geo import geo_code

logger = structlog.get_logger(__name__)

MIN_TREND_POINTS = 6
TREND_WINDOW = 3
TREND_THRESHOLD = 0.10
MIN_VOLUME = 100
RELATED_KEYWORDS_LIMIT = 5

# (minimum average interest, monthly searches per interest point)
VOLUME_BANDS: Tuple[Tuple[float, int], ...] = (
    (90, 50000),
    (80, 25000),
    (70, 15000),
    (60, 8000),
    (50, 5000),
    (40, 3000),
    (30, 2000),
    (20, 1500),
    (10, 1000),
    (0, 500),
)

InterestFetcher = Callable[[str, str], Awaitable[Sequence[float]]]
RelatedFetcher = Callable[[str, str], Awaitable[Sequence[str]]]


def _positive(values: Sequence[float]) -> List[float]:
    out: List[float] = []
    for value in values or ():
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if number > 0:
            out.append(number)
    return out


def analyze_trend(values: Sequence[float]) -> Trend:
    """Compare the mean of the last three points against the three before them.

    Zero points are ignored. Fewer than six usable points is "Stable".
    """
    points = _positive(values)
    if len(points) < MIN_TREND_POINTS:
        return "Stable"

    recent = points[-TREND_WINDOW:]
    previous = points[-2 * TREND_WINDOW:-TREND_WINDOW]
    recent_avg = sum(recent) / len(recent)
    previous_avg = sum(previous) / len(previous)

    change = (recent_avg - previous_avg) / previous_avg
    if change > TREND_THRESHOLD:
        return "Rising"
    if change < -TREND_THRESHOLD:
        return "Falling"
    return "Stable"


def average_interest(values: Sequence[float]) -> float:
    points = _positive(values)
    return sum(points) / len(points) if points else 0.0


def estimate_volume(values: Sequence[float]) -> Optional[int]:
    """Monthly search volume from an interest series; ``None`` without data."""
    avg = average_interest(values)
    if avg <= 0:
        return None
    for floor, multiplier in VOLUME_BANDS:
        if avg >= floor:
            return max(MIN_VOLUME, int(avg * multiplier))
    return MIN_VOLUME


def estimate_competition(related_count: int, avg_interest: float) -> Competition:
    if related_count > 20 and avg_interest > 60:
        return "High"
    if related_count > 10 or avg_interest > 40:
        return "Medium"
    return "Low"


def _word_count(keyword: str) -> int:
    return len(keyword.split())


def heuristic_volume(keyword: str) -> int:
    """Short head terms get more searches than long-tail phrases."""
    words = _word_count(keyword)
    if words <= 2:
        return 50000
    if words >= 4:
        return 1000
    return 5000


def heuristic_competition(keyword: str) -> Competition:
    return "Low" if _word_count(keyword) >= 4 else "Medium"


class MeasurementProvider(Protocol):
    async def measure(self, topic: str, location: str) -> Measurements: ...


class HeuristicMeasurementProvider:
    """Phrase-length estimates, used when no trends source is configured."""

    async def measure(self, topic: str, location: str) -> Measurements:
        return Measurements(
            trend="Stable",
            search_volume=heuristic_volume(topic),
            competition=heuristic_competition(topic),
            related_keywords=[],
        )


class TrendsMeasurementProvider:
    """Measurements derived from an interest-over-time series and related queries.

    Both fetchers are injected. A failing fetcher only affects the values
    that depend on it.
    """

    def __init__(self, fetch_interest: InterestFetcher, fetch_related: RelatedFetcher) -> None:
        self.fetch_interest = fetch_interest
        self.fetch_related = fetch_related

    async def measure(self, topic: str, location: str) -> Measurements:
        geo = geo_code(location)
        log = logger.bind(topic=topic, geo=geo or "global")

        interest: Optional[List[float]] = None
        try:
            interest = _positive(await self.fetch_interest(topic, geo))
        except Exception as e:
            log.warning("measurements.interest_failed", error=str(e) or type(e).__name__)

        related: Optional[List[str]] = None
        try:
            related = [str(q) for q in await self.fetch_related(topic, geo) if q]
        except Exception as e:
            log.warning("measurements.related_failed", error=str(e) or type(e).__name__)

        trend: Trend = analyze_trend(interest) if interest else "Stable"
        volume = estimate_volume(interest) if interest else None
        if volume is None:
            volume = heuristic_volume(topic)

        if interest is None and related is None:
            competition = heuristic_competition(topic)
        else:
            competition = estimate_competition(len(related or []), average_interest(interest or []))

        measurements = Measurements(
            trend=trend,
            search_volume=volume,
            competition=competition,
            related_keywords=(related or [])[:RELATED_KEYWORDS_LIMIT],
        )
        log.info(
            "measurements.complete",
            trend=measurements.trend,
            search_volume=measurements.search_volume,
            competition=measurements.competition,
            related=len(measurements.related_keywords),
        )
        return measurements
