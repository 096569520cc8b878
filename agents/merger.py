"""Merge measured data and scraped competitors over the AI-drafted analysis."""

from typing import List, Optional, Sequence
from urllib.parse import urlparse

import structlog

from graph.state import (
    AnalysisResult,
    CompetitorEntry,
    Measurements,
    RelevanceScore,
    SerpCompetitorReport,
)

logger = structlog.get_logger(__name__)

MAX_NEW_RELATED_KEYWORDS = 3
UNTITLED = "Untitled"


def domain_of(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def _merge_target_keywords(existing: List[str], related: Sequence[str]) -> List[str]:
    seen = set(existing)
    fresh = [kw for kw in dict.fromkeys(related) if kw and kw not in seen]
    return [*fresh[:MAX_NEW_RELATED_KEYWORDS], *existing]


def merge_analysis(
    base: AnalysisResult,
    measurements: Measurements,
    report: Optional[SerpCompetitorReport] = None,
    scores: Sequence[RelevanceScore] = (),
) -> AnalysisResult:
    """
    Combine the three sources into the final AnalysisResult.

    - trend, search volume and competition always come from *measurements*;
      the model's own estimates for them are discarded.
    - up to three related keywords not already targeted are put in front of
      the target keywords.
    - with a report, top pages become the scraped competitors (title from
      the search result, domain from the URL host, AI relevance score
      aligned by position), common headings are replaced when the report has
      any, and the aggregate signals are attached.

    *base* is not modified.
    """
    result = base.model_copy(deep=True)

    metrics = result.keyword_metrics
    metrics.trend = measurements.trend
    metrics.search_volume = measurements.search_volume
    metrics.competition = measurements.competition

    suggestions = result.content_suggestions
    suggestions.target_keywords = _merge_target_keywords(
        suggestions.target_keywords, measurements.related_keywords
    )

    if report is not None:
        top_pages: List[CompetitorEntry] = []
        for index, page in enumerate(report.competitors):
            score = scores[index] if index < len(scores) else None
            top_pages.append(
                CompetitorEntry(
                    title=page.title or UNTITLED,
                    domain=domain_of(page.url),
                    url=page.url,
                    relevance_score=score.score if score else 0,
                    relevance_reason=score.reason if score else "",
                )
            )
        result.competitor_analysis.top_pages = top_pages

        if report.signals.common_headings:
            result.competitor_analysis.common_headings = list(report.signals.common_headings)
        result.serp_signals = report.signals.model_copy(deep=True)

    logger.info(
        "merger.merged",
        topic=result.topic,
        trend=metrics.trend,
        search_volume=metrics.search_volume,
        competition=metrics.competition,
        top_pages=len(result.competitor_analysis.top_pages),
        partial=report.partial if report is not None else None,
    )
    return result
