"""Shared data models and graph state for the competitor analysis pipeline.

This module defines the Pydantic models passed between the scraping tools,
the AI agents and the LangGraph workflow, plus the ``AnalysisState``
TypedDict that flows through the graph nodes.

Models that travel through the AI JSON contract (``AnalysisResult`` and its
sections) use camelCase aliases so that model output such as
``{"keywordMetrics": {"searchVolume": 1200}}`` validates directly, while
Python code works with snake_case attributes.
"""

import math
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Trend = Literal["Rising", "Stable", "Falling"]
Competition = Literal["Low", "Medium", "High"]


def clamp_score(value: Any) -> int:
    """Coerce *value* to an int in [0, 100]; anything non-numeric becomes 0."""
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    return int(round(max(0.0, min(100.0, number))))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Scraping models
# ---------------------------------------------------------------------------


class SearchResult(_CamelModel):
    """One organic result parsed from the search results page.

    Attributes:
        url: De-referenced destination URL (never a search redirect wrapper).
        title: Normalised anchor text.
        snippet: Normalised snippet text, empty when the page had none.
    """

    url: str
    title: str = ""
    snippet: str = ""


class CompetitorPage(_CamelModel):
    """Features extracted from one fetched competitor page.

    Attributes:
        url: Page URL.
        title: Title taken from the search result.
        h2: Second-level heading texts in document order.
        h3: Third-level heading texts in document order.
        entities: De-duplicated union of content keywords and meta keywords.
        structured_entities: Strings pulled from JSON-LD blocks.
        fetched: False for the placeholder recorded after a failed fetch.
    """

    url: str
    title: str = ""
    h2: List[str] = Field(default_factory=list)
    h3: List[str] = Field(default_factory=list)
    entities: List[str] = Field(default_factory=list)
    structured_entities: List[str] = Field(default_factory=list)
    fetched: bool = True

    @property
    def headings(self) -> List[str]:
        return [*self.h2, *self.h3]

    @classmethod
    def placeholder(cls, url: str, title: str = "") -> "CompetitorPage":
        return cls(url=url, title=title, fetched=False)


class AggregateSignals(_CamelModel):
    """Cross-competitor aggregates."""

    common_headings: List[str] = Field(default_factory=list)
    common_keywords: List[str] = Field(default_factory=list)
    suggested_outline: List[str] = Field(default_factory=list)
    content_gaps: List[str] = Field(default_factory=list)


class SerpCompetitorReport(_CamelModel):
    """Raw search + scrape aggregate for one query (cached for 15 minutes).

    Attributes:
        query: The search text.
        language: Search region/locale hint sent with the query.
        serp_results: Parsed search results, truncated to top-N.
        competitors: One CompetitorPage per scraped result (placeholders included).
        signals: Aggregated headings / keywords / outline / gaps.
        partial: True when the run was aborted before every page was fetched.
        generated_at: UTC creation time.
    """

    query: str
    language: str = ""
    serp_results: List[SearchResult] = Field(default_factory=list)
    competitors: List[CompetitorPage] = Field(default_factory=list)
    signals: AggregateSignals = Field(default_factory=AggregateSignals)
    partial: bool = False
    generated_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Measurement & scoring models
# ---------------------------------------------------------------------------


class Measurements(_CamelModel):
    """Values supplied by the external measurement collaborator."""

    trend: Trend = "Stable"
    search_volume: int = 0
    competition: Competition = "Medium"
    related_keywords: List[str] = Field(default_factory=list)


class RelevanceScore(_CamelModel):
    """AI relevance judgement for one competitor."""

    url: str
    score: int = 0
    reason: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return clamp_score(value)


# ---------------------------------------------------------------------------
# Analysis result (AI JSON contract)
# ---------------------------------------------------------------------------


class KeywordMetrics(_CamelModel):
    search_volume: int = 0
    competition: Competition = "Medium"
    trend: Trend = "Stable"
    cpc: float = 0.0
    difficulty: int = 0

    @field_validator("difficulty", mode="before")
    @classmethod
    def _clamp_difficulty(cls, value: Any) -> int:
        return clamp_score(value)

    @field_validator("search_volume", mode="before")
    @classmethod
    def _coerce_volume(cls, value: Any) -> int:
        try:
            return max(0, int(float(value)))
        except (TypeError, ValueError):
            return 0

    @field_validator("competition", mode="before")
    @classmethod
    def _coerce_competition(cls, value: Any) -> str:
        text = str(value or "").strip().capitalize()
        return text if text in ("Low", "Medium", "High") else "Medium"

    @field_validator("trend", mode="before")
    @classmethod
    def _coerce_trend(cls, value: Any) -> str:
        text = str(value or "").strip().capitalize()
        return text if text in ("Rising", "Stable", "Falling") else "Stable"


class CompetitorEntry(_CamelModel):
    """A competitor as presented to the caller.

    ``relevance_score`` is an AI judgement of topical relevance and coverage.
    It is not a backlink or domain-authority metric.
    """

    title: str = "Untitled"
    domain: str = ""
    url: str = ""
    relevance_score: int = 0
    relevance_reason: str = ""

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return clamp_score(value)


class CompetitorAnalysis(_CamelModel):
    top_pages: List[CompetitorEntry] = Field(default_factory=list)
    average_word_count: int = 0
    common_headings: List[str] = Field(default_factory=list)


class ContentSuggestions(_CamelModel):
    recommended_word_count: int = 0
    suggested_headings: List[str] = Field(default_factory=list)
    content_gaps: List[str] = Field(default_factory=list)
    target_keywords: List[str] = Field(default_factory=list)


class SeoScore(_CamelModel):
    overall: int = 0
    title_optimization: int = 0
    content_quality: int = 0
    keyword_optimization: int = 0
    technical_seo: int = Field(default=0, alias="technicalSEO")

    @field_validator(
        "overall",
        "title_optimization",
        "content_quality",
        "keyword_optimization",
        "technical_seo",
        mode="before",
    )
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return clamp_score(value)


class MarketInsights(_CamelModel):
    seasonal_trends: List[str] = Field(default_factory=list)
    user_intent: str = ""
    content_type: str = ""


class AnalysisResult(_CamelModel):
    """Top-level analysis returned by ``perform_analysis``."""

    topic: str = ""
    location: str = ""
    keyword_metrics: KeywordMetrics = Field(default_factory=KeywordMetrics)
    competitor_analysis: CompetitorAnalysis = Field(default_factory=CompetitorAnalysis)
    content_suggestions: ContentSuggestions = Field(default_factory=ContentSuggestions)
    seo_score: SeoScore = Field(default_factory=SeoScore)
    market_insights: MarketInsights = Field(default_factory=MarketInsights)
    serp_signals: Optional[AggregateSignals] = None
    generated_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Site context (own-site keywords and internal links)
# ---------------------------------------------------------------------------


class InternalLink(_CamelModel):
    url: str
    title: str = ""
    score: float = 0.0


class SiteContext(_CamelModel):
    """Keywords and topic-relevant internal links found on the user's own site.

    Attributes:
        url: The analysed page.
        topic: Topic the links were scored against.
        keywords: Up to 10 topic keywords present on the page.
        internal_links: Selected links, best first.
        links_count: Number of distinct internal links found.
        relevant_count: Links at or above the relevance threshold.
        internal_links_context: Prompt-ready sentence listing the selected links.
    """

    url: str
    topic: str
    keywords: List[str] = Field(default_factory=list)
    internal_links: List[InternalLink] = Field(default_factory=list)
    links_count: int = 0
    relevant_count: int = 0
    internal_links_context: str = ""


# ---------------------------------------------------------------------------
# Graph state
# ---------------------------------------------------------------------------


class AnalysisState(TypedDict, total=False):
    """State flowing through the analysis StateGraph.

    Attributes:
        topic: User topic.
        location: Target location (country or region name).
        cache_key: Normalised (topic, location) key for the 24-hour cache.
        cache_hit: True when the result was served from cache.
        cached: True once a freshly computed result has been stored.
        measurements: Values from the measurement collaborator.
        base_analysis: AI-drafted narrative analysis before merging.
        serp_report: Raw search + scrape aggregate.
        relevance_scores: One score per competitor, same order as the report.
        result: Final merged analysis.
    """

    topic: str
    location: str
    cache_key: str
    cache_hit: bool
    cached: bool
    measurements: Measurements
    base_analysis: AnalysisResult
    serp_report: SerpCompetitorReport
    relevance_scores: List[RelevanceScore]
    result: AnalysisResult
