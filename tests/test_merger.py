"""Unit tests for agents.merger."""

from graph.state import (
    AggregateSignals,
    AnalysisResult,
    CompetitorAnalysis,
    CompetitorEntry,
    CompetitorPage,
    ContentSuggestions,
    KeywordMetrics,
    Measurements,
    RelevanceScore,
    SerpCompetitorReport,
)
from agents.merger import domain_of, merge_analysis


def base_analysis() -> AnalysisResult:
    return AnalysisResult(
        topic="cold brew",
        location="Germany",
        keyword_metrics=KeywordMetrics(search_volume=999, competition="Low", trend="Falling", cpc=1.5),
        competitor_analysis=CompetitorAnalysis(
            top_pages=[CompetitorEntry(title="Invented", domain="made.up")],
            common_headings=["Model Heading"],
            average_word_count=1500,
        ),
        content_suggestions=ContentSuggestions(target_keywords=["cold brew", "iced coffee"]),
    )


MEASUREMENTS = Measurements(
    trend="Rising",
    search_volume=275000,
    competition="High",
    related_keywords=["cold brew recipe", "iced coffee", "nitro cold brew", "cold brew ratio", "x"],
)


def make_report(common_headings=("Best Ratio",)) -> SerpCompetitorReport:
    return SerpCompetitorReport(
        query="cold brew",
        competitors=[
            CompetitorPage(url="https://www.a.example/guide", title="Cold Brew Guide"),
            CompetitorPage.placeholder("https://b.example/x", ""),
        ],
        signals=AggregateSignals(common_headings=list(common_headings), content_gaps=["water ratio"]),
    )


def test_measurements_override_model_estimates() -> None:
    merged = merge_analysis(base_analysis(), MEASUREMENTS)

    assert merged.keyword_metrics.trend == "Rising"
    assert merged.keyword_metrics.search_volume == 275000
    assert merged.keyword_metrics.competition == "High"
    # Fields without a measurement keep the model's value.
    assert merged.keyword_metrics.cpc == 1.5


def test_related_keywords_are_prepended_without_duplicates() -> None:
    merged = merge_analysis(base_analysis(), MEASUREMENTS)

    assert merged.content_suggestions.target_keywords == [
        "cold brew recipe",
        "nitro cold brew",
        "cold brew ratio",
        "cold brew",
        "iced coffee",
    ]


def test_without_report_competitors_are_untouched() -> None:
    merged = merge_analysis(base_analysis(), MEASUREMENTS)

    assert merged.competitor_analysis.top_pages[0].title == "Invented"
    assert merged.serp_signals is None


def test_report_replaces_top_pages_and_headings() -> None:
    scores = [RelevanceScore(url="https://www.a.example/guide", score=91, reason="deep coverage")]

    merged = merge_analysis(base_analysis(), MEASUREMENTS, make_report(), scores)

    pages = merged.competitor_analysis.top_pages
    assert [(p.title, p.domain, p.relevance_score) for p in pages] == [
        ("Cold Brew Guide", "www.a.example", 91),
        ("Untitled", "b.example", 0),
    ]
    assert pages[0].relevance_reason == "deep coverage"
    assert merged.competitor_analysis.common_headings == ["Best Ratio"]
    assert merged.competitor_analysis.average_word_count == 1500
    assert merged.serp_signals.content_gaps == ["water ratio"]


def test_empty_report_headings_keep_model_headings() -> None:
    merged = merge_analysis(base_analysis(), MEASUREMENTS, make_report(common_headings=()))
    assert merged.competitor_analysis.common_headings == ["Model Heading"]


def test_base_is_not_mutated() -> None:
    base = base_analysis()
    merge_analysis(base, MEASUREMENTS, make_report())

    assert base.keyword_metrics.search_volume == 999
    assert base.competitor_analysis.top_pages[0].title == "Invented"
    assert base.content_suggestions.target_keywords == ["cold brew", "iced coffee"]


def test_domain_of() -> None:
    assert domain_of("https://Shop.Example.com:8080/path?q=1") == "shop.example.com"
    assert domain_of("not a url") == ""
