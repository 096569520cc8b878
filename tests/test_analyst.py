"""Unit tests for agents.analyst."""

import json

import pytest

from agents.analyst import AnalysisWriter
from agents.llm import ModelFallbackChain
from app.errors import AllModelsUnavailable
from graph.state import ContentSuggestions, SeoScore

from conftest import FakeGenerator, StatusError

FULL_RESPONSE = {
    "keywordMetrics": {
        "searchVolume": 12000,
        "competition": "high",
        "trend": "Rising",
        "cpc": 1.25,
        "difficulty": 140,
    },
    "competitorAnalysis": {
        "topPages": [{"title": "Guide", "domain": "a.example", "url": "https://a.example/"}],
        "averageWordCount": 1800,
        "commonHeadings": ["What Is Cold Brew"],
    },
    "contentSuggestions": {
        "recommendedWordCount": 2000,
        "suggestedHeadings": ["## Equipment"],
        "contentGaps": ["water ratio"],
        "targetKeywords": ["cold brew coffee"],
    },
    "seoScore": {
        "overall": 70,
        "titleOptimization": 60,
        "contentQuality": 80,
        "keywordOptimization": 65,
        "technicalSEO": 75,
    },
    "marketInsights": {
        "seasonalTrends": ["Summer peak"],
        "userIntent": "Informational",
        "contentType": "Guide",
    },
}


def make_writer(respond) -> tuple:
    generator = FakeGenerator(respond)
    chain = ModelFallbackChain(["primary", "backup"], generator=generator, timeout=None)
    return AnalysisWriter(chain=chain), generator


@pytest.mark.asyncio
async def test_synthesize_full_response() -> None:
    writer, generator = make_writer(json.dumps(FULL_RESPONSE))

    result = await writer.synthesize("cold brew", "Germany")

    assert (result.topic, result.location) == ("cold brew", "Germany")
    assert result.keyword_metrics.search_volume == 12000
    assert result.keyword_metrics.competition == "High"
    assert result.keyword_metrics.difficulty == 100
    assert result.competitor_analysis.top_pages[0].domain == "a.example"
    assert result.seo_score.technical_seo == 75
    assert result.market_insights.user_intent == "Informational"

    call = generator.calls[0]
    assert call["prompt"] == 'Topic: "cold brew", Target Location: "Germany"'
    assert call["json_mode"] is True
    assert "technicalSEO" in call["system"]


@pytest.mark.asyncio
async def test_unparseable_response_returns_skeleton() -> None:
    writer, _ = make_writer("I cannot help with that.")

    result = await writer.synthesize("cold brew", "Germany")

    assert result.topic == "cold brew"
    assert result.keyword_metrics.search_volume == 0
    assert result.competitor_analysis.top_pages == []
    assert result.serp_signals is None


@pytest.mark.asyncio
async def test_bad_sections_fall_back_individually() -> None:
    response = dict(FULL_RESPONSE)
    response["seoScore"] = "excellent"
    response["contentSuggestions"] = {"suggestedHeadings": 5}

    writer, _ = make_writer(json.dumps(response))
    result = await writer.synthesize("cold brew", "Germany")

    assert result.seo_score == SeoScore()
    assert result.content_suggestions == ContentSuggestions()
    assert result.keyword_metrics.search_volume == 12000
    assert result.market_insights.content_type == "Guide"


@pytest.mark.asyncio
async def test_all_models_unavailable_propagates() -> None:
    writer, generator = make_writer(StatusError(503))

    with pytest.raises(AllModelsUnavailable):
        await writer.synthesize("cold brew", "Germany")

    assert generator.models_called == ["primary", "backup"]
