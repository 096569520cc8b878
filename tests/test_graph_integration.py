"""Integration tests for the compiled analysis graph.

The offline tests run the whole LangGraph workflow around fakes: stubbed
search and page fetches, a scripted text generator and an injectable clock.
The final test talks to a real Ollama server and the live search endpoint;
it is marked ``slow`` and skipped when Ollama is not reachable.
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from agents.analyst import AnalysisWriter
from agents.competitor_research import CompetitorResearcher
from agents.llm import ModelFallbackChain
from agents.relevance_scorer import RelevanceScorer
from app.errors import AllModelsUnavailable, InvalidAnalysisRequest, SearchFailure
from graph.graph_builder import AnalysisPipeline, perform_analysis, route_after_cache
from graph.state import CompetitorPage, SearchResult, SerpCompetitorReport
from memory.cache import TTLCache
from tools.measurements import HeuristicMeasurementProvider

from conftest import FakeGenerator, StatusError, page_html

TOPIC = "best coffee shops"

ANALYSIS_JSON = json.dumps(
    {
        "keywordMetrics": {"searchVolume": 12000, "competition": "Low", "trend": "Falling", "cpc": 0.8},
        "competitorAnalysis": {
            "topPages": [{"title": "Made up", "domain": "invented.example"}],
            "averageWordCount": 1600,
            "commonHeadings": ["Model Heading"],
        },
        "contentSuggestions": {"targetKeywords": ["coffee shops"]},
        "seoScore": {"overall": 70, "technicalSEO": 60},
        "marketInsights": {"userIntent": "Local", "contentType": "Listicle"},
    }
)


def scripted(model: str, prompt: str) -> str:
    if "Target Location" in prompt:
        return ANALYSIS_JSON
    return '{"score": 80, "reason": "good coverage"}'


SERP = [
    SearchResult(url=f"https://site{i}.example/coffee", title=f"Coffee List {i}", snippet="Cozy cafes and roasteries")
    for i in range(1, 4)
]


async def fetch_page(url: str, timeout: float = 0) -> str:
    return page_html(h2=["Best Coffee Shops in Your City", "Opening Hours"])


@pytest.fixture
def search():
    return AsyncMock(return_value=SERP)


@pytest.fixture
def generator():
    return FakeGenerator(scripted)


@pytest.fixture
def analysis_cache(clock):
    return TTLCache(86400, name="analysis-test", clock=clock)


@pytest.fixture
def pipeline(search, generator, analysis_cache, serp_cache, throttle):
    chain = ModelFallbackChain(["primary", "backup"], generator=generator, timeout=None)
    return AnalysisPipeline(
        researcher=CompetitorResearcher(
            search=search, fetch_page=AsyncMock(side_effect=fetch_page), cache=serp_cache, throttle=throttle
        ),
        scorer=RelevanceScorer(chain=chain),
        analyst=AnalysisWriter(chain=chain),
        measurements=HeuristicMeasurementProvider(),
        cache=analysis_cache,
    )


# -----------------------------------------------------------------------------
# Offline pipeline runs
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_pipeline_merges_all_sources(pipeline, search) -> None:
    result = await pipeline.run(TOPIC, "Turkey")

    # Measured values replace the model's guesses.
    assert result.keyword_metrics.search_volume == 5000
    assert result.keyword_metrics.competition == "Medium"
    assert result.keyword_metrics.trend == "Stable"
    assert result.keyword_metrics.cpc == 0.8

    pages = result.competitor_analysis.top_pages
    assert [p.domain for p in pages] == ["site1.example", "site2.example", "site3.example"]
    assert all(p.relevance_score == 80 for p in pages)
    assert result.competitor_analysis.common_headings[0] == "Best Coffee Shops In Your City"
    assert result.serp_signals.suggested_outline[0] == "## Best Coffee Shops In Your City"
    assert result.market_insights.content_type == "Listicle"

    # Turkish locations search the Turkish region.
    assert search.await_args.kwargs["lang"] == "tr-tr"


@pytest.mark.asyncio
async def test_second_run_is_served_from_cache(pipeline, search, generator, clock) -> None:
    first = await pipeline.run(TOPIC, "Turkey")
    calls_after_first = len(generator.calls)

    second = await pipeline.run("  Best Coffee Shops ", "turkey")

    assert second == first
    search.assert_awaited_once()
    assert len(generator.calls) == calls_after_first

    # The analysis cache keeps entries for 24 hours.
    clock.advance(86401)
    await pipeline.run(TOPIC, "Turkey")
    assert len(generator.calls) > calls_after_first


@pytest.mark.asyncio
@pytest.mark.parametrize("topic, location", [("", "Turkey"), (TOPIC, ""), ("   ", "  ")])
async def test_missing_topic_or_location_is_rejected(pipeline, search, topic, location) -> None:
    with pytest.raises(InvalidAnalysisRequest):
        await pipeline.run(topic, location)
    search.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_failure_propagates_and_nothing_is_cached(pipeline, search, analysis_cache, serp_cache) -> None:
    search.side_effect = SearchFailure("search unreachable")

    with pytest.raises(SearchFailure):
        await pipeline.run(TOPIC, "Germany")

    assert len(analysis_cache) == 0
    assert len(serp_cache) == 0


@pytest.mark.asyncio
async def test_all_models_unavailable_propagates(search, analysis_cache, serp_cache, throttle) -> None:
    chain = ModelFallbackChain(["primary", "backup"], generator=FakeGenerator(StatusError(503)), timeout=None)
    pipeline = AnalysisPipeline(
        researcher=CompetitorResearcher(search=search, fetch_page=fetch_page, cache=serp_cache, throttle=throttle),
        scorer=RelevanceScorer(chain=chain),
        analyst=AnalysisWriter(chain=chain),
        measurements=HeuristicMeasurementProvider(),
        cache=analysis_cache,
    )

    with pytest.raises(AllModelsUnavailable):
        await pipeline.run(TOPIC, "Germany")

    assert len(analysis_cache) == 0


class PartialResearcher:
    async def research(self, query, *, top_n=None, lang="us-en", abort=None):
        return SerpCompetitorReport(
            query=query,
            serp_results=SERP,
            competitors=[CompetitorPage(url=SERP[0].url, title=SERP[0].title)],
            partial=True,
        )


@pytest.mark.asyncio
async def test_partial_report_is_not_cached(generator, analysis_cache) -> None:
    chain = ModelFallbackChain(["primary"], generator=generator, timeout=None)
    pipeline = AnalysisPipeline(
        researcher=PartialResearcher(),
        scorer=RelevanceScorer(chain=chain),
        analyst=AnalysisWriter(chain=chain),
        measurements=HeuristicMeasurementProvider(),
        cache=analysis_cache,
    )

    result = await pipeline.run(TOPIC, "Germany")

    assert len(result.competitor_analysis.top_pages) == 1
    assert len(analysis_cache) == 0


@pytest.mark.asyncio
async def test_empty_injected_cache_is_kept_and_filled(pipeline, analysis_cache) -> None:
    assert len(analysis_cache) == 0
    assert pipeline.cache is analysis_cache

    await pipeline.run(TOPIC, "Turkey")

    assert len(analysis_cache) == 1


def test_default_measurements_follow_trends_setting(mocker) -> None:
    provider = mocker.Mock()
    build = mocker.patch("graph.graph_builder.build_measurement_provider", return_value=provider)

    pipeline = AnalysisPipeline(
        researcher=PartialResearcher(),
        scorer=mocker.Mock(),
        analyst=mocker.Mock(),
        cache=TTLCache(60, name="unused"),
    )

    build.assert_called_once_with()
    assert pipeline.measurements is provider


def test_route_after_cache() -> None:
    assert route_after_cache({"cache_hit": True}) == "__end__"
    assert route_after_cache({"cache_hit": False}) == "measure"


@pytest.mark.asyncio
async def test_perform_analysis_uses_default_pipeline(mocker) -> None:
    fake = mocker.Mock()
    fake.run = AsyncMock(return_value="result")
    mocker.patch("graph.graph_builder.get_pipeline", return_value=fake)

    assert await perform_analysis(TOPIC, "Germany") == "result"
    fake.run.assert_awaited_once_with(TOPIC, "Germany")


# -----------------------------------------------------------------------------
# Live run (requires Ollama and network access)
# -----------------------------------------------------------------------------


@pytest.fixture
def check_ollama_available() -> None:
    """Skip the test if Ollama is not reachable."""
    try:
        response = httpx.get("http://localhost:11434/api/tags", timeout=3.0)
        response.raise_for_status()
    except Exception as e:
        pytest.skip(f"Ollama not available (error: {e})")


@pytest.mark.slow
@pytest.mark.asyncio
async def test_live_analysis(check_ollama_available: None) -> None:
    result = await AnalysisPipeline().run("cold brew coffee", "Germany")

    assert result.topic == "cold brew coffee"
    assert result.keyword_metrics.search_volume > 0
    assert all(0 <= p.relevance_score <= 100 for p in result.competitor_analysis.top_pages)
