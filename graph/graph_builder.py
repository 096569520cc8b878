"""LangGraph graph builder for the competitor analysis workflow.

This module constructs the StateGraph behind ``perform_analysis``:

    cache_lookup --(hit)--> END
         |
       (miss)
         v
    measure -> synthesize -> research -> score -> merge -> cache_store -> END

Collaborators (researcher, scorer, analyst, measurement provider, cache) are
bound into the node functions when the graph is built, so tests can compile
a graph around fakes.
"""

from typing import Any, Dict, Optional

import structlog
from langgraph.graph import END, START, StateGraph

from agents.analyst import AnalysisWriter
from agents.competitor_research import CompetitorResearcher
from agents.merger import merge_analysis
from agents.relevance_scorer import RelevanceScorer
from app.config import ANALYSIS_CACHE_TTL_SECONDS, DEFAULT_TOP_N
from app.errors import InvalidAnalysisRequest
from graph.state import AnalysisResult, AnalysisState
from memory.cache import TTLCache, make_key
from tools.geo import search_locale
from tools.measurements import MeasurementProvider
from tools.trends import build_measurement_provider

logger = structlog.get_logger(__name__)

CACHE_LOOKUP = "cache_lookup"
MEASURE = "measure"
SYNTHESIZE = "synthesize"
RESEARCH = "research"
SCORE = "score"
MERGE = "merge"
CACHE_STORE = "cache_store"


def analysis_cache_key(topic: str, location: str) -> str:
    return make_key(topic, location)


def route_after_cache(state: AnalysisState) -> str:
    """Skip the whole pipeline when the analysis was served from cache."""
    return END if state.get("cache_hit") else MEASURE


def build_analysis_graph(
    *,
    researcher: CompetitorResearcher,
    scorer: RelevanceScorer,
    analyst: AnalysisWriter,
    measurements: MeasurementProvider,
    cache: TTLCache,
    top_n: int = DEFAULT_TOP_N,
):
    """Construct and compile the analysis StateGraph.

    Returns:
        The compiled graph; run it with ``await graph.ainvoke(state)``.
    """

    async def cache_lookup(state: AnalysisState) -> Dict[str, Any]:
        key = analysis_cache_key(state["topic"], state["location"])
        cached: Optional[AnalysisResult] = cache.get(key)
        if cached is not None:
            logger.info("graph.cache_hit", key=key)
            return {"cache_key": key, "cache_hit": True, "result": cached}
        return {"cache_key": key, "cache_hit": False}

    async def measure(state: AnalysisState) -> Dict[str, Any]:
        return {"measurements": await measurements.measure(state["topic"], state["location"])}

    async def synthesize(state: AnalysisState) -> Dict[str, Any]:
        return {"base_analysis": await analyst.synthesize(state["topic"], state["location"])}

    async def research(state: AnalysisState) -> Dict[str, Any]:
        report = await researcher.research(
            state["topic"], top_n=top_n, lang=search_locale(state["location"])
        )
        return {"serp_report": report}

    async def score(state: AnalysisState) -> Dict[str, Any]:
        report = state["serp_report"]
        return {"relevance_scores": await scorer.score_all(report.competitors, state["topic"])}

    async def merge(state: AnalysisState) -> Dict[str, Any]:
        result = merge_analysis(
            state["base_analysis"],
            state["measurements"],
            state.get("serp_report"),
            state.get("relevance_scores", []),
        )
        return {"result": result}

    async def cache_store(state: AnalysisState) -> Dict[str, Any]:
        report = state.get("serp_report")
        if report is not None and report.partial:
            logger.warning("graph.partial_result_not_cached", key=state["cache_key"])
            return {"cached": False}
        cache.set(state["cache_key"], state["result"])
        return {"cached": True}

    builder = StateGraph(AnalysisState)

    builder.add_node(CACHE_LOOKUP, cache_lookup)
    builder.add_node(MEASURE, measure)
    builder.add_node(SYNTHESIZE, synthesize)
    builder.add_node(RESEARCH, research)
    builder.add_node(SCORE, score)
    builder.add_node(MERGE, merge)
    builder.add_node(CACHE_STORE, cache_store)

    builder.add_edge(START, CACHE_LOOKUP)
    builder.add_conditional_edges(CACHE_LOOKUP, route_after_cache, [MEASURE, END])
    builder.add_edge(MEASURE, SYNTHESIZE)
    builder.add_edge(SYNTHESIZE, RESEARCH)
    builder.add_edge(RESEARCH, SCORE)
    builder.add_edge(SCORE, MERGE)
    builder.add_edge(MERGE, CACHE_STORE)
    builder.add_edge(CACHE_STORE, END)

    logger.debug("graph.compiled", node_count=len(builder.nodes))
    return builder.compile()


class AnalysisPipeline:
    """Owns the collaborators and the compiled graph for repeated analyses."""

    def __init__(
        self,
        researcher: Optional[CompetitorResearcher] = None,
        scorer: Optional[RelevanceScorer] = None,
        analyst: Optional[AnalysisWriter] = None,
        measurements: Optional[MeasurementProvider] = None,
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.researcher = researcher if researcher is not None else CompetitorResearcher()
        self.scorer = scorer if scorer is not None else RelevanceScorer()
        self.analyst = analyst if analyst is not None else AnalysisWriter()
        self.measurements = measurements if measurements is not None else build_measurement_provider()
        self.cache = cache if cache is not None else TTLCache(ANALYSIS_CACHE_TTL_SECONDS, name="analysis")
        self.graph = build_analysis_graph(
            researcher=self.researcher,
            scorer=self.scorer,
            analyst=self.analyst,
            measurements=self.measurements,
            cache=self.cache,
        )

    async def run(self, topic: str, location: str) -> AnalysisResult:
        """
        Analyse *topic* for *location*.

        Raises:
            InvalidAnalysisRequest: Empty topic or location.
            SearchFailure: The competitor search failed.
            AllModelsUnavailable: No model could draft the narrative analysis.
        """
        topic = (topic or "").strip()
        location = (location or "").strip()
        if not topic or not location:
            raise InvalidAnalysisRequest("topic and location are required")

        log = logger.bind(topic=topic, location=location)
        log.info("graph.run.start")

        final_state = await self.graph.ainvoke({"topic": topic, "location": location})

        result: AnalysisResult = final_state["result"]
        log.info(
            "graph.run.complete",
            cache_hit=final_state.get("cache_hit", False),
            top_pages=len(result.competitor_analysis.top_pages),
        )
        return result


_default_pipeline: Optional[AnalysisPipeline] = None


def get_pipeline() -> AnalysisPipeline:
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = AnalysisPipeline()
    return _default_pipeline


async def perform_analysis(topic: str, location: str) -> AnalysisResult:
    """Run the full competitor analysis with the default collaborators."""
    return await get_pipeline().run(topic, location)
