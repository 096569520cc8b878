from agents.analyst import AnalysisWriter
from agents.competitor_research import CompetitorResearcher
from agents.llm import ModelFallbackChain
from agents.merger import merge_analysis
from agents.relevance_scorer import RelevanceScorer

__all__ = [
    "AnalysisWriter",
    "CompetitorResearcher",
    "ModelFallbackChain",
    "RelevanceScorer",
    "merge_analysis",
]
