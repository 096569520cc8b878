"""AI-drafted narrative analysis for a (topic, location) pair."""

from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel, ValidationError

from agents.llm import ModelFallbackChain, parse_json_object
from graph.state import (
    AnalysisResult,
    CompetitorAnalysis,
    ContentSuggestions,
    KeywordMetrics,
    MarketInsights,
    SeoScore,
)

logger = structlog.get_logger(__name__)

PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "analysis_prompt.txt"

# camelCase section key -> model
SECTIONS: Dict[str, type[BaseModel]] = {
    "keywordMetrics": KeywordMetrics,
    "competitorAnalysis": CompetitorAnalysis,
    "contentSuggestions": ContentSuggestions,
    "seoScore": SeoScore,
    "marketInsights": MarketInsights,
}


class AnalysisWriter:
    """
    Ask the model for the narrative sections of an AnalysisResult.

    The response is validated section by section: a malformed section falls
    back to its defaults without discarding the others, and an unparseable
    response yields a default skeleton. ``AllModelsUnavailable`` from the
    fallback chain propagates.
    """

    def __init__(self, chain: Optional[ModelFallbackChain] = None) -> None:
        self.chain = chain or ModelFallbackChain()

    def _load_prompt(self) -> str:
        try:
            return PROMPT_PATH.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.critical("analyst.prompt_file_missing", path=str(PROMPT_PATH))
            raise

    async def synthesize(self, topic: str, location: str) -> AnalysisResult:
        log = logger.bind(topic=topic, location=location)

        raw = await self.chain.generate(
            f'Topic: "{topic}", Target Location: "{location}"',
            system=self._load_prompt(),
            json_mode=True,
        )

        parsed = parse_json_object(raw)
        if parsed is None:
            log.warning("analyst.parse_fallback_used", response_snippet=raw[:100])
            return AnalysisResult(topic=topic, location=location)

        sections: Dict[str, Any] = {}
        for key, model in SECTIONS.items():
            value = parsed.get(key)
            if not isinstance(value, dict):
                log.debug("analyst.section_missing", section=key)
                continue
            try:
                sections[key] = model.model_validate(value)
            except ValidationError as e:
                log.warning("analyst.section_invalid", section=key, errors=e.error_count())

        log.info("analyst.synthesized", sections=sorted(sections))
        return AnalysisResult.model_validate({"topic": topic, "location": location, **sections})
