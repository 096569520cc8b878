"""AI relevance scoring of competitor pages.

One generation call is made per competitor, one at a time, each bounded by
its own timeout. Any failure (timeout, unavailable models, unparseable
output) yields a score of 0 for that competitor; scoring never aborts the
analysis.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, List, Optional, Sequence

import structlog

from agents.llm import ModelFallbackChain, parse_json_object
from app.config import SCORING_TIMEOUT
from graph.state import CompetitorPage, RelevanceScore, clamp_score

logger = structlog.get_logger(__name__)

PROMPT_PATH = Path(__file__).parent.parent / "prompts" / "relevance_prompt.txt"

MAX_SUMMARY_CHARS = 8000
FAILED_REASON = "scoring unavailable"


def build_competitor_summary(page: CompetitorPage, topic: str) -> str:
    """Compact JSON description of *page* sent to the model, at most 8000 chars."""
    payload = {
        "topic": topic,
        "title": page.title,
        "h2": page.h2,
        "h3": page.h3,
        "entities": page.entities,
    }
    return json.dumps(payload, ensure_ascii=False)[:MAX_SUMMARY_CHARS]


def parse_relevance_score(raw: str) -> RelevanceScore:
    """
    Parse a model response into a score and reason.

    Missing, non-numeric and NaN scores become 0; numeric scores are
    clamped to [0, 100]. The returned object has an empty ``url``.
    """
    parsed = parse_json_object(raw) or {}
    reason: Any = parsed.get("reason", "")
    return RelevanceScore(
        url="",
        score=clamp_score(parsed.get("score")),
        reason=reason if isinstance(reason, str) else str(reason),
    )


class RelevanceScorer:
    """Score competitor pages for topical relevance and coverage."""

    def __init__(
        self,
        chain: Optional[ModelFallbackChain] = None,
        timeout: float = SCORING_TIMEOUT,
    ) -> None:
        self.chain = chain or ModelFallbackChain(timeout=timeout)
        self.timeout = timeout
        self._system_prompt: Optional[str] = None

    @property
    def system_prompt(self) -> str:
        if self._system_prompt is None:
            try:
                self._system_prompt = PROMPT_PATH.read_text(encoding="utf-8")
            except FileNotFoundError:
                logger.critical("relevance_scorer.prompt_file_missing", path=str(PROMPT_PATH))
                raise
        return self._system_prompt

    def _build_prompt(self, page: CompetitorPage, topic: str) -> str:
        return (
            f"Topic: {topic}\n"
            f"Competitor: {page.title or page.url}\n"
            f"Outline: {build_competitor_summary(page, topic)}\n"
            "Return a JSON with {score: number 0-100, reason: string}"
        )

    async def score_competitor(self, page: CompetitorPage, topic: str) -> RelevanceScore:
        """Score one page; ``timeout`` applies per model, so fallbacks get their own turn."""
        log = logger.bind(url=page.url)
        try:
            raw = await asyncio.wait_for(
                self.chain.generate(
                    self._build_prompt(page, topic),
                    system=self.system_prompt,
                    json_mode=True,
                ),
                timeout=self.timeout * len(self.chain.models),
            )
        except FileNotFoundError:
            raise
        except Exception as e:
            log.warning(
                "relevance_scorer.failed",
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            return RelevanceScore(url=page.url, score=0, reason=FAILED_REASON)

        score = parse_relevance_score(raw)
        log.debug("relevance_scorer.scored", score=score.score)
        return score.model_copy(update={"url": page.url})

    async def score_all(
        self, pages: Sequence[CompetitorPage], topic: str
    ) -> List[RelevanceScore]:
        """Score every page sequentially; the result is aligned with *pages*."""
        scores: List[RelevanceScore] = []
        for page in pages:
            scores.append(await self.score_competitor(page, topic))

        logger.info(
            "relevance_scorer.complete",
            topic=topic,
            pages=len(pages),
            zero_scores=sum(1 for s in scores if s.score == 0),
        )
        return scores
