"""Cross-competitor aggregation: common headings, keywords, outline and content gaps."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Sequence

from graph.state import AggregateSignals, CompetitorPage
from tools.html_text import normalize_text
from tools.keyword_ranker import topic_terms, topic_tokens

COMMON_HEADINGS_LIMIT = 15
COMMON_KEYWORDS_LIMIT = 25
OUTLINE_LIMIT = 10
CONTENT_GAPS_LIMIT = 8
MIN_GAP_TERM_LENGTH = 4
OUTLINE_PREFIX = "## "

_WORD_START = re.compile(r"\b\w")
_SNIPPET_WORD = re.compile(r"[\w-]{3,}")


def title_case(text: str) -> str:
    """Upper-case the first character of every word, leaving the rest untouched."""
    return _WORD_START.sub(lambda m: m.group(0).upper(), text)


def frequency_rank(items: Iterable[str], limit: int | None = None) -> List[str]:
    """Rank strings by case-insensitive frequency.

    Ties keep first-seen order. The returned strings are the lowercase
    normalised forms, title-cased:

        frequency_rank(["a", "a", "b"]) == ["A", "B"]
    """
    counts: Dict[str, int] = {}
    for item in items:
        key = normalize_text(item).lower()
        if key:
            counts[key] = counts.get(key, 0) + 1

    # sorted() is stable and dicts keep insertion order.
    ranked = sorted(counts, key=lambda key: counts[key], reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return [title_case(key) for key in ranked]


def build_suggested_outline(
    common_headings: Sequence[str], topic: str, limit: int = OUTLINE_LIMIT
) -> List[str]:
    """Headings mentioning a topic token first, then the rest, as ``## `` lines."""
    tokens = topic_tokens(topic)

    def matches(heading: str) -> bool:
        lowered = heading.lower()
        return any(token in lowered for token in tokens)

    matching = [h for h in common_headings if matches(h)]
    others = [h for h in common_headings if not matches(h)]
    return [OUTLINE_PREFIX + h for h in [*matching, *others][:limit]]


def _snippet_bigrams(snippet: str) -> List[str]:
    words = _SNIPPET_WORD.findall(snippet.lower())
    return [f"{a} {b}" for a, b in zip(words, words[1:])]


def find_content_gaps(
    all_headings: Sequence[str],
    snippets: Sequence[str],
    topic: str,
    limit: int = CONTENT_GAPS_LIMIT,
) -> List[str]:
    """Terms competitors' snippets mention but none of their headings cover.

    Candidates are the topic terms and the word bigrams of each snippet.
    Terms shorter than four characters are ignored. Comparison is
    case-insensitive and results keep insertion order.
    """
    heading_text = [h.lower() for h in all_headings]
    snippet_text = [s.lower() for s in snippets]
    terms = topic_terms(topic)

    gaps: List[str] = []
    for snippet in snippet_text:
        for term in [*terms, *_snippet_bigrams(snippet)]:
            if len(gaps) >= limit:
                return gaps
            if len(term) < MIN_GAP_TERM_LENGTH or term in gaps:
                continue
            if term not in snippet:
                continue
            if any(term in heading for heading in heading_text):
                continue
            gaps.append(term)
    return gaps


def aggregate_signals(
    pages: Sequence[CompetitorPage], snippets: Sequence[str], topic: str
) -> AggregateSignals:
    all_headings = [heading for page in pages for heading in page.headings]
    all_entities = [entity for page in pages for entity in page.entities]

    common_headings = frequency_rank(all_headings, COMMON_HEADINGS_LIMIT)
    return AggregateSignals(
        common_headings=common_headings,
        common_keywords=frequency_rank(all_entities, COMMON_KEYWORDS_LIMIT),
        suggested_outline=build_suggested_outline(common_headings, topic),
        content_gaps=find_content_gaps(all_headings, [s for s in snippets if s], topic),
    )
