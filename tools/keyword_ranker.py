"""tools/keyword_ranker.py

Topic-anchored multi-word keyword extraction.

Plain term frequency over a scraped page surfaces navigation text and cookie
notices. Instead, only 2-, 3- and 4-word phrases that contain a token of the
topic are counted, and rare short phrases are dropped:

    phrase length   minimum occurrences
    2 or 3 words    2
    4 words         1

Phrases containing a question word anywhere in their text ("how", but also
"somehow") get a ×1.5 boost. Single words are never returned.
"""

from __future__ import annotations

import re
from typing import Dict, List

# Function words only; they never anchor a phrase.
STOP_WORDS: frozenset[str] = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "an", "a", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "can", "this", "that", "these", "those",
})

QUESTION_WORDS: frozenset[str] = frozenset({"what", "how", "when", "where"})
QUESTION_BOOST = 1.5

MIN_TOKEN_LENGTH = 3
NGRAM_SIZES = (2, 3, 4)
DEFAULT_LIMIT = 10

# Letters accepted on top of ASCII a-z / 0-9 (Turkish and common Latin-1).
EXTRA_LETTERS = "çğıöşüâîûäëïéèêàáíóúñ"
_TOKEN_RE = re.compile(rf"[a-z0-9{EXTRA_LETTERS}]+")


def is_stop_word(word: str) -> bool:
    return word.lower() in STOP_WORDS


def tokenize(text: str) -> List[str]:
    """Lowercase alphanumeric runs of at least three characters."""
    if not text:
        return []
    return [t for t in _TOKEN_RE.findall(text.lower()) if len(t) >= MIN_TOKEN_LENGTH]


def topic_tokens(topic: str) -> List[str]:
    """Distinct non-stop-word tokens of *topic*, in order of appearance."""
    seen: Dict[str, None] = {}
    for token in tokenize(topic):
        if not is_stop_word(token):
            seen.setdefault(token, None)
    return list(seen)


def topic_terms(topic: str) -> List[str]:
    """The whole topic plus its tokens and their bigrams and trigrams.

    The whole topic is kept as typed, lowercased with runs of whitespace
    collapsed, so "Coffee in Paris" yields "coffee in paris" first. For
    "best coffee shops" the rest are the three tokens and the bigrams.
    Used where whole topic phrases are meaningful candidates (content gaps,
    outline ordering, site keywords).
    """
    tokens = topic_tokens(topic)
    terms: Dict[str, None] = {}
    phrase = " ".join(topic.lower().split())
    if phrase:
        terms[phrase] = None
    if len(tokens) > 1:
        terms[" ".join(tokens)] = None
    for token in tokens:
        terms[token] = None
    for size in (2, 3):
        for i in range(len(tokens) - size + 1):
            terms[" ".join(tokens[i:i + size])] = None
    return list(terms)


def _min_frequency(phrase: str) -> int:
    return 1 if phrase.count(" ") >= 3 else 2


def _has_question(phrase: str) -> bool:
    return "?" in phrase or any(word in phrase for word in QUESTION_WORDS)


def extract_content_keywords(text: str, topic: str, limit: int = DEFAULT_LIMIT) -> List[str]:
    """Rank topic-relevant 2/3/4-word phrases found in *text*.

    Args:
        text: Free text, typically the stripped body of a competitor page.
        topic: The analysis topic; its tokens act as the relevance filter.
        limit: Maximum number of phrases returned.

    Returns:
        Phrases ordered by descending score; ties keep first-seen order.
    """
    anchors = topic_tokens(topic)
    if not anchors:
        return []

    words = tokenize(text)
    counts: Dict[str, int] = {}

    for i in range(len(words)):
        for size in NGRAM_SIZES:
            window = words[i:i + size]
            if len(window) < size:
                break
            if any(is_stop_word(w) for w in window):
                # Larger windows from this start contain the same stop word.
                break
            phrase = " ".join(window)
            if any(token in phrase for token in anchors):
                counts[phrase] = counts.get(phrase, 0) + 1

    scored: List[tuple[str, float]] = []
    for phrase, frequency in counts.items():
        if frequency < _min_frequency(phrase):
            continue
        score = float(frequency)
        if _has_question(phrase):
            score *= QUESTION_BOOST
        scored.append((phrase, score))

    scored.sort(key=lambda item: item[1], reverse=True)
    return [phrase for phrase, _ in scored[:limit]]
