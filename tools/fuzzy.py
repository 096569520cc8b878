"""Edit-distance helpers for tolerant keyword matching."""

from typing import Iterable

MAX_FUZZY_DISTANCE = 2
MIN_FUZZY_WORD_LENGTH = 4


def levenshtein(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions or substitutions."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def fuzzy_match_count(
    text: str,
    keywords: Iterable[str],
    max_distance: int = MAX_FUZZY_DISTANCE,
    min_len: int = MIN_FUZZY_WORD_LENGTH,
) -> int:
    """
    Count (keyword, word) pairs within *max_distance* edits.

    Words of *text* are whitespace-split; words shorter than *min_len* are
    ignored. A word close to two keywords counts twice.
    """
    words = [w for w in (text or "").split() if len(w) >= min_len]
    count = 0
    for keyword in keywords:
        for word in words:
            if abs(len(word) - len(keyword)) > max_distance:
                continue
            if levenshtein(word, keyword) <= max_distance:
                count += 1
    return count
