"""
tools/html_text.py
==================
Pure text helpers shared by the search and page extractors.

    decode_entities("Caf&eacute; &amp; Bar")   -> "Caf&eacute; & Bar"
    strip_tags("<p>Hi <b>there</b></p>")       -> "Hi there"
    normalize_text("  a&nbsp;\u200bb ")         -> "a b"

No I/O happens here.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

# Named entities decoded by ``decode_entities``. Anything else passes through.
NAMED_ENTITIES: dict[str, str] = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "nbsp": " ",
    "laquo": "«",
    "raquo": "»",
    "hellip": "…",
    "ndash": "–",
    "mdash": "—",
    "rsquo": "'",
    "lsquo": "'",
    "rdquo": "”",
    "ldquo": "“",
}

_ENTITY_RE = re.compile(r"&(#[xX][0-9a-fA-F]+|#[0-9]+|[a-zA-Z]+);")
_ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\ufeff]")
_WHITESPACE_RE = re.compile(r"\s+")


def _replace_entity(match: re.Match) -> str:
    body = match.group(1)
    if body[0] != "#":
        return NAMED_ENTITIES.get(body, match.group(0))

    try:
        if body[1] in "xX":
            codepoint = int(body[2:], 16)
        else:
            codepoint = int(body[1:], 10)
        return chr(codepoint)
    except (ValueError, OverflowError):
        # Out-of-range code point: leave the reference untouched.
        return match.group(0)


def decode_entities(text: str) -> str:
    """Decode the fixed named-entity table plus decimal / hex references."""
    if not text:
        return ""
    return _ENTITY_RE.sub(_replace_entity, str(text))


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_tags(html: str) -> str:
    """Return the visible text of an HTML fragment.

    ``<script>`` and ``<style>`` blocks are dropped together with their
    content, remaining tags are removed and whitespace runs collapse to a
    single space. Malformed markup never raises; a stray ``<`` that does not
    open a tag is kept as literal text.
    """
    if not html:
        return ""

    soup = BeautifulSoup(str(html), "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()

    return collapse_whitespace(soup.get_text(separator=" "))


def _normalize_once(text: str) -> str:
    text = decode_entities(text)
    text = _ZERO_WIDTH_RE.sub("", text)
    return collapse_whitespace(text)


def normalize_text(text: str) -> str:
    """Decode entities, drop zero-width characters, collapse whitespace and trim.

    The steps repeat until the text stops changing, so the function is
    idempotent even for double-encoded input such as ``&amp;amp;``. Every
    changing pass either shortens the string or turns non-space whitespace
    into spaces, so the loop always terminates.
    """
    if not text:
        return ""

    current = str(text)
    while True:
        nxt = _normalize_once(current)
        if nxt == current:
            return current
        current = nxt
