"""
tools/page_features.py
======================
Extract per-page SEO features from a competitor's HTML.

    h2, h3   = extract_headings(html)
    entities = extract_structured_entities(html)      # JSON-LD
    keywords = extract_meta_keywords(html)            # <meta> tags
    page     = extract_page_features(html, topic, url, title)

Every extractor tolerates missing or malformed markup and returns empty
lists rather than raising.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, List, Tuple

import structlog
from bs4 import BeautifulSoup

from graph.state import CompetitorPage
from tools.html_text import normalize_text, strip_tags
from tools.keyword_ranker import extract_content_keywords

logger = structlog.get_logger(__name__)

_LD_JSON_TYPE = re.compile(r"application/ld\+json", re.IGNORECASE)
_KEYWORDS_NAME = re.compile(r"^\s*keywords\s*$", re.IGNORECASE)
_ARTICLE_TAG = re.compile(r"^\s*article:tag\s*$", re.IGNORECASE)

NAME_KEYS = ("name", "headline", "articleSection")


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _dedupe(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(item for item in items if item))


# ---------------------------------------------------------------------------
# Headings
# ---------------------------------------------------------------------------


def extract_headings(html: str) -> Tuple[List[str], List[str]]:
    """Return the normalised ``<h2>`` and ``<h3>`` texts in document order.

    Headings that normalise to one character or less are dropped.
    """
    if not html:
        return [], []

    soup = _soup(html)

    def texts(name: str) -> List[str]:
        found = (normalize_text(tag.get_text(separator=" ")) for tag in soup.find_all(name))
        return [text for text in found if len(text) > 1]

    return texts("h2"), texts("h3")


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v is not None and not isinstance(v, (dict, list)))
    if value is None or isinstance(value, dict):
        return ""
    return str(value)


def _party_values(value: Any) -> List[str]:
    """Name and @type of an author/publisher given as an object or list of objects."""
    parties = value if isinstance(value, list) else [value]
    out: List[str] = []
    for party in parties:
        if isinstance(party, dict):
            out.append(_as_text(party.get("name")))
            out.append(_as_text(party.get("@type")))
        elif isinstance(party, str):
            out.append(party)
    return out


def _about_values(value: Any) -> List[str]:
    items = value if isinstance(value, list) else [value]
    out: List[str] = []
    for item in items:
        if isinstance(item, dict):
            out.append(_as_text(item.get("name")))
        elif isinstance(item, str):
            out.append(item)
    return out


def _keyword_values(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value if isinstance(v, (str, int, float))]
    if isinstance(value, str):
        return value.split(",")
    return []


def _flatten(data: Any) -> List[Dict[str, Any]]:
    """Top-level objects of a JSON-LD document, with ``@graph`` expanded."""
    objects: List[Dict[str, Any]] = []
    stack = list(data) if isinstance(data, list) else [data]
    for item in stack:
        if not isinstance(item, dict):
            continue
        objects.append(item)
        graph = item.get("@graph")
        if isinstance(graph, list):
            objects.extend(obj for obj in graph if isinstance(obj, dict))
    return objects


def _entities_from_object(obj: Dict[str, Any]) -> List[str]:
    values: List[str] = [_as_text(obj.get("@type") or obj.get("type"))]

    for key in NAME_KEYS:
        if obj.get(key):
            values.append(_as_text(obj[key]))
            break

    for key in ("author", "publisher"):
        if obj.get(key):
            values.extend(_party_values(obj[key]))

    if obj.get("about"):
        values.extend(_about_values(obj["about"]))

    if obj.get("keywords"):
        values.extend(_keyword_values(obj["keywords"]))

    return values


def extract_structured_entities(html: str) -> List[str]:
    """Collect type, name, author, publisher, about and keyword strings from JSON-LD.

    Each ``<script type="application/ld+json">`` block is parsed on its own;
    a block that is not valid JSON is skipped without affecting the others.

    Example:
        ``{"@type": "Article", "headline": "X", "author": {"name": "Y"}}``
        yields ``["Article", "X", "Y"]``.
    """
    if not html:
        return []

    soup = _soup(html)
    values: List[str] = []

    for script in soup.find_all("script", attrs={"type": _LD_JSON_TYPE}):
        raw = script.string if script.string is not None else script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, ValueError) as e:
            logger.debug("page_features.bad_json_ld", error=str(e), snippet=raw[:80])
            continue

        for obj in _flatten(data):
            values.extend(_entities_from_object(obj))

    return [text for text in (normalize_text(v) for v in values) if text]


# ---------------------------------------------------------------------------
# Meta keywords
# ---------------------------------------------------------------------------


def extract_meta_keywords(html: str) -> List[str]:
    """Comma-split ``<meta name="keywords">`` plus every ``article:tag`` value."""
    if not html:
        return []

    soup = _soup(html)
    values: List[str] = []

    for meta in soup.find_all("meta", attrs={"name": _KEYWORDS_NAME}):
        values.extend((meta.get("content") or "").split(","))

    for meta in soup.find_all("meta", attrs={"property": _ARTICLE_TAG}):
        values.append(meta.get("content") or "")

    return [text for text in (normalize_text(v) for v in values) if text]


# ---------------------------------------------------------------------------
# Page assembly
# ---------------------------------------------------------------------------


def extract_page_features(html: str, topic: str, url: str, title: str = "") -> CompetitorPage:
    """Build the CompetitorPage for one fetched page."""
    h2, h3 = extract_headings(html)
    body_text = strip_tags(html)
    content_keywords = extract_content_keywords(body_text, topic)
    meta_keywords = extract_meta_keywords(html)

    page = CompetitorPage(
        url=url,
        title=title,
        h2=h2,
        h3=h3,
        entities=_dedupe([*content_keywords, *meta_keywords]),
        structured_entities=extract_structured_entities(html),
    )
    logger.debug(
        "page_features.extracted",
        url=url,
        h2=len(h2),
        h3=len(h3),
        entities=len(page.entities),
        structured_entities=len(page.structured_entities),
    )
    return page
