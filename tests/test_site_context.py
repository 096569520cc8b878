"""Unit tests for tools.site_context and tools.fuzzy."""

import httpx
import pytest

from app.errors import PageFetchFailure
from graph.state import InternalLink
from tools.fuzzy import fuzzy_match_count, levenshtein
from tools.site_context import (
    analyze_site,
    extract_internal_links,
    find_relevant_keywords,
    internal_links_context,
    link_relevance_score,
    select_internal_links,
    site_keywords,
)

BASE = "https://example.com/"

SITE_HTML = """
<html><body>
  <nav>
    <a href="/services/dental-implants">Dental Implants</a>
    <a href="https://example.com/blog/implant-aftercare"></a>
    <a href="/contact">Contact</a>
    <a href="/about-us">About Us</a>
    <a href="/services/dental-implants">Dental Implants again</a>
    <a href="https://other.example.org/dental">External</a>
    <a href="#top">Top</a>
    <a href="/search?q=teeth">Search</a>
    <a href="mailto:info@example.com">Mail</a>
    <a href="/">Home</a>
    <a href="https://facebook.com/example">Facebook</a>
  </nav>
  <p>Our clinic places dental implants every week. Dental implants replace missing teeth.</p>
</body></html>
"""

# -----------------------------------------------------------------------------
# Fuzzy matching
# -----------------------------------------------------------------------------


def test_levenshtein() -> None:
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert levenshtein("same", "same") == 0


def test_fuzzy_match_count() -> None:
    assert fuzzy_match_count("coffe shop espresso", ["coffee"]) == 1
    assert fuzzy_match_count("cofe", ["coffee"]) == 1
    assert fuzzy_match_count("cofe", ["coffee"], min_len=5) == 0
    assert fuzzy_match_count("", ["coffee"]) == 0


# -----------------------------------------------------------------------------
# Keywords
# -----------------------------------------------------------------------------


def test_site_keywords_add_singular_forms() -> None:
    keywords = site_keywords("dental implants")
    assert keywords[0] == "dental implants"
    assert {"dental", "implants", "implant", "dental implant"} <= set(keywords)
    assert len(keywords) == len(set(keywords))


def test_find_relevant_keywords_puts_phrases_first() -> None:
    text = "Dental implants cost less than you think. Dental implants last for years."
    found = find_relevant_keywords(text, site_keywords("dental implants"))

    assert found == ["dental implants", "dental implant", "implants", "implant", "dental"]


def test_find_relevant_keywords_respects_limit() -> None:
    assert find_relevant_keywords("dental implants", site_keywords("dental implants"), limit=1) == [
        "dental implants"
    ]


# -----------------------------------------------------------------------------
# Internal links
# -----------------------------------------------------------------------------


def test_extract_internal_links_filters_and_deduplicates() -> None:
    links = extract_internal_links(SITE_HTML, BASE)

    assert [link.url for link in links] == [
        "https://example.com/services/dental-implants",
        "https://example.com/blog/implant-aftercare",
        "https://example.com/contact",
        "https://example.com/about-us",
    ]
    assert links[0].title == "Dental Implants"
    # Empty anchor text falls back to the URL slug.
    assert links[1].title == "Implant Aftercare"


def test_extract_internal_links_empty_html() -> None:
    assert extract_internal_links("", BASE) == []


def test_link_relevance_score() -> None:
    keywords = site_keywords("dental implants")
    relevant = InternalLink(url="https://example.com/dental-implants", title="Dental Implants")
    unrelated = InternalLink(url="https://example.com/contact", title="Contact")

    assert link_relevance_score(relevant, keywords) > 10
    assert link_relevance_score(unrelated, keywords) == 0.0


def scored(*scores):
    return [InternalLink(url=f"https://example.com/{i}", title=f"Link {i}", score=s) for i, s in enumerate(scores)]


def test_select_keeps_top_four_and_two_more() -> None:
    links = scored(5, 4, 3, 2, 1, 0.9, 0.8, 0.7)
    assert [link.score for link in select_internal_links(links)] == [5, 4, 3, 2, 1, 0.9]


def test_select_relaxes_threshold_when_few_links_qualify() -> None:
    links = scored(2, 1, 0.5, 0.2, 0.15, 0.1, 0.05)
    assert [link.score for link in select_internal_links(links)] == [2, 1, 0.5, 0.2, 0.15, 0.1]


def test_select_nothing_when_no_link_reaches_threshold() -> None:
    assert select_internal_links(scored(0.25, 0.2, 0.15)) == []


def test_internal_links_context() -> None:
    links = [
        InternalLink(url="https://example.com/a", title="A"),
        InternalLink(url="https://example.com/b", title="B"),
    ]
    assert internal_links_context("teeth", links) == (
        'Internal links related to "teeth": '
        '<a href="https://example.com/a">A</a>, <a href="https://example.com/b">B</a>'
    )
    assert internal_links_context("teeth", []) == ""


# -----------------------------------------------------------------------------
# analyze_site
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_analyze_site_builds_context() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text=SITE_HTML))
    async with httpx.AsyncClient(transport=transport) as client:
        context = await analyze_site(BASE, "dental implants", client=client)

    assert context.links_count == 4
    assert context.relevant_count == 2
    assert [link.url for link in context.internal_links] == [
        "https://example.com/services/dental-implants",
        "https://example.com/blog/implant-aftercare",
    ]
    assert context.keywords[0] == "dental implants"
    assert context.internal_links_context.startswith(
        'Internal links related to "dental implants": '
        '<a href="https://example.com/services/dental-implants">Dental Implants</a>'
    )


@pytest.mark.asyncio
async def test_analyze_site_fetch_failure() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(PageFetchFailure):
            await analyze_site(BASE, "dental implants", client=client)
