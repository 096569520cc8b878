"""
tools/site_context.py
=====================
Topic keywords and internal-link suggestions from the user's own website.

    ctx = await analyze_site("https://example.com/", "dental implants")
    ctx.keywords                  # topic keywords present on the page
    ctx.internal_links_context    # 'Internal links related to "...": <a href=...>...</a>, ...'

Link relevance scoring:

    +2.0  per topic keyword found in "url + title"
    +1.5  per topic keyword equal to a URL path part
    +0.8  per fuzzy (edit distance <= 2) keyword/word match
    +0.3  title longer than 10 characters
    +0.2  URL longer than 100 characters
"""

import re
from typing import Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlparse

import httpx
import structlog
from bs4 import BeautifulSoup

from graph.state import InternalLink, SiteContext
from tools.aggregation import title_case
from tools.fuzzy import fuzzy_match_count, levenshtein
from tools.html_text import normalize_text, strip_tags
from tools.keyword_ranker import is_stop_word, topic_terms
from tools.web_fetcher import fetch_page_html

logger = structlog.get_logger(__name__)

MAX_LINK_LENGTH = 200
EXCLUDED_FRAGMENTS = ("#", "javascript:", "mailto:", "tel:", "%22", "?")
SOCIAL_HOSTS = (
    "google.com",
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "youtube.com",
    "linkedin.com",
)

RELEVANCE_THRESHOLD = 0.3
RELAXED_THRESHOLD = 0.1
MIN_SELECTED_LINKS = 6
GUARANTEED_TOP_LINKS = 4
MIN_ADDITIONAL_LINKS = 2
KEYWORDS_LIMIT = 10

# Single words too generic to be reported on their own unless very frequent.
GENERIC_TERMS = frozenset({
    "best", "cost", "types", "benefits", "recovery", "options", "guide", "review",
    "top", "latest", "january", "february", "march", "april", "june", "july",
    "august", "september", "october", "november", "december", "from", "about",
    "just", "only", "also", "more", "less", "very", "much", "many", "some", "any",
    "all", "every", "each", "other", "such", "what", "where", "when", "why", "how",
    "who", "which", "contact", "privacy", "blog", "home", "service", "services",
    "product", "products", "team", "company", "get", "find", "learn", "read",
    "click", "here", "info", "information", "page", "site", "website", "online",
    "new", "good", "great", "first", "last", "next", "today", "day", "week",
    "month", "year", "time", "email", "phone", "address",
})
GENERIC_SCORE_FLOOR = 300

_CONTENT_WORD = re.compile(r"\b\w{3,}\b")
_PATH_SPLIT = re.compile(r"[-_/]")


def site_keywords(topic: str) -> List[str]:
    """Topic terms plus their singular forms (trailing "s" dropped)."""
    terms = topic_terms(topic)
    variants = [*terms, *(t[:-1] for t in terms if t.endswith("s"))]
    return [t for t in dict.fromkeys(variants) if len(t) > 2 and not t.isdigit()]


def find_relevant_keywords(text: str, keywords: Sequence[str], limit: int = KEYWORDS_LIMIT) -> List[str]:
    """Topic keywords present in *text*, phrases first, then close single words."""
    lowered = (text or "").lower()
    scores: Dict[str, float] = {}

    for keyword in sorted(keywords, key=len, reverse=True):
        if keyword in lowered:
            scores[keyword] = scores.get(keyword, 0) + 1000 * len(keyword.split())

    frequency: Dict[str, int] = {}
    for word in _CONTENT_WORD.findall(lowered):
        if not is_stop_word(word) and not word.isdigit():
            frequency[word] = frequency.get(word, 0) + 1

    phrases = [k for k in scores if " " in k]
    for word, freq in frequency.items():
        if freq < 2 or any(word in phrase for phrase in phrases):
            continue
        if any(kw in word or word in kw or levenshtein(word, kw) <= 1 for kw in keywords):
            scores[word] = scores.get(word, 0) + freq + 100

    ranked = [
        kw
        for kw, score in sorted(scores.items(), key=lambda item: item[1], reverse=True)
        if " " in kw or kw not in GENERIC_TERMS or score > GENERIC_SCORE_FLOOR
    ]
    multi = [kw for kw in ranked if " " in kw]
    single = [kw for kw in ranked if " " not in kw]
    return [*multi, *single][:limit]


def _title_from_url(url: str) -> str:
    parts = [p for p in urlparse(url).path.split("/") if p]
    slug = parts[-1] if parts else ""
    return title_case(re.sub(r"[-_]", " ", slug))


def _is_internal(url: str, base_url: str) -> bool:
    try:
        base_host = urlparse(base_url).hostname
        host = urlparse(url).hostname
    except ValueError:
        return False

    if not host or host != base_host:
        return False
    if url in (base_url, base_url.rstrip("/"), base_url.rstrip("/") + "/"):
        return False
    if len(url) > MAX_LINK_LENGTH:
        return False
    if any(fragment in url for fragment in EXCLUDED_FRAGMENTS):
        return False
    return not any(social in url for social in SOCIAL_HOSTS)


def extract_internal_links(html: str, base_url: str) -> List[InternalLink]:
    """Distinct same-host links of the page, in document order."""
    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    links: Dict[str, InternalLink] = {}

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if href.lower().startswith(("javascript:", "mailto:", "tel:")):
            continue
        try:
            absolute = urljoin(base_url, href)
        except ValueError:
            continue
        if absolute in links or not _is_internal(absolute, base_url):
            continue
        title = normalize_text(anchor.get_text(separator=" ")) or _title_from_url(absolute)
        links[absolute] = InternalLink(url=absolute, title=title)

    return list(links.values())


def link_relevance_score(link: InternalLink, keywords: Sequence[str]) -> float:
    link_text = f"{link.url} {link.title}".lower()
    path_parts = [p for p in _PATH_SPLIT.split(link.url.lower()) if len(p) > 2]

    score = 0.0
    for keyword in keywords:
        if keyword in link_text:
            score += 2.0
        if keyword in path_parts:
            score += 1.5

    score += 0.8 * fuzzy_match_count(link_text, keywords)

    if len(link.title) > 10:
        score += 0.3
    if len(link.url) > 100:
        score += 0.2
    return max(0.0, score)


def select_internal_links(scored: Sequence[InternalLink]) -> List[InternalLink]:
    """
    Pick links for the context sentence from *scored* (sorted best first).

    Links at or above 0.3 qualify; if fewer than six do, the bar drops to
    0.1. The top four are always kept, followed by at least two more.
    Nothing qualifies at 0.3 -> nothing is selected.
    """
    relevant = [link for link in scored if link.score >= RELEVANCE_THRESHOLD]
    if not relevant:
        return []

    selected = relevant
    if len(selected) < MIN_SELECTED_LINKS:
        selected = [link for link in scored if link.score >= RELAXED_THRESHOLD]

    top = selected[:GUARANTEED_TOP_LINKS]
    top_urls = {link.url for link in top}
    extra_count = max(MIN_ADDITIONAL_LINKS, MIN_SELECTED_LINKS - len(top))
    extra = [link for link in selected if link.url not in top_urls][:extra_count]
    return [*top, *extra]


def internal_links_context(topic: str, links: Sequence[InternalLink]) -> str:
    if not links:
        return ""
    anchors = ", ".join(f'<a href="{link.url}">{link.title}</a>' for link in links)
    return f'Internal links related to "{topic}": {anchors}'


def build_site_context(html: str, url: str, topic: str) -> SiteContext:
    keywords = site_keywords(topic)
    links = extract_internal_links(html, url)

    scored = sorted(
        (link.model_copy(update={"score": link_relevance_score(link, keywords)}) for link in links),
        key=lambda link: link.score,
        reverse=True,
    )
    selected = select_internal_links(scored)

    return SiteContext(
        url=url,
        topic=topic,
        keywords=find_relevant_keywords(strip_tags(html), keywords),
        internal_links=selected,
        links_count=len(links),
        relevant_count=sum(1 for link in scored if link.score >= RELEVANCE_THRESHOLD),
        internal_links_context=internal_links_context(topic, selected),
    )


async def analyze_site(url: str, topic: str, client: Optional[httpx.AsyncClient] = None) -> SiteContext:
    """Fetch *url* and build its SiteContext for *topic*.

    Raises:
        PageFetchFailure: When the page cannot be fetched.
    """
    html = await fetch_page_html(url, client=client)
    context = build_site_context(html, url, topic)
    logger.info(
        "site_context.analyzed",
        url=url,
        links=context.links_count,
        relevant=context.relevant_count,
        selected=len(context.internal_links),
        keywords=len(context.keywords),
    )
    return context
