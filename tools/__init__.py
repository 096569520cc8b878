"""tools/: search, scraping and text-analysis utilities for competitor research."""

from tools.aggregation import aggregate_signals, frequency_rank
from tools.keyword_ranker import extract_content_keywords
from tools.page_features import extract_page_features
from tools.search import fetch_search_results
from tools.serp_parser import parse_search_results
from tools.site_context import analyze_site
from tools.web_fetcher import fetch_page_html

__all__ = [
    # Search
    "fetch_search_results",
    "parse_search_results",
    # Page scraping
    "fetch_page_html",
    "extract_page_features",
    "extract_content_keywords",
    # Aggregation
    "aggregate_signals",
    "frequency_rank",
    # Own-site context
    "analyze_site",
]
