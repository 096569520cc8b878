"""Centralized configuration for the competitor analysis pipeline.

Loads environment variables from a .env file and provides typed constants.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file (if present).
# Does not override already-set environment variables.
load_dotenv()

# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------
OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.1:8b")

# Ordered, comma-separated list tried after OLLAMA_MODEL reports overload.
OLLAMA_FALLBACK_MODELS: list[str] = [
    m.strip()
    for m in os.getenv("OLLAMA_FALLBACK_MODELS", "mistral,qwen2.5:7b").split(",")
    if m.strip()
]

SCORING_TIMEOUT: float = float(os.getenv("SCORING_TIMEOUT", "20"))
ANALYSIS_TIMEOUT: float = float(os.getenv("ANALYSIS_TIMEOUT", "120"))

# ---------------------------------------------------------------------------
# Search & scraping
# ---------------------------------------------------------------------------
SEARCH_ENDPOINT: str = os.getenv("SEARCH_ENDPOINT", "https://html.duckduckgo.com/html/")
SEARCH_ORIGIN: str = os.getenv("SEARCH_ORIGIN", "https://duckduckgo.com")
SEARCH_TIMEOUT: float = float(os.getenv("SEARCH_TIMEOUT", "15"))
SEARCH_MAX_ATTEMPTS: int = int(os.getenv("SEARCH_MAX_ATTEMPTS", "2"))

USER_AGENT: str = os.getenv(
    "SCRAPER_USER_AGENT",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118 Safari/537.36 ArticleGenerator/1.0",
)
ACCEPT_LANGUAGE: str = os.getenv("ACCEPT_LANGUAGE", "en-GB,en;q=0.9,tr;q=0.8")

DEFAULT_TOP_N: int = int(os.getenv("DEFAULT_TOP_N", "8"))
MAX_TOP_N: int = 10
PAGE_FETCH_TIMEOUT: float = float(os.getenv("PAGE_FETCH_TIMEOUT", "10"))

# Politeness delay before every competitor page fetch (seconds).
THROTTLE_MIN_DELAY: float = float(os.getenv("THROTTLE_MIN_DELAY", "0.4"))
THROTTLE_MAX_DELAY: float = float(os.getenv("THROTTLE_MAX_DELAY", "0.9"))

# ---------------------------------------------------------------------------
# Measurements (Google Trends via pytrends)
# ---------------------------------------------------------------------------
# When disabled, trend/volume/competition fall back to phrase-length heuristics.
TRENDS_ENABLED: bool = os.getenv("TRENDS_ENABLED", "true").lower() == "true"
TRENDS_HL: str = os.getenv("TRENDS_HL", "en-US")
TRENDS_TZ: int = int(os.getenv("TRENDS_TZ", "0"))
TRENDS_TIMEOUT: float = float(os.getenv("TRENDS_TIMEOUT", "15"))
TRENDS_INTEREST_TIMEFRAME: str = os.getenv("TRENDS_INTEREST_TIMEFRAME", "today 12-m")
TRENDS_RELATED_TIMEFRAME: str = os.getenv("TRENDS_RELATED_TIMEFRAME", "today 3-m")

# ---------------------------------------------------------------------------
# Cache settings
# ---------------------------------------------------------------------------
SERP_CACHE_TTL_SECONDS: int = int(os.getenv("SERP_CACHE_TTL_SECONDS", "900"))  # 15 minutes
ANALYSIS_CACHE_TTL_SECONDS: int = int(os.getenv("ANALYSIS_CACHE_TTL_SECONDS", "86400"))  # 24 hours

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_JSON", "false").lower() == "true"
