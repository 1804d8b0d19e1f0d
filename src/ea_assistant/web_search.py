"""
Web search for the search-enhanced research endpoint.

Three interchangeable providers, chosen by SEARCH_PROVIDER:

    bing     https://api.bing.microsoft.com/v7.0/search   (Ocp-Apim-Subscription-Key)
    serpapi  https://serpapi.com/search                   (api_key param, engine=google)
    brave    https://api.search.brave.com/res/v1/web/search (X-Subscription-Token)

Each returns a list of ``{title, url, snippet, source}`` dicts.  Results are
then filtered to authoritative or recent pages and ranked by a keyword score
before being inlined into the research prompt.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import requests

from ea_assistant.config import Settings, _is_placeholder, get_settings
from ea_assistant.errors import ConfigurationError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

BING_URL    = "https://api.bing.microsoft.com/v7.0/search"
SERPAPI_URL = "https://serpapi.com/search"
BRAVE_URL   = "https://api.search.brave.com/res/v1/web/search"

_PROVIDER_NAMES = {"bing": "Bing Search", "serpapi": "SerpApi", "brave": "Brave Search"}
_PROVIDER_ENV   = {
    "bing":    "BING_SEARCH_API_KEY",
    "serpapi": "SERPAPI_API_KEY",
    "brave":   "BRAVE_SEARCH_API_KEY",
}

AUTHORITATIVE_DOMAINS = (
    "gartner.com", "forrester.com", "idc.com", "mckinsey.com",
    "deloitte.com", "pwc.com", "accenture.com", "statista.com",
)
_EXCLUDED_KEYWORDS = ("download", "webinar", "whitepaper download", "free trial")
_RECENT_YEARS      = ("2024", "2025")
MAX_PROCESSED_RESULTS = 8

_QUERY_SUFFIXES = {
    "market":     "market analysis 2024 2025 research report",
    "vendor":     "vendor comparison Gartner Forrester leader",
    "technology": "technology implementation case study enterprise",
    "hype":       "hype cycle Gartner market maturity adoption",
    "financial":  "market size revenue growth forecast",
}

_PHASE_QUERIES: dict[str, list[tuple[str, str]]] = {
    "market": [
        ("{t} market size 2024", "financial"),
        ("{t} enterprise adoption trends", "market"),
        ("{t} industry analysis report", "market"),
    ],
    "vendor": [
        ("{t} vendor comparison Gartner", "vendor"),
        ("{t} leading companies market share", "vendor"),
        ("{t} competitive landscape 2024", "vendor"),
    ],
    "hype": [
        ("{t} Gartner hype cycle 2024", "hype"),
        ("{t} market maturity assessment", "hype"),
        ("{t} adoption timeline enterprise", "technology"),
    ],
    "strategic": [
        ("{t} ROI case study enterprise", "technology"),
        ("{t} implementation best practices", "technology"),
        ("{t} business value assessment", "market"),
    ],
}

_PHASE_KEYWORDS = {
    "market":    ("market", "analysis", "size", "growth", "forecast"),
    "vendor":    ("vendor", "comparison", "leader", "competitive", "landscape"),
    "hype":      ("hype cycle", "maturity", "adoption", "timeline"),
    "strategic": ("roi", "implementation", "case study", "best practices"),
}


# ─── Query shaping ───────────────────────────────────────────────────────────

def enhance_search_query(query: str, search_type: str = "general") -> str:
    """Append type-specific terms to a query; unknown types pass it through."""
    suffix = _QUERY_SUFFIXES.get(search_type)
    return f"{query} {suffix}" if suffix else query


def generate_search_queries(technology: str, phase: str) -> list[dict[str, str]]:
    """Three ``{query, type}`` searches for a research phase (unknown phase → market)."""
    rows = _PHASE_QUERIES.get(phase, _PHASE_QUERIES["market"])
    return [{"query": q.format(t=technology), "type": kind} for q, kind in rows]


# ─── Providers ───────────────────────────────────────────────────────────────

def _provider_key(provider: str, settings: Settings) -> str:
    key = settings.search.key_for(provider)
    if not key or _is_placeholder(key):
        raise ConfigurationError(
            f"{_PROVIDER_NAMES[provider]} API key not configured",
            hint=f"Add {_PROVIDER_ENV[provider]} to the environment or .env file",
        )
    return key


def _get(provider: str, url: str, settings: Settings, **kwargs) -> dict:
    response = requests.get(url, timeout=settings.app.request_timeout, **kwargs)
    if not response.ok:
        logger.warning("%s returned %s", _PROVIDER_NAMES[provider], response.status_code)
        raise UpstreamError(_PROVIDER_NAMES[provider], response.status_code, response.text or None)
    return response.json()


def bing_search(query: str, search_type: str, max_results: int, settings: Settings) -> list[dict]:
    key  = _provider_key("bing", settings)
    data = _get(
        "bing", BING_URL, settings,
        params={
            "q":              enhance_search_query(query, search_type),
            "count":          max_results,
            "responseFilter": "webPages",
        },
        headers={"Ocp-Apim-Subscription-Key": key},
    )
    return [
        {
            "title":          item.get("name", ""),
            "url":            item.get("url", ""),
            "snippet":        item.get("snippet", ""),
            "date_published": item.get("datePublished"),
            "source":         "bing",
        }
        for item in (data.get("webPages") or {}).get("value", [])
    ]


def serpapi_search(query: str, search_type: str, max_results: int, settings: Settings) -> list[dict]:
    key  = _provider_key("serpapi", settings)
    data = _get(
        "serpapi", SERPAPI_URL, settings,
        params={
            "q":       enhance_search_query(query, search_type),
            "api_key": key,
            "engine":  "google",
            "num":     max_results,
        },
    )
    return [
        {
            "title":   item.get("title", ""),
            "url":     item.get("link", ""),
            "snippet": item.get("snippet", ""),
            "source":  "serpapi",
        }
        for item in data.get("organic_results") or []
    ]


def brave_search(query: str, search_type: str, max_results: int, settings: Settings) -> list[dict]:
    key  = _provider_key("brave", settings)
    data = _get(
        "brave", BRAVE_URL, settings,
        params={"q": enhance_search_query(query, search_type), "count": max_results},
        headers={"Accept": "application/json", "X-Subscription-Token": key},
    )
    return [
        {
            "title":   item.get("title", ""),
            "url":     item.get("url", ""),
            "snippet": item.get("description", ""),
            "source":  "brave",
        }
        for item in (data.get("web") or {}).get("results", [])
    ]


def web_search(
    query: str,
    search_type: str = "general",
    max_results: int = 5,
    settings: Optional[Settings] = None,
) -> list[dict]:
    """Run one search against the configured provider."""
    settings = settings or get_settings()
    provider = settings.search.provider
    searchers = {"bing": bing_search, "serpapi": serpapi_search, "brave": brave_search}
    if provider not in searchers:
        raise ValidationError(f"Unsupported search provider: {provider}")
    logger.info("Searching %s for %r (%s)", provider, query, search_type)
    return searchers[provider](query, search_type, max_results, settings)


# ─── Filtering & ranking ─────────────────────────────────────────────────────

def relevance_score(result: dict, phase: str) -> int:
    """+10 authoritative domain, +5 recent year in title, +2 per phase keyword hit."""
    title   = (result.get("title") or "").lower()
    snippet = (result.get("snippet") or "").lower()
    url     = (result.get("url") or "").lower()

    score = 0
    if any(s in url for s in ("gartner", "forrester", "idc", "mckinsey")):
        score += 10
    if any(y in title for y in _RECENT_YEARS):
        score += 5
    for keyword in _PHASE_KEYWORDS.get(phase, ()):
        if keyword in title or keyword in snippet:
            score += 2
    return score


def process_search_results(result_lists: list[list[dict]], phase: str) -> list[dict]:
    """
    Flatten, drop promotional pages, keep authoritative or recent ones,
    cap at MAX_PROCESSED_RESULTS and sort by relevance (highest first).
    """
    kept = []
    for result in (r for results in result_lists for r in results):
        title   = (result.get("title") or "").lower()
        snippet = (result.get("snippet") or "").lower()
        url     = (result.get("url") or "").lower()
        if any(k in title or k in snippet for k in _EXCLUDED_KEYWORDS):
            continue
        authoritative = any(d in url for d in AUTHORITATIVE_DOMAINS)
        if authoritative or any(y in title for y in _RECENT_YEARS):
            kept.append(result)

    processed = [
        {
            "title":           r.get("title", ""),
            "snippet":         r.get("snippet", ""),
            "url":             r.get("url", ""),
            "relevance_score": relevance_score(r, phase),
        }
        for r in kept[:MAX_PROCESSED_RESULTS]
    ]
    return sorted(processed, key=lambda r: r["relevance_score"], reverse=True)


def research_search(technology: str, phase: str, settings: Optional[Settings] = None) -> list[dict]:
    """Run the phase's three searches concurrently (3 hits each) and return the ranked set."""
    settings = settings or get_settings()
    queries  = generate_search_queries(technology, phase)
    with ThreadPoolExecutor(max_workers=len(queries)) as pool:
        result_lists = list(pool.map(
            lambda q: web_search(q["query"], q["type"], 3, settings=settings),
            queries,
        ))
    return process_search_results(result_lists, phase)
