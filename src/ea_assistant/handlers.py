"""
HTTP handlers
=============
Framework-free request handlers: each takes ``(method, body)`` and returns a
HandlerResponse.  api.py mounts them on FastAPI; tests call them directly.

  handle_analysis(slug, …)   POST /api/{slug}          one analysis module
  handle_ea_api(…)           POST /api/ea-api          test | search | claude | research
  handle_speed_test(p, …)    GET|POST /api/speed-test/{provider}

Every response carries permissive CORS headers.  Errors never escape a
handler: AssistantError subclasses map to their own status, anything else
becomes a 500 naming the module that failed.  Nothing is retried.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from ea_assistant import chart_data, extraction, quadrant
from ea_assistant.config import Settings, get_settings
from ea_assistant.errors import AssistantError, ExecutionError, ValidationError
from ea_assistant.llm_client import complete
from ea_assistant.models import LLMProvider
from ea_assistant.prompts import (
    ANALYSIS_MODULES,
    SPEED_TEST_MAX_TOKENS,
    SPEED_TEST_PROMPTS,
    AnalysisModule,
    build_research_prompt,
    make_request,
    render_prompt,
)
from ea_assistant.web_search import research_search, web_search

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin":  "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Content-Type":                 "application/json",
}

FAST_MS       = 5000
ACCEPTABLE_MS = 8000
PLATFORM_LIMIT_MS = 10000

Body = Union[str, bytes, dict, None]


@dataclass
class HandlerResponse:
    status_code: int
    body:        Optional[dict] = None    # None → empty body (OPTIONS)
    headers:     dict[str, str] = field(default_factory=lambda: dict(CORS_HEADERS))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def timing_status(total_ms: int) -> str:
    if total_ms < FAST_MS:
        return "FAST"
    if total_ms < ACCEPTABLE_MS:
        return "ACCEPTABLE"
    return "SLOW"


def parse_body(body: Body) -> dict:
    """Request body → dict.  Malformed JSON or a non-object body → ValidationError."""
    if body is None or body == "" or body == b"":
        return {}
    if isinstance(body, dict):
        return dict(body)
    try:
        parsed = json.loads(body)
    except ValueError:
        raise ValidationError("Invalid JSON body") from None
    if not isinstance(parsed, dict):
        raise ValidationError("Request body must be a JSON object")
    return parsed


def _method_guard(method: str, allowed: tuple[str, ...]) -> Optional[HandlerResponse]:
    method = method.upper()
    headers = dict(CORS_HEADERS, **{"Access-Control-Allow-Methods": ", ".join(allowed + ("OPTIONS",))})
    if method == "OPTIONS":
        return HandlerResponse(200, None, headers)
    if method not in allowed:
        return HandlerResponse(405, {"error": "Method not allowed"}, headers)
    return None


def _error_response(exc: Exception, context: str) -> HandlerResponse:
    if isinstance(exc, AssistantError):
        if exc.status_code >= 500:
            logger.warning("%s: %s", context, exc.message)
        return HandlerResponse(exc.status_code, exc.to_body())
    logger.exception("%s failed", context)
    wrapped = ExecutionError(f"{context} failed: {exc}")
    return HandlerResponse(wrapped.status_code, wrapped.to_body())


# ─── Per-module extras ───────────────────────────────────────────────────────

def _market_extras(text: str, technology: str, vendor: str, sections: dict) -> tuple[dict, dict]:
    metrics = extraction.extract_market_metrics(text)
    return {"metrics": metrics}, chart_data.market_growth_chart(technology, metrics)


def _vendor_extras(text: str, technology: str, vendor: str, sections: dict) -> tuple[dict, dict]:
    capabilities = extraction.extract_capability_matrix(text)
    return (
        {
            "vendor":       vendor,
            "assessment":   extraction.extract_vendor_assessment(text),
            "capabilities": capabilities,
        },
        chart_data.capability_radar_chart(vendor, technology, capabilities),
    )


def _maturity_extras(text: str, technology: str, vendor: str, sections: dict) -> tuple[dict, dict]:
    position = extraction.extract_hype_cycle_position(text, sections.get("Hype Cycle Position", ""))
    return (
        {
            "hype_cycle_position": position,
            "metrics":             extraction.extract_maturity_metrics(text),
        },
        chart_data.hype_cycle_chart(technology, position),
    )


def _forecast_extras(text: str, technology: str, vendor: str, sections: dict) -> tuple[dict, dict]:
    timeline = extraction.extract_timeline(text)
    return (
        {
            "timeline":          timeline,
            "investment_phases": extraction.extract_investment_phases(text),
        },
        chart_data.forecast_chart(technology, timeline),
    )


def _quadrant_extras(text: str, technology: str, vendor: str, sections: dict) -> tuple[dict, dict]:
    vendors, used_fallback = quadrant.extract_vendor_scores(text)
    return (
        {
            "vendors":      [v.model_dump(mode="json") for v in vendors],
            "fallback":     used_fallback,
            "distribution": quadrant.quadrant_distribution(vendors),
            "metrics":      quadrant.quadrant_metrics(text, vendors),
            "web_summary":  quadrant.format_quadrant_summary(text, vendors),
        },
        chart_data.quadrant_chart(technology, vendors),
    )


_EXTRAS: dict[str, Callable[[str, str, str, dict], tuple[dict, dict]]] = {
    "market-analysis":            _market_extras,
    "market-brief":               _market_extras,
    "vendor-technology-analysis": _vendor_extras,
    "maturity-assessment":        _maturity_extras,
    "5-year-forecast":            _forecast_extras,
    "supplier-quad":              _quadrant_extras,
}


# ─── Analysis modules ────────────────────────────────────────────────────────

def run_module(
    module: AnalysisModule,
    technology: Optional[str],
    vendor: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> dict:
    """
    Prompt → vendor call → extraction for one module; returns the success body.
    Raises ValidationError / ConfigurationError / UpstreamError.
    """
    start = time.perf_counter()
    request = make_request(module.analysis_type, technology, vendor)
    prompt = render_prompt(request)
    technology = request.technology
    vendor = request.vendor or ""

    logger.info("Running %s for %r", module.slug, technology)
    result = complete(
        module.provider,
        prompt,
        model=module.model,
        max_tokens=module.max_tokens,
        temperature=module.temperature,
        settings=settings or get_settings(),
    )
    text = result.raw_text

    by_heading = extraction.extract_sections(text, module.headings)
    titles     = {h: t for t, h in module.sections}
    sections   = {titles[h]: content for h, content in by_heading.items()}
    extras, chart = _EXTRAS[module.slug](text, technology, vendor, sections)

    web_summary = extras.pop("web_summary", None) or {
        "title":    f"{technology} {module.label}",
        "sections": extraction.web_sections(by_heading, titles),
    }

    total_ms = int((time.perf_counter() - start) * 1000)
    logger.info("%s finished in %d ms (vendor call %d ms)", module.slug, total_ms, result.api_call_ms)
    return {
        "success":    True,
        "module":     module.slug,
        "technology": technology,
        "timing": {
            "api_call_ms": result.api_call_ms,
            "total_ms":    total_ms,
            "status":      timing_status(total_ms),
        },
        "data": {
            "technology": technology,
            "analysis":   text,
            "sections":   sections,
            "summary":    extraction.executive_summary(text),
            "chart_data": chart,
            **extras,
        },
        "artifacts": {
            "web_summary":    web_summary,
            "chart_data":     chart,
            "download_ready": True,
        },
        "tokens":    result.usage.as_dict(),
        "model":     result.model,
        "provider":  result.provider,
        "timestamp": _now(),
    }


def handle_analysis(
    slug: str,
    method: str,
    body: Body = None,
    settings: Optional[Settings] = None,
) -> HandlerResponse:
    guard = _method_guard(method, ("POST",))
    if guard is not None:
        return guard

    module = ANALYSIS_MODULES.get(slug)
    if module is None:
        return HandlerResponse(404, {"success": False, "error": f"Unknown analysis module: {slug}"})

    try:
        payload = parse_body(body)
        return HandlerResponse(
            200,
            run_module(module, payload.get("technology"), payload.get("vendor"), settings),
        )
    except Exception as exc:
        return _error_response(exc, module.label)


# ─── ea-api router ───────────────────────────────────────────────────────────

def _string_field(data: dict, *keys: str) -> str:
    """First present key as a stripped string; "" when absent, 400 when not a string."""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{key} must be a string")
        return value.strip()
    return ""


def _number_field(data: dict, keys: tuple[str, ...], cast: Callable, default):
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, bool):
            raise ValidationError(f"{key} must be a number")
        try:
            return cast(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be a number") from None
    return default


def _ea_test(data: dict, settings: Settings) -> dict:
    return {
        "success":      True,
        "message":      "Connection test successful",
        "capabilities": {**settings.capabilities(), "timestamp": _now()},
    }


def _ea_search(data: dict, settings: Settings) -> dict:
    query = _string_field(data, "query")
    if not query:
        raise ValidationError("Search query is required")
    search_type = _string_field(data, "search_type", "searchType") or "general"
    max_results = _number_field(data, ("max_results", "maxResults"), int, 5)
    if max_results < 1:
        raise ValidationError("maxResults must be at least 1")
    return {
        "success":     True,
        "query":       query,
        "search_type": search_type,
        "results":     web_search(query, search_type, max_results, settings=settings),
        "timestamp":   _now(),
    }


def _claude_options(data: dict) -> dict:
    options = data.get("options") or {}
    if not isinstance(options, dict):
        raise ValidationError("options must be an object")
    return {
        "model":       _string_field(options, "model") or None,
        "max_tokens":  _number_field(options, ("max_tokens", "maxTokens"), int, 3000),
        "temperature": _number_field(options, ("temperature",), float, 0.3),
    }


def _ea_claude(data: dict, settings: Settings) -> dict:
    prompt = data.get("prompt")
    if not prompt:
        raise ValidationError("Prompt is required")
    if not isinstance(prompt, str):
        raise ValidationError("prompt must be a string")
    result = complete(LLMProvider.CLAUDE, prompt, settings=settings, **_claude_options(data))
    return {
        "success":   True,
        "content":   result.raw_text,
        "tokens":    result.usage.as_dict(),
        "timestamp": _now(),
    }


def _ea_research(data: dict, settings: Settings) -> dict:
    technology = _string_field(data, "technology")
    phase      = _string_field(data, "research_phase", "researchPhase")
    if not technology or not phase:
        raise ValidationError("Technology and research phase are required")

    search_data = research_search(technology, phase, settings=settings)
    prompt = build_research_prompt(technology, phase, search_data)
    result = complete(LLMProvider.CLAUDE, prompt, settings=settings, **_claude_options(data))
    return {
        "success":        True,
        "technology":     technology,
        "research_phase": phase,
        "search_data":    search_data,
        "analysis":       result.raw_text,
        "tokens":         result.usage.as_dict(),
        "timestamp":      _now(),
    }


_EA_ENDPOINTS: dict[str, Callable[[dict, Settings], dict]] = {
    "test":     _ea_test,
    "search":   _ea_search,
    "claude":   _ea_claude,
    "research": _ea_research,
}


def handle_ea_api(method: str, body: Body = None, settings: Optional[Settings] = None) -> HandlerResponse:
    """Route on ``endpoint``; a missing or unknown endpoint is a plain Claude call."""
    guard = _method_guard(method, ("POST",))
    if guard is not None:
        return guard

    try:
        data = parse_body(body)
        endpoint = data.pop("endpoint", None)
        handler  = _EA_ENDPOINTS.get(endpoint, _ea_claude)
        logger.info("ea-api endpoint=%s", endpoint or "claude (default)")
        return HandlerResponse(200, handler(data, settings or get_settings()))
    except Exception as exc:
        return _error_response(exc, "EA API")


# ─── Speed tests ─────────────────────────────────────────────────────────────

def handle_speed_test(
    provider: str,
    method: str,
    body: Body = None,
    settings: Optional[Settings] = None,
) -> HandlerResponse:
    """Time one fixed prompt against ``provider``; GET and POST both accepted."""
    guard = _method_guard(method, ("POST", "GET"))
    if guard is not None:
        return guard
    headers = dict(CORS_HEADERS, **{"Access-Control-Allow-Methods": "POST, GET, OPTIONS"})

    if provider not in SPEED_TEST_PROMPTS:
        return HandlerResponse(404, {"success": False, "error": f"Unknown provider: {provider}"}, headers)

    start = time.perf_counter()
    try:
        result = complete(
            provider,
            SPEED_TEST_PROMPTS[provider],
            max_tokens=SPEED_TEST_MAX_TOKENS[provider],
            settings=settings or get_settings(),
        )
    except Exception as exc:
        response = _error_response(exc, f"{provider} speed test")
        response.headers = headers
        return response
    total_ms = int((time.perf_counter() - start) * 1000)

    logger.info("%s speed test: %d ms vendor, %d ms total", provider, result.api_call_ms, total_ms)
    return HandlerResponse(
        200,
        {
            "success":  True,
            "provider": provider,
            "timing": {
                "api_call_ms":          result.api_call_ms,
                "total_ms":             total_ms,
                "under_platform_limit": total_ms < PLATFORM_LIMIT_MS,
                "status":               timing_status(total_ms),
            },
            "response": {
                "text":        result.raw_text,
                "text_length": len(result.raw_text),
                "tokens":      result.usage.as_dict(),
                "model":       result.model,
            },
            "viable":    total_ms < FAST_MS,
            "timestamp": _now(),
        },
        headers,
    )
