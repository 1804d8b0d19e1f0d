"""
Vendor Client — one completion call against one LLM vendor
==========================================================
  call_claude(prompt, …)   Anthropic Messages API   (requests)
  call_openai(prompt, …)   OpenAI Chat Completions  (openai SDK)
  call_gemini(prompt, …)   Google Generative Language generateContent (requests)
  complete(provider, …)    dispatch on LLMProvider

Contract shared by all three:
  • the API key is read from Settings at call time; absent → ConfigurationError
  • non-2xx → UpstreamError(status, vendor message)
  • exactly one attempt: no retry, no backoff (the OpenAI SDK's built-in
    retries are switched off with max_retries=0)
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import requests
from openai import APIStatusError, OpenAI

from ea_assistant.config import Settings, get_settings
from ea_assistant.errors import ConfigurationError, UpstreamError
from ea_assistant.models import LLMProvider, TokenUsage, VendorCompletionResult

logger = logging.getLogger(__name__)

CLAUDE_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

_VENDOR_NAMES = {"claude": "Claude", "openai": "OpenAI", "gemini": "Gemini"}


def _require_key(provider: str, settings: Settings) -> str:
    cfg = settings.vendor(provider)
    if not cfg.is_configured:
        raise ConfigurationError(
            f"{_VENDOR_NAMES[provider]} API key not configured",
            hint=f"Add {cfg.env_var} to the environment or .env file",
        )
    return cfg.api_key


def _error_message(response: requests.Response) -> Optional[str]:
    """Pull the vendor's error message out of a failed response body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    err = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(err, dict):
        return err.get("message")
    return err or None


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


# ─── Anthropic ───────────────────────────────────────────────────────────────

def call_claude(
    prompt: str,
    *,
    model: Optional[str] = None,
    max_tokens: int = 3000,
    temperature: float = 0.3,
    settings: Optional[Settings] = None,
) -> VendorCompletionResult:
    settings = settings or get_settings()
    api_key  = _require_key("claude", settings)
    model    = model or settings.claude.model

    start = time.perf_counter()
    response = requests.post(
        CLAUDE_URL,
        headers={
            "Content-Type":      "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
            "x-api-key":         api_key,
        },
        json={
            "model":       model,
            "max_tokens":  max_tokens,
            "temperature": temperature,
            "messages":    [{"role": "user", "content": prompt}],
        },
        timeout=settings.app.request_timeout,
    )
    api_call_ms = _elapsed_ms(start)

    if not response.ok:
        logger.warning("Claude API returned %s", response.status_code)
        raise UpstreamError("Claude", response.status_code, _error_message(response))

    data = response.json()
    try:
        text = data["content"][0]["text"]
    except (KeyError, IndexError, TypeError):
        text = "No response generated"
    usage = data.get("usage", {})
    return VendorCompletionResult(
        raw_text    = text,
        usage       = TokenUsage(usage.get("input_tokens", 0), usage.get("output_tokens", 0)),
        model       = model,
        provider    = LLMProvider.CLAUDE.value,
        api_call_ms = api_call_ms,
    )


# ─── OpenAI ──────────────────────────────────────────────────────────────────

def call_openai(
    prompt: str,
    *,
    model: Optional[str] = None,
    max_tokens: int = 400,
    temperature: float = 0.3,
    settings: Optional[Settings] = None,
) -> VendorCompletionResult:
    settings = settings or get_settings()
    api_key  = _require_key("openai", settings)
    model    = model or settings.openai.model

    client = OpenAI(api_key=api_key, max_retries=0, timeout=settings.app.request_timeout)

    start = time.perf_counter()
    try:
        response = client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
    except APIStatusError as exc:
        logger.warning("OpenAI API returned %s", exc.status_code)
        raise UpstreamError("OpenAI", exc.status_code, exc.message) from exc
    api_call_ms = _elapsed_ms(start)

    usage = response.usage
    return VendorCompletionResult(
        raw_text    = response.choices[0].message.content or "",
        usage       = TokenUsage(
            getattr(usage, "prompt_tokens", 0) or 0,
            getattr(usage, "completion_tokens", 0) or 0,
        ),
        model       = model,
        provider    = LLMProvider.OPENAI.value,
        api_call_ms = api_call_ms,
    )


# ─── Google Gemini ───────────────────────────────────────────────────────────

def call_gemini(
    prompt: str,
    *,
    model: Optional[str] = None,
    max_tokens: int = 1000,
    temperature: float = 0.3,
    settings: Optional[Settings] = None,
) -> VendorCompletionResult:
    settings = settings or get_settings()
    api_key  = _require_key("gemini", settings)
    model    = model or settings.gemini.model

    start = time.perf_counter()
    response = requests.post(
        GEMINI_URL.format(model=model),
        params={"key": api_key},
        headers={"Content-Type": "application/json"},
        json={
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature":     temperature,
                "topK":            1,
                "topP":            1,
                "maxOutputTokens": max_tokens,
            },
        },
        timeout=settings.app.request_timeout,
    )
    api_call_ms = _elapsed_ms(start)

    if not response.ok:
        logger.warning("Gemini API returned %s", response.status_code)
        raise UpstreamError("Gemini", response.status_code, _error_message(response))

    data = response.json()
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        text = "No response generated"
    usage = data.get("usageMetadata", {})
    return VendorCompletionResult(
        raw_text    = text,
        usage       = TokenUsage(
            usage.get("promptTokenCount", 0),
            usage.get("candidatesTokenCount", 0),
        ),
        model       = model,
        provider    = LLMProvider.GEMINI.value,
        api_call_ms = api_call_ms,
    )


# ─── Dispatch ────────────────────────────────────────────────────────────────

def complete(
    provider: LLMProvider | str,
    prompt: str,
    *,
    model: Optional[str] = None,
    max_tokens: int = 400,
    temperature: float = 0.3,
    settings: Optional[Settings] = None,
) -> VendorCompletionResult:
    """Send ``prompt`` to ``provider`` once and return its completion."""
    caller = {
        LLMProvider.CLAUDE: call_claude,
        LLMProvider.OPENAI: call_openai,
        LLMProvider.GEMINI: call_gemini,
    }[LLMProvider(provider)]
    return caller(
        prompt,
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        settings=settings,
    )
