"""
config.py — Central settings for the Enterprise Architecture Assistant
======================================================================
All configuration is loaded from environment variables / .env file.
Copy .env.example → .env and fill in your values.

API keys are read at request time (every handler calls get_settings()),
so rotating a key in the environment takes effect on the next request.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env into os.environ (no-op if already set, safe to call multiple times)
load_dotenv(override=False)


# ─── Helpers ────────────────────────────────────────────────────────────────

def _is_placeholder(value: str) -> bool:
    """Return True if the value looks like an unfilled template placeholder."""
    return not value or "<" in value or value.startswith("your-") or value == "PLACEHOLDER"


# ─── LLM vendors ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class VendorKeyConfig:
    """One LLM vendor: the env var holding its key, the key, and the default model."""
    env_var: str
    api_key: str
    model:   str

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and not _is_placeholder(self.api_key)


# ─── Web search ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SearchConfig:
    provider:       str   # "bing" | "serpapi" | "brave"
    bing_api_key:   str
    serpapi_api_key: str
    brave_api_key:  str

    def key_for(self, provider: str) -> str:
        return {
            "bing":    self.bing_api_key,
            "serpapi": self.serpapi_api_key,
            "brave":   self.brave_api_key,
        }.get(provider.lower(), "")

    @property
    def is_configured(self) -> bool:
        """True when any of the three providers has a real key."""
        return any(
            k and not _is_placeholder(k)
            for k in (self.bing_api_key, self.serpapi_api_key, self.brave_api_key)
        )


# ─── App-level settings ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class AppConfig:
    history_db:      str
    max_history:     int
    request_timeout: float | None   # None → rely on the hosting platform's ceiling


# ─── Master settings object ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    claude: VendorKeyConfig
    openai: VendorKeyConfig
    gemini: VendorKeyConfig
    search: SearchConfig
    app:    AppConfig

    def vendor(self, provider: str) -> VendorKeyConfig:
        """Look up the key block for ``provider`` ("claude" | "openai" | "gemini")."""
        try:
            return {"claude": self.claude, "openai": self.openai, "gemini": self.gemini}[provider]
        except KeyError:
            raise ValueError(f"Unknown LLM provider: {provider!r}") from None

    def capabilities(self) -> dict[str, bool]:
        """Which integrations have credentials; reported by the connection test."""
        return {
            "claude": self.claude.is_configured,
            "openai": self.openai.is_configured,
            "gemini": self.gemini.is_configured,
            "search": self.search.is_configured,
        }

    def status_summary(self) -> dict[str, str]:
        """Return a dict of service → status badge for the UI."""
        def badge(ok: bool) -> str:
            return "🟢 Live" if ok else "⚪ Not configured"

        return {
            "Anthropic Claude": badge(self.claude.is_configured),
            "OpenAI GPT-4o":    badge(self.openai.is_configured),
            "Google Gemini":    badge(self.gemini.is_configured),
            f"Web Search ({self.search.provider})": badge(
                bool(self.search.key_for(self.search.provider))
                and not _is_placeholder(self.search.key_for(self.search.provider))
            ),
        }


def get_settings() -> Settings:
    """Load all configuration from environment variables."""
    _str  = lambda k, d="": os.getenv(k, d).strip()
    _int  = lambda k, d=0: int(os.getenv(k, str(d)) or d)

    _timeout = _str("EA_REQUEST_TIMEOUT")

    return Settings(
        claude=VendorKeyConfig(
            env_var = "CLAUDE_API_KEY",
            api_key = _str("CLAUDE_API_KEY"),
            model   = _str("CLAUDE_MODEL", "claude-sonnet-4-20250514"),
        ),
        openai=VendorKeyConfig(
            env_var = "OPENAI_API_KEY",
            api_key = _str("OPENAI_API_KEY"),
            model   = _str("OPENAI_MODEL", "gpt-4o"),
        ),
        gemini=VendorKeyConfig(
            env_var = "GEMINI_API_KEY",
            api_key = _str("GEMINI_API_KEY"),
            model   = _str("GEMINI_MODEL", "gemini-pro"),
        ),
        search=SearchConfig(
            provider        = _str("SEARCH_PROVIDER", "bing").lower() or "bing",
            bing_api_key    = _str("BING_SEARCH_API_KEY"),
            serpapi_api_key = _str("SERPAPI_API_KEY"),
            brave_api_key   = _str("BRAVE_SEARCH_API_KEY"),
        ),
        app=AppConfig(
            history_db      = _str("EA_HISTORY_DB", "ea_assistant_data.db"),
            max_history     = _int("EA_MAX_HISTORY", 50),
            request_timeout = float(_timeout) if _timeout else None,
        ),
    )
