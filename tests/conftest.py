"""
Shared pytest fixtures for the EA Assistant test suite.
No test talks to a real vendor: HTTP calls are patched per test and every
test gets an empty environment plus its own SQLite file.
Factory helpers live in tests/factories.py so they can be imported
directly by test modules as well as being used here.
"""
import sys
import os

_tests_dir = os.path.dirname(__file__)
_src_dir   = os.path.join(_tests_dir, "..", "src")
for _p in (_tests_dir, _src_dir):
    if _p not in sys.path:
        sys.path.insert(0, _p)


import pytest

from factories import make_settings

from ea_assistant.config import get_settings


_ENV_KEYS = (
    "CLAUDE_API_KEY", "CLAUDE_MODEL",
    "OPENAI_API_KEY", "OPENAI_MODEL",
    "GEMINI_API_KEY", "GEMINI_MODEL",
    "SEARCH_PROVIDER", "BING_SEARCH_API_KEY", "SERPAPI_API_KEY", "BRAVE_SEARCH_API_KEY",
    "EA_HISTORY_DB", "EA_MAX_HISTORY", "EA_REQUEST_TIMEOUT",
)


# ─── pytest fixtures ──────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Strip any keys picked up from a local .env; history goes to a temp file."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("EA_HISTORY_DB", str(tmp_path / "ea_test.db"))


@pytest.fixture
def live_env(monkeypatch):
    """All three vendors and Bing search configured through the environment."""
    monkeypatch.setenv("CLAUDE_API_KEY", "sk-ant-test-key-123")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key-456")
    monkeypatch.setenv("GEMINI_API_KEY", "gm-test-key-789")
    monkeypatch.setenv("BING_SEARCH_API_KEY", "bing-test-key")
    return get_settings()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def bare_settings():
    return make_settings(claude_key="", openai_key="", gemini_key="", search_key="")
