"""
Tests for the framework-free HTTP handlers: analysis modules, the ea-api
router and the speed tests.  Vendor HTTP calls are patched at the
requests / OpenAI seam so the whole prompt → call → extraction path runs.
"""
import json
from unittest.mock import patch

import pytest

from factories import (
    MARKET_TEXT,
    MATURITY_TEXT,
    QUADRANT_TEXT,
    UNSTRUCTURED_TEXT,
    VENDOR_TEXT,
    FORECAST_TEXT,
    claude_payload,
    make_completion,
    mock_http_response,
    openai_completion,
)

from ea_assistant.handlers import (
    CORS_HEADERS,
    handle_analysis,
    handle_ea_api,
    handle_speed_test,
    parse_body,
    timing_status,
)
from ea_assistant.errors import ValidationError
from ea_assistant.prompts import ANALYSIS_MODULES


def _openai_returns(text):
    """Patch the OpenAI client so every completion answers ``text``."""
    p = patch("ea_assistant.llm_client.OpenAI")
    client_cls = p.start()
    client_cls.return_value.chat.completions.create.return_value = openai_completion(text)
    return p


# ─── Request plumbing ─────────────────────────────────────────────────────────

class TestPlumbing:
    @pytest.mark.parametrize("ms, expected", [(0, "FAST"), (4999, "FAST"), (5000, "ACCEPTABLE"),
                                              (7999, "ACCEPTABLE"), (8000, "SLOW")])
    def test_timing_status(self, ms, expected):
        assert timing_status(ms) == expected

    def test_parse_body_variants(self):
        assert parse_body(None) == {}
        assert parse_body(b"") == {}
        assert parse_body('{"technology": "AIOps"}') == {"technology": "AIOps"}
        assert parse_body({"a": 1}) == {"a": 1}

    def test_parse_body_invalid_json(self):
        with pytest.raises(ValidationError, match="Invalid JSON body"):
            parse_body("{not json")

    def test_parse_body_not_an_object(self):
        with pytest.raises(ValidationError):
            parse_body("[1, 2]")

    def test_options_preflight(self):
        resp = handle_analysis("market-analysis", "OPTIONS")
        assert resp.status_code == 200
        assert resp.body is None
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    def test_wrong_method(self):
        resp = handle_analysis("market-analysis", "GET")
        assert resp.status_code == 405
        assert resp.body == {"error": "Method not allowed"}

    def test_unknown_module(self):
        assert handle_analysis("nope", "POST", {"technology": "x"}).status_code == 404

    def test_invalid_json_is_400(self, settings):
        resp = handle_analysis("market-analysis", "POST", b"{oops", settings)
        assert resp.status_code == 400
        assert resp.body == {"success": False, "error": "Invalid JSON body"}

    def test_cors_headers_on_every_response(self, settings):
        resp = handle_analysis("market-analysis", "POST", {}, settings)
        for key, value in CORS_HEADERS.items():
            assert resp.headers[key] == value


# ─── Analysis modules ─────────────────────────────────────────────────────────

class TestAnalysisValidation:
    @pytest.mark.parametrize("slug", sorted(ANALYSIS_MODULES))
    def test_missing_technology_is_400(self, slug, settings):
        with patch("ea_assistant.handlers.complete") as complete:
            resp = handle_analysis(slug, "POST", {"vendor": "Zscaler"}, settings)
        assert resp.status_code == 400
        assert resp.body == {"success": False, "error": "Technology parameter required"}
        complete.assert_not_called()

    def test_vendor_missing_is_400(self, settings):
        resp = handle_analysis("vendor-technology-analysis", "POST", {"technology": "SASE"}, settings)
        assert resp.status_code == 400
        assert resp.body["error"] == "Both vendor and technology parameters required"

    @pytest.mark.parametrize("body, error", [
        ({"technology": 123}, "Technology must be a string"),
        ({"technology": ["SASE"]}, "Technology must be a string"),
        ({"technology": "SASE", "vendor": 42}, "Vendor must be a string"),
    ])
    def test_non_string_fields_are_400(self, body, error, settings):
        with patch("ea_assistant.handlers.complete") as complete:
            resp = handle_analysis("vendor-technology-analysis", "POST", body, settings)
        assert resp.status_code == 400
        assert resp.body == {"success": False, "error": error}
        complete.assert_not_called()

    def test_key_missing_is_500_with_hint(self, bare_settings):
        resp = handle_analysis("market-analysis", "POST", {"technology": "AIOps"}, bare_settings)
        assert resp.status_code == 500
        assert resp.body["success"] is False
        assert resp.body["error"] == "OpenAI API key not configured"
        assert "OPENAI_API_KEY" in resp.body["hint"]

    def test_key_read_from_environment(self):
        resp = handle_analysis("market-brief", "POST", {"technology": "AIOps"})
        assert resp.status_code == 500
        assert resp.body["error"] == "Claude API key not configured"

    def test_upstream_status_passthrough(self, settings):
        body = {"error": {"message": "Overloaded"}}
        with patch("ea_assistant.llm_client.requests.post", return_value=mock_http_response(529, body)):
            resp = handle_analysis("market-brief", "POST", {"technology": "AIOps"}, settings)
        assert resp.status_code == 529
        assert resp.body == {"success": False, "error": "Claude API error: 529", "details": "Overloaded"}

    def test_unexpected_error_is_500(self, settings):
        with patch("ea_assistant.handlers.complete", side_effect=RuntimeError("socket closed")):
            resp = handle_analysis("market-analysis", "POST", {"technology": "AIOps"}, settings)
        assert resp.status_code == 500
        assert resp.body["error"] == "Market analysis failed: socket closed"


class TestAnalysisSuccess:
    def teardown_method(self):
        patch.stopall()

    def test_market_analysis_end_to_end(self, settings):
        _openai_returns(MARKET_TEXT)
        resp = handle_analysis("market-analysis", "POST", json.dumps({"technology": " Zero Trust "}), settings)

        assert resp.status_code == 200
        body = resp.body
        assert body["success"] is True
        assert body["module"] == "market-analysis"
        assert body["technology"] == "Zero Trust"
        assert body["provider"] == "openai"
        assert body["tokens"] == {"input_tokens": 10, "output_tokens": 20}
        assert set(body["timing"]) == {"api_call_ms", "total_ms", "status"}

        data = body["data"]
        assert data["analysis"] == MARKET_TEXT
        assert list(data["sections"]) == [
            "Market Overview", "Industry Adoption", "Market Dynamics", "Market Drivers", "Challenges",
        ]
        assert data["sections"]["Market Dynamics"].startswith("Consolidation")
        assert data["metrics"]["market_size"] == "$31.6B"
        assert data["chart_data"]["type"] == "market_growth"
        assert data["chart_data"]["estimated"] is False

        artifacts = body["artifacts"]
        assert artifacts["download_ready"] is True
        assert artifacts["web_summary"]["title"] == "Zero Trust Market analysis"
        assert len(artifacts["web_summary"]["sections"]) == 5

    def test_unstructured_answer_still_has_every_section(self, settings):
        _openai_returns(UNSTRUCTURED_TEXT)
        resp = handle_analysis("maturity-assessment", "POST", {"technology": "AIOps"}, settings)
        sections = resp.body["data"]["sections"]
        assert list(sections) == [t for t, _ in ANALYSIS_MODULES["maturity-assessment"].sections]
        assert all(sections.values())

    def test_maturity_payload(self, settings):
        _openai_returns(MATURITY_TEXT)
        data = handle_analysis("maturity-assessment", "POST", {"technology": "Zero Trust"}, settings).body["data"]
        assert data["hype_cycle_position"]["position"] == "Slope of Enlightenment"
        assert data["chart_data"]["technology_position"]["position"] == "Slope of Enlightenment"
        assert data["metrics"]["enterprise_readiness"] == "High"

    def test_forecast_payload(self, settings):
        _openai_returns(FORECAST_TEXT)
        data = handle_analysis("5-year-forecast", "POST", {"technology": "Zero Trust"}, settings).body["data"]
        assert data["investment_phases"] == ["Initial Investment", "Scaling Investment", "ROI Realization"]
        assert data["chart_data"]["type"] == "forecast_timeline"
        assert len(data["chart_data"]["milestones"]) == 4

    def test_vendor_payload(self, settings):
        _openai_returns(VENDOR_TEXT)
        data = handle_analysis(
            "vendor-technology-analysis", "POST", {"technology": "SASE", "vendor": "Zscaler"}, settings,
        ).body["data"]
        assert data["vendor"] == "Zscaler"
        assert data["assessment"]["competitive_position"] == "Strong"
        assert data["chart_data"]["type"] == "capability_radar"
        assert data["chart_data"]["title"] == "Zscaler SASE Capability Assessment"

    def test_quadrant_payload(self, settings):
        _openai_returns(QUADRANT_TEXT)
        body = handle_analysis("supplier-quad", "POST", {"technology": "Zero Trust"}, settings).body
        data = body["data"]
        assert data["fallback"] is False
        assert [v["name"] for v in data["vendors"]] == ["Zscaler", "Cisco", "Okta"]
        assert data["vendors"][0]["quadrant"] == "Leaders"
        assert data["distribution"]["Challengers"] == 1
        assert data["metrics"]["total_vendors"] == 3
        assert data["chart_data"]["threshold"] == 70
        assert body["artifacts"]["web_summary"]["title"] == "Supplier Quadrant Analysis"
        assert "web_summary" not in data

    def test_quadrant_fallback_flagged(self, settings):
        _openai_returns("Zero Trust vendors are converging on platforms.")
        data = handle_analysis("supplier-quad", "POST", {"technology": "Zero Trust"}, settings).body["data"]
        assert data["fallback"] is True
        assert len(data["vendors"]) == 8

    def test_market_brief_uses_claude(self, settings):
        with patch("ea_assistant.llm_client.requests.post",
                   return_value=mock_http_response(200, claude_payload(MARKET_TEXT))) as post:
            body = handle_analysis("market-brief", "POST", {"technology": "Zero Trust"}, settings).body
        assert body["provider"] == "claude"
        assert post.call_args.kwargs["json"]["max_tokens"] == 350


# ─── ea-api router ────────────────────────────────────────────────────────────

class TestEaApi:
    def test_connection_test(self, settings):
        resp = handle_ea_api("POST", {"endpoint": "test"}, settings)
        assert resp.status_code == 200
        caps = resp.body["capabilities"]
        assert caps["claude"] and caps["search"]
        assert "timestamp" in caps

    def test_search_requires_query(self, settings):
        resp = handle_ea_api("POST", {"endpoint": "search"}, settings)
        assert resp.status_code == 400
        assert resp.body["error"] == "Search query is required"

    def test_search(self, settings):
        with patch("ea_assistant.handlers.web_search", return_value=[{"title": "t"}]) as search:
            resp = handle_ea_api("POST", {"endpoint": "search", "query": "SASE", "searchType": "vendor", "maxResults": 2}, settings)
        assert resp.body["results"] == [{"title": "t"}]
        search.assert_called_once_with("SASE", "vendor", 2, settings=settings)

    def test_claude_requires_prompt(self, settings):
        resp = handle_ea_api("POST", {"endpoint": "claude"}, settings)
        assert resp.status_code == 400
        assert resp.body["error"] == "Prompt is required"

    def test_missing_endpoint_defaults_to_claude(self, settings):
        with patch("ea_assistant.handlers.complete", return_value=make_completion("Answer", "claude")) as complete:
            resp = handle_ea_api("POST", {"prompt": "Explain SASE", "options": {"max_tokens": 500}}, settings)
        assert resp.status_code == 200
        assert resp.body["content"] == "Answer"
        assert complete.call_args.kwargs["max_tokens"] == 500
        assert complete.call_args.kwargs["temperature"] == 0.3

    def test_unknown_endpoint_defaults_to_claude(self, settings):
        with patch("ea_assistant.handlers.complete", return_value=make_completion("Answer", "claude")) as complete:
            handle_ea_api("POST", {"endpoint": "mystery", "prompt": "x"}, settings)
        assert complete.call_args.kwargs["max_tokens"] == 3000

    @pytest.mark.parametrize("body, error", [
        ({"endpoint": "search", "query": "SASE", "maxResults": "lots"}, "maxResults must be a number"),
        ({"endpoint": "search", "query": "SASE", "maxResults": 0}, "maxResults must be at least 1"),
        ({"endpoint": "search", "query": 7}, "query must be a string"),
        ({"prompt": "x", "options": {"max_tokens": "many"}}, "max_tokens must be a number"),
        ({"prompt": "x", "options": {"temperature": "warm"}}, "temperature must be a number"),
        ({"prompt": "x", "options": "fast"}, "options must be an object"),
        ({"prompt": {"text": "x"}}, "prompt must be a string"),
        ({"endpoint": "research", "technology": 5, "researchPhase": "vendor"}, "technology must be a string"),
    ])
    def test_malformed_fields_are_400(self, body, error, settings):
        with patch("ea_assistant.handlers.complete") as complete, \
             patch("ea_assistant.handlers.web_search") as search:
            resp = handle_ea_api("POST", body, settings)
        assert resp.status_code == 400
        assert resp.body == {"success": False, "error": error}
        complete.assert_not_called()
        search.assert_not_called()

    def test_zero_temperature_kept(self, settings):
        with patch("ea_assistant.handlers.complete", return_value=make_completion("Answer", "claude")) as complete:
            handle_ea_api("POST", {"prompt": "x", "options": {"temperature": 0}}, settings)
        assert complete.call_args.kwargs["temperature"] == 0.0

    def test_model_option_passed_through(self, settings):
        with patch("ea_assistant.llm_client.requests.post",
                   return_value=mock_http_response(200, claude_payload("Hi"))) as post:
            resp = handle_ea_api("POST", {"prompt": "x", "options": {"model": "claude-3-5-haiku-latest"}}, settings)
        assert resp.status_code == 200
        assert post.call_args.kwargs["json"]["model"] == "claude-3-5-haiku-latest"

    def test_default_model_when_not_given(self, settings):
        with patch("ea_assistant.handlers.complete", return_value=make_completion("Answer", "claude")) as complete:
            handle_ea_api("POST", {"prompt": "x"}, settings)
        assert complete.call_args.kwargs["model"] is None

    def test_research_requires_phase(self, settings):
        resp = handle_ea_api("POST", {"endpoint": "research", "technology": "SASE"}, settings)
        assert resp.status_code == 400
        assert resp.body["error"] == "Technology and research phase are required"

    def test_research(self, settings):
        hits = [{"title": "Gartner 2025", "snippet": "s", "url": "https://gartner.com", "relevance_score": 15}]
        with patch("ea_assistant.handlers.research_search", return_value=hits), \
             patch("ea_assistant.handlers.complete", return_value=make_completion("Phase analysis", "claude")) as complete:
            resp = handle_ea_api("POST", {"endpoint": "research", "technology": "SASE", "researchPhase": "vendor"}, settings)
        assert resp.status_code == 200
        assert resp.body["search_data"] == hits
        assert resp.body["analysis"] == "Phase analysis"
        assert resp.body["research_phase"] == "vendor"
        prompt = complete.call_args.args[1]
        assert "CURRENT VENDOR INTELLIGENCE" in prompt
        assert "Gartner 2025" in prompt

    def test_search_key_missing_is_500(self, bare_settings):
        resp = handle_ea_api("POST", {"endpoint": "search", "query": "SASE"}, bare_settings)
        assert resp.status_code == 500
        assert "not configured" in resp.body["error"]

    def test_wrong_method(self):
        assert handle_ea_api("DELETE").status_code == 405


# ─── Speed tests ──────────────────────────────────────────────────────────────

class TestSpeedTest:
    def test_claude_speed_test(self, settings):
        with patch("ea_assistant.llm_client.requests.post",
                   return_value=mock_http_response(200, claude_payload("Zero Trust benefits..."))) as post:
            resp = handle_speed_test("claude", "GET", None, settings)

        assert resp.status_code == 200
        body = resp.body
        assert body["provider"] == "claude"
        assert body["response"]["text"] == "Zero Trust benefits..."
        assert body["response"]["text_length"] == len("Zero Trust benefits...")
        assert body["timing"]["under_platform_limit"] is True
        assert body["viable"] is True
        assert post.call_args.kwargs["json"]["max_tokens"] == 300
        assert "GET" in resp.headers["Access-Control-Allow-Methods"]

    def test_openai_speed_test(self, settings):
        with patch("ea_assistant.llm_client.OpenAI") as client_cls:
            client_cls.return_value.chat.completions.create.return_value = openai_completion("ok")
            resp = handle_speed_test("openai", "POST", None, settings)
        assert resp.body["response"]["model"] == "gpt-4o"
        assert client_cls.return_value.chat.completions.create.call_args.kwargs["max_tokens"] == 350

    def test_unknown_provider(self, settings):
        assert handle_speed_test("mistral", "POST", None, settings).status_code == 404

    def test_key_missing(self, bare_settings):
        resp = handle_speed_test("gemini", "POST", None, bare_settings)
        assert resp.status_code == 500
        assert resp.body["error"] == "Gemini API key not configured"

    def test_options(self):
        assert handle_speed_test("claude", "OPTIONS").status_code == 200

    def test_put_not_allowed(self):
        assert handle_speed_test("claude", "PUT").status_code == 405
