"""
Tests for the terminal front end.
"""
from unittest.mock import patch

import pytest

from factories import canned_completion

from ea_assistant import history
from ea_assistant.cli import build_parser, main


class TestParser:
    def test_research_flags(self):
        args = build_parser().parse_args(["research", "AIOps", "--vendor", "Datadog", "--no-quadrant"])
        assert args.technology == "AIOps"
        assert args.vendor == "Datadog"
        assert args.no_quadrant and not args.no_market

    def test_module_slug_checked(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["module", "not-a-module", "AIOps"])


class TestCommands:
    def test_status(self, capsys):
        main(["status"])
        out = capsys.readouterr().out
        assert "Service Status" in out
        assert "Not configured" in out

    def test_missing_key_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["module", "market-analysis", "AIOps"])
        assert exc.value.code == 1
        out = capsys.readouterr().out
        assert "OpenAI API key not configured" in out
        assert "OPENAI_API_KEY" in out

    def test_research_writes_artifacts(self, tmp_path, live_env):
        out_dir = tmp_path / "reports"
        with patch("ea_assistant.handlers.complete", side_effect=canned_completion):
            main(["research", "Zero Trust", "--no-quadrant", "--no-forecast", "--out", str(out_dir)])

        written = sorted(p.name for p in out_dir.iterdir())
        assert written == [
            "Zero_Trust_Analysis_Data.json",
            "Zero_Trust_Executive_Summary.pdf",
            "Zero_Trust_Hype_Cycle.png",
            "Zero_Trust_Market_Analysis.pdf",
        ]
        assert len(history.load_download_log()) == 4
        assert history.load_history()[0]["technology"] == "Zero Trust"
