"""
Tests for the SQLite store (history, settings, drafts, download log).
Each test gets its own database file via the EA_HISTORY_DB env var.
"""
import sqlite3

from ea_assistant import history
from ea_assistant.config import get_settings
from ea_assistant.models import Artifact, ArtifactType


def _artifact(name="X_Analysis_Data.json", size=2048):
    return Artifact(ArtifactType.JSON, name, "Analysis Data", "desc", b"x" * size, "application/json")


class TestHistory:
    def test_newest_first(self):
        history.save_history_entry({"id": "A", "technology": "AIOps"})
        history.save_history_entry({"id": "B", "technology": "SASE"})
        assert [e["id"] for e in history.load_history()] == ["B", "A"]

    def test_timestamp_defaulted(self):
        history.save_history_entry({"id": "A"})
        assert history.load_history()[0]["timestamp"]

    def test_pruned_to_max(self, monkeypatch):
        monkeypatch.setenv("EA_MAX_HISTORY", "3")
        for i in range(5):
            history.save_history_entry({"id": str(i)})
        assert [e["id"] for e in history.load_history(limit=10)] == ["4", "3", "2"]

    def test_limit(self):
        for i in range(4):
            history.save_history_entry({"id": str(i)})
        assert len(history.load_history(limit=2)) == 2

    def test_clear(self):
        history.save_history_entry({"id": "A"})
        history.clear_history()
        assert history.load_history() == []

    def test_unreadable_blob_skipped(self):
        history.save_history_entry({"id": "A"})
        conn = sqlite3.connect(get_settings().app.history_db)
        conn.execute("INSERT INTO history (entry_json) VALUES ('{broken')")
        conn.commit()
        conn.close()
        assert [e["id"] for e in history.load_history()] == ["A"]


class TestSettingsAndDrafts:
    def test_settings_merge_over_defaults(self):
        history.save_settings({"include_market": False})
        loaded = history.load_settings({"include_market": True, "include_forecast": True})
        assert loaded == {"include_market": False, "include_forecast": True}

    def test_settings_upsert(self):
        history.save_settings({"theme": "dark"})
        history.save_settings({"theme": "light"})
        assert history.load_settings()["theme"] == "light"

    def test_draft_round_trip(self):
        history.save_draft("research_form", {"technology": "SASE", "vendor": ""})
        history.save_draft("research_form", {"technology": "SASE 2", "vendor": "Netskope"})
        assert history.load_draft("research_form") == {"technology": "SASE 2", "vendor": "Netskope"}

    def test_missing_draft(self):
        assert history.load_draft("nothing") is None


class TestDownloadLog:
    def test_logged(self):
        history.log_download("RUN1", _artifact())
        rows = history.load_download_log()
        assert len(rows) == 1
        assert rows[0]["run_id"] == "RUN1"
        assert rows[0]["artifact_type"] == "json"
        assert rows[0]["size_kb"] == 2.0
