"""
Tests for PDF / JSON generation.
All functions should return non-empty, structurally valid output.
"""
import json

import pytest

from factories import make_vendor

from ea_assistant import reports
from ea_assistant.models import Quadrant


class TestAnalysisPdf:
    def test_returns_pdf_bytes(self):
        data = reports.analysis_pdf(
            "Market Analysis Report", "Zero Trust",
            [("Market Overview", "**Bold** text & <tags>\nsecond line"), ("Challenges", "")],
            summary="Short summary.",
        )
        assert isinstance(data, bytes)
        assert data.startswith(b"%PDF")

    def test_long_content_flows(self):
        long_text = "Paragraph of analysis. " * 800
        short = reports.analysis_pdf("T", "X", [("Only", "x")])
        longer = reports.analysis_pdf("T", "X", [("Only", long_text)])
        assert len(longer) > len(short)


class TestQuadrantPdf:
    def test_returns_pdf_bytes(self):
        vendors = [make_vendor(), make_vendor("Okta & Co", Quadrant.VISIONARIES, 60, 80)]
        data = reports.quadrant_pdf("Zero Trust", vendors, overview="Overview", fallback=True)
        assert data.startswith(b"%PDF")

    def test_empty_vendor_list(self):
        assert reports.quadrant_pdf("Zero Trust", []).startswith(b"%PDF")


class TestJsonAndNames:
    def test_analysis_json(self):
        data = reports.analysis_json({"a": 1, "when": object()})
        parsed = json.loads(data)
        assert parsed["a"] == 1
        assert b'\n  "a": 1' in data

    @pytest.mark.parametrize("technology, stem", [
        ("Zero Trust Security", "Zero_Trust_Security"),
        ("AI/ML Ops!", "AI_ML_Ops"),
        ("???", "Technology"),
    ])
    def test_file_stem(self, technology, stem):
        assert reports.file_stem(technology) == stem
