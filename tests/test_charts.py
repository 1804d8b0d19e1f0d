"""
Tests for chart payloads and their plotly / PNG renderings.
"""
from datetime import datetime

import plotly.graph_objects as go
import pytest

from factories import make_vendor

from ea_assistant import chart_data, charts
from ea_assistant.models import Quadrant


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _all_charts():
    return [
        chart_data.market_growth_chart("AIOps", {"market_size": "$20B", "growth_rate": "10%"}),
        chart_data.hype_cycle_chart("AIOps", {"position": "Trough of Disillusionment"}),
        chart_data.forecast_chart("AIOps", {"milestones": [{"phase": "pilot"}]}),
        chart_data.capability_radar_chart("Datadog", "AIOps", {"security": 4, "scalability": 3, "support": 2}),
        chart_data.quadrant_chart("AIOps", [make_vendor(), make_vendor("Moogsoft", Quadrant.VISIONARIES, 60, 78)]),
    ]


class TestChartPayloads:
    def test_market_growth_compounds(self):
        chart = chart_data.market_growth_chart("AIOps", {"market_size": "$20B", "growth_rate": "10%"})
        assert chart["datasets"][0]["data"] == [20.0, 22.0, 24.2, 26.6]
        assert chart["labels"][0] == str(datetime.now().year)
        assert chart["estimated"] is False

    def test_market_growth_defaults(self):
        chart = chart_data.market_growth_chart("AIOps", {"market_size": None, "growth_rate": None})
        assert chart["datasets"][0]["data"][0] == chart_data.DEFAULT_MARKET_SIZE_B
        assert chart["estimated"] is True

    def test_hype_unknown_position_centred(self):
        chart = chart_data.hype_cycle_chart("AIOps", {"position": "Unknown"})
        assert (chart["technology_position"]["x"], chart["technology_position"]["y"]) == (50, 50)

    def test_forecast_milestones(self):
        chart = chart_data.forecast_chart("AIOps", {"milestones": [{"phase": "pilot"}, {"phase": "scaling"}]})
        assert len(chart["labels"]) == 6
        assert [m["event"] for m in chart["milestones"]] == ["Pilot Phase", "Scaling Phase"]

    def test_quadrant_points(self):
        chart = chart_data.quadrant_chart("AIOps", [make_vendor("Splunk", Quadrant.LEADERS, 88, 77)])
        assert chart["points"] == [{"x": 77.0, "y": 88.0, "label": "Splunk", "quadrant": "Leaders"}]
        assert chart["threshold"] == 70


class TestFigures:
    @pytest.mark.parametrize("chart", _all_charts(), ids=lambda c: c["type"])
    def test_plotly_figure(self, chart):
        fig = charts.to_figure(chart)
        assert isinstance(fig, go.Figure)
        assert fig.layout.title.text == chart["title"]

    @pytest.mark.parametrize("chart", _all_charts(), ids=lambda c: c["type"])
    def test_png(self, chart):
        data = charts.render_png(chart, dpi=50)
        assert data.startswith(PNG_SIGNATURE)

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            charts.to_figure({"type": "pie"})
        with pytest.raises(ValueError):
            charts.render_png({"type": "pie"})
