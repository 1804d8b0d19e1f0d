"""
Chart payloads returned in handler responses.

Each builder returns a plain JSON-serialisable dict with a ``type`` key;
charts.py turns the same dict into a plotly figure (UI) or a PNG (download).

    type                 built from
    market_growth        market-size / growth-rate figures in the text
    hype_cycle           extract_hype_cycle_position()
    forecast_timeline    extract_timeline()
    capability_radar     extract_capability_matrix()
    quadrant             VendorScoreRecord list
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ea_assistant.models import VendorScoreRecord
from ea_assistant.quadrant import AXIS_THRESHOLD

DEFAULT_MARKET_SIZE_B = 10.0
DEFAULT_GROWTH_PCT    = 15.0

HYPE_CURVE = [
    {"x": 5,  "y": 15},
    {"x": 30, "y": 85},
    {"x": 50, "y": 25},
    {"x": 70, "y": 50},
    {"x": 95, "y": 70},
]

HYPE_POSITION_COORDS = {
    "Innovation Trigger":            {"x": 10, "y": 20},
    "Peak of Expectations":          {"x": 30, "y": 85},
    "Peak of Inflated Expectations": {"x": 30, "y": 85},
    "Trough of Disillusionment":     {"x": 50, "y": 25},
    "Slope of Enlightenment":        {"x": 70, "y": 50},
    "Plateau of Productivity":       {"x": 90, "y": 70},
}

HYPE_PHASE_LABELS = [
    {"name": "Innovation\nTrigger",        "x": 10, "y": 10},
    {"name": "Peak of\nExpectations",      "x": 30, "y": 90},
    {"name": "Trough of\nDisillusionment", "x": 50, "y": 15},
    {"name": "Slope of\nEnlightenment",    "x": 70, "y": 40},
    {"name": "Plateau of\nProductivity",   "x": 90, "y": 75},
]

QUADRANT_COLOURS = {
    "Leaders":       "#107c10",
    "Challengers":   "#0078d4",
    "Visionaries":   "#8764b8",
    "Niche Players": "#ca5010",
}


def _parse_number(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value.strip("$B%").split("-")[0])
    except ValueError:
        return None


def market_growth_chart(technology: str, metrics: dict, years: int = 4) -> dict:
    """
    Projected market size: the stated size compounded at the stated growth
    rate, or DEFAULT_* when either figure wasn't found.
    """
    size   = _parse_number(metrics.get("market_size")) or DEFAULT_MARKET_SIZE_B
    growth = _parse_number(metrics.get("growth_rate")) or DEFAULT_GROWTH_PCT
    start  = datetime.now().year
    values = [round(size * (1 + growth / 100) ** i, 1) for i in range(years)]
    return {
        "type":  "market_growth",
        "title": f"{technology} Market Growth Projection",
        "labels": [str(start + i) for i in range(years)],
        "datasets": [{"label": "Market size ($B)", "data": values}],
        "estimated": metrics.get("market_size") is None or metrics.get("growth_rate") is None,
    }


def hype_cycle_chart(technology: str, position: dict) -> dict:
    coords = HYPE_POSITION_COORDS.get(position.get("position", ""), {"x": 50, "y": 50})
    return {
        "type":  "hype_cycle",
        "title": f"{technology} Hype Cycle Position",
        "curve": HYPE_CURVE,
        "technology_position": {
            "x":        coords["x"],
            "y":        coords["y"],
            "label":    technology,
            "position": position.get("position", "Unknown"),
        },
        "phases": HYPE_PHASE_LABELS,
    }


def forecast_chart(technology: str, timeline: dict) -> dict:
    """
    Fixed illustrative trajectories over six years.  Only the milestones come
    from the text; the three series are the same for every technology.
    """
    start = datetime.now().year
    return {
        "type":   "forecast_timeline",
        "title":  f"{technology} 5-Year Strategic Roadmap",
        "labels": [str(start + i) for i in range(6)],
        "datasets": [
            {"label": "Technology Maturity", "data": [30, 45, 65, 80, 90, 95], "color": "#3498db"},
            {"label": "Market Adoption",     "data": [20, 35, 55, 70, 85, 95], "color": "#e74c3c"},
            {"label": "Investment Level",    "data": [40, 70, 85, 75, 60, 50], "color": "#f39c12"},
        ],
        "milestones": [
            {"year": str(start + 1 + i), "event": f"{m['phase'].title()} Phase"}
            for i, m in enumerate(timeline.get("milestones", [])[:4])
        ],
    }


def capability_radar_chart(vendor: str, technology: str, capabilities: dict[str, int]) -> dict:
    return {
        "type":   "capability_radar",
        "title":  f"{vendor} {technology} Capability Assessment",
        "labels": [name.title() for name in capabilities],
        "datasets": [{"label": f"{vendor} {technology}", "data": list(capabilities.values())}],
        "max":    5,
    }


def quadrant_chart(technology: str, vendors: list[VendorScoreRecord]) -> dict:
    return {
        "type":  "quadrant",
        "title": f"{technology} Supplier Quadrant",
        "points": [
            {
                "x":        v.completeness_of_vision,
                "y":        v.ability_to_execute,
                "label":    v.name,
                "quadrant": v.quadrant.value,
            }
            for v in vendors
        ],
        "threshold": AXIS_THRESHOLD,
    }
