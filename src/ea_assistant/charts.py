"""
Artifact Renderer: charts
=========================
Two renderings of the same chart payload (see chart_data.py):

  to_figure(chart)   → plotly Figure for st.plotly_chart in the UI
  render_png(chart)  → PNG bytes (matplotlib, headless Agg backend) for downloads

Both dispatch on chart["type"]; an unknown type raises ValueError.
"""

from __future__ import annotations

import io
import math

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import plotly.graph_objects as go  # noqa: E402

from ea_assistant.chart_data import QUADRANT_COLOURS  # noqa: E402

BLUE   = "#0078D4"
ORANGE = "#ca5010"
GREY   = "#605e5c"


# ─── plotly (UI) ─────────────────────────────────────────────────────────────

def _layout(fig: go.Figure, title: str, **kwargs) -> go.Figure:
    fig.update_layout(
        title=title,
        margin=dict(t=55, b=40, l=50, r=30),
        height=420,
        paper_bgcolor="white",
        plot_bgcolor="white",
        **kwargs,
    )
    return fig


def _market_figure(chart: dict) -> go.Figure:
    fig = go.Figure()
    for ds in chart["datasets"]:
        fig.add_trace(go.Scatter(
            x=chart["labels"], y=ds["data"], name=ds["label"],
            mode="lines+markers", line=dict(color=BLUE, width=3),
        ))
    return _layout(fig, chart["title"], yaxis=dict(title="USD billions", gridcolor="#e0e0e0"))


def _hype_figure(chart: dict) -> go.Figure:
    curve = chart["curve"]
    pos   = chart["technology_position"]
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=[p["x"] for p in curve], y=[p["y"] for p in curve],
        mode="lines", line=dict(color=BLUE, width=3, shape="spline"),
        name="Hype cycle", hoverinfo="skip",
    ))
    fig.add_trace(go.Scatter(
        x=[pos["x"]], y=[pos["y"]], mode="markers+text",
        marker=dict(color=ORANGE, size=16),
        text=[pos["label"]], textposition="top center",
        name=pos["position"],
    ))
    for phase in chart["phases"]:
        fig.add_annotation(
            x=phase["x"], y=phase["y"], text=phase["name"].replace("\n", "<br>"),
            showarrow=False, font=dict(size=10, color=GREY),
        )
    return _layout(
        fig, chart["title"], showlegend=False,
        xaxis=dict(title="Time", range=[0, 100], showticklabels=False),
        yaxis=dict(title="Expectations", range=[0, 100], showticklabels=False),
    )


def _forecast_figure(chart: dict) -> go.Figure:
    fig = go.Figure()
    for ds in chart["datasets"]:
        fig.add_trace(go.Scatter(
            x=chart["labels"], y=ds["data"], name=ds["label"],
            mode="lines+markers", line=dict(color=ds.get("color"), width=2, shape="spline"),
        ))
    return _layout(
        fig, chart["title"],
        yaxis=dict(range=[0, 100], ticksuffix="%"),
        legend=dict(orientation="h", yanchor="bottom", y=-0.25),
    )


def _radar_figure(chart: dict) -> go.Figure:
    labels = chart["labels"]
    fig = go.Figure()
    for ds in chart["datasets"]:
        fig.add_trace(go.Scatterpolar(
            r=ds["data"] + ds["data"][:1],
            theta=labels + labels[:1],
            fill="toself",
            name=ds["label"],
            line=dict(color=BLUE, width=2),
            fillcolor="rgba(0,120,212,0.15)",
        ))
    return _layout(
        fig, chart["title"],
        polar=dict(radialaxis=dict(visible=True, range=[0, chart.get("max", 5)])),
    )


def _quadrant_figure(chart: dict) -> go.Figure:
    threshold = chart.get("threshold", 50)
    fig = go.Figure()
    for quadrant, colour in QUADRANT_COLOURS.items():
        pts = [p for p in chart["points"] if p["quadrant"] == quadrant]
        if not pts:
            continue
        fig.add_trace(go.Scatter(
            x=[p["x"] for p in pts], y=[p["y"] for p in pts],
            mode="markers+text", name=quadrant,
            text=[p["label"] for p in pts], textposition="top center",
            marker=dict(color=colour, size=12),
        ))
    fig.add_hline(y=threshold, line_dash="dot", line_color=GREY)
    fig.add_vline(x=threshold, line_dash="dot", line_color=GREY)
    return _layout(
        fig, chart["title"],
        xaxis=dict(title="Completeness of Vision", range=[0, 100]),
        yaxis=dict(title="Ability to Execute", range=[0, 100]),
    )


_FIGURES = {
    "market_growth":     _market_figure,
    "hype_cycle":        _hype_figure,
    "forecast_timeline": _forecast_figure,
    "capability_radar":  _radar_figure,
    "quadrant":          _quadrant_figure,
}


def to_figure(chart: dict) -> go.Figure:
    try:
        builder = _FIGURES[chart["type"]]
    except KeyError:
        raise ValueError(f"Unknown chart type: {chart.get('type')!r}") from None
    return builder(chart)


# ─── matplotlib (PNG downloads) ──────────────────────────────────────────────

def _draw_lines(ax, chart: dict) -> None:
    for ds in chart["datasets"]:
        ax.plot(chart["labels"], ds["data"], marker="o", label=ds["label"],
                color=ds.get("color", BLUE), linewidth=2)
    ax.grid(alpha=0.3)
    ax.legend(loc="best", fontsize=9)


def _draw_hype(ax, chart: dict) -> None:
    curve = chart["curve"]
    pos   = chart["technology_position"]
    ax.plot([p["x"] for p in curve], [p["y"] for p in curve], color=BLUE, linewidth=3)
    ax.scatter([pos["x"]], [pos["y"]], color=ORANGE, s=120, zorder=3)
    ax.annotate(pos["label"], (pos["x"], pos["y"]), textcoords="offset points",
                xytext=(10, 8), fontweight="bold")
    for phase in chart["phases"]:
        ax.text(phase["x"], phase["y"], phase["name"], ha="center", fontsize=8, color=GREY)
    ax.set_xlim(0, 100)
    ax.set_ylim(0, 100)
    ax.set_xticks([])
    ax.set_yticks([])
    ax.set_xlabel("Time")
    ax.set_ylabel("Expectations")


def _draw_quadrant(ax, chart: dict) -> None:
    threshold = chart.get("threshold", 50)
    for p in chart["points"]:
        ax.scatter(p["x"], p["y"], color=QUADRANT_COLOURS.get(p["quadrant"], BLUE), s=80)
        ax.annotate(p["label"], (p["x"], p["y"]), textcoords="offset points",
                    xytext=(6, 4), fontsize=8)
    ax.axhline(threshold, linestyle=":", color=GREY)
    ax.axvline(threshold, linestyle=":", color=GREY)
    ax.set_xlim(0, 100)
    ax.set_ylim(0, 100)
    ax.set_xlabel("Completeness of Vision")
    ax.set_ylabel("Ability to Execute")


def _draw_radar(fig, chart: dict):
    labels = chart["labels"]
    angles = [2 * math.pi * i / len(labels) for i in range(len(labels))]
    ax = fig.add_subplot(111, polar=True)
    for ds in chart["datasets"]:
        values = ds["data"] + ds["data"][:1]
        ax.plot(angles + angles[:1], values, color=BLUE, linewidth=2)
        ax.fill(angles + angles[:1], values, color=BLUE, alpha=0.15)
    ax.set_xticks(angles)
    ax.set_xticklabels(labels)
    ax.set_ylim(0, chart.get("max", 5))
    return ax


def render_png(chart: dict, dpi: int = 100) -> bytes:
    """Render a chart payload to PNG bytes (800×600 at the default dpi)."""
    kind = chart.get("type")
    if kind not in _FIGURES:
        raise ValueError(f"Unknown chart type: {kind!r}")

    fig = plt.figure(figsize=(8, 6), dpi=dpi)
    try:
        if kind == "capability_radar":
            ax = _draw_radar(fig, chart)
        else:
            ax = fig.add_subplot(111)
            if kind == "hype_cycle":
                _draw_hype(ax, chart)
            elif kind == "quadrant":
                _draw_quadrant(ax, chart)
            else:
                _draw_lines(ax, chart)
        ax.set_title(chart.get("title", ""), fontweight="bold")
        fig.tight_layout()
        buf = io.BytesIO()
        fig.savefig(buf, format="png")
        return buf.getvalue()
    finally:
        plt.close(fig)
