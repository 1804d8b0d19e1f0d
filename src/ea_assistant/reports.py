"""
Artifact Renderer: PDFs, JSON and the artifact bundle
=====================================================
  analysis_pdf(...)     one analysis (sections flowed over as many pages as needed)
  quadrant_pdf(...)     supplier quadrant vendor table + per-vendor summaries
  analysis_json(...)    pretty-printed JSON bytes
  build_artifacts(run)  the downloadable set for a finished research run:

      <Tech>_Executive_Summary.pdf   any module succeeded
      <Tech>_Market_Analysis.pdf     market-analysis succeeded
      <Tech>_Hype_Cycle.png          maturity-assessment succeeded
      <Tech>_Vendor_Landscape.png    supplier-quad succeeded
      <Tech>_Supplier_Quadrant.pdf   supplier-quad succeeded
      <Tech>_Analysis_Data.json      always
"""

from __future__ import annotations

import io
import json
import logging
import re
from datetime import date
from typing import TYPE_CHECKING, Iterable, Optional
from xml.sax.saxutils import escape

from ea_assistant import charts
from ea_assistant.models import Artifact, ArtifactType, VendorScoreRecord

if TYPE_CHECKING:
    from ea_assistant.orchestrator import ResearchRun

logger = logging.getLogger(__name__)

PDF_MIME  = "application/pdf"
PNG_MIME  = "image/png"
JSON_MIME = "application/json"


def _rl_colour(hex_str: str):
    """Convert a CSS hex colour string to a reportlab Color."""
    from reportlab.lib import colors as rl_colors
    h = hex_str.lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    r, g, b = int(h[0:2], 16) / 255, int(h[2:4], 16) / 255, int(h[4:6], 16) / 255
    return rl_colors.Color(r, g, b)


def _markup(text: str) -> str:
    """Model text → reportlab paragraph markup (escaped, bold markers dropped, newlines kept)."""
    text = escape((text or "").replace("**", ""))
    return re.sub(r"\n+", "<br/>", text.strip())


def file_stem(technology: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", technology).strip("_") or "Technology"


def _styles():
    from reportlab.lib import colors as rl_colors
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet

    styles = getSampleStyleSheet()
    NAVY  = _rl_colour("#1f3864")
    DARK  = _rl_colour("#1f2937")
    MUTED = _rl_colour("#6b7280")

    return {
        "navy": NAVY,
        "h1": ParagraphStyle("H1", parent=styles["Heading1"],
                             textColor=rl_colors.white, fontSize=16, leading=20, spaceAfter=4),
        "h2": ParagraphStyle("H2", parent=styles["Heading2"],
                             textColor=NAVY, fontSize=12, leading=15, spaceBefore=12, spaceAfter=4),
        "body": ParagraphStyle("Body", parent=styles["Normal"],
                               textColor=DARK, fontSize=9, leading=13),
        "small": ParagraphStyle("Small", parent=styles["Normal"],
                                textColor=MUTED, fontSize=8, leading=11),
    }


def _banner(title: str, subtitle: str, width: float, st: dict):
    from reportlab.platypus import Paragraph, Table, TableStyle

    banner = Table(
        [[Paragraph(f"<b>{escape(title)}</b><br/><font size='10'>{escape(subtitle)}</font>", st["h1"])]],
        colWidths=[width],
    )
    banner.setStyle(TableStyle([
        ("BACKGROUND",    (0, 0), (-1, -1), st["navy"]),
        ("TOPPADDING",    (0, 0), (-1, -1), 12),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 12),
    ]))
    return banner


def _doc(buf: io.BytesIO, title: str):
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.units import cm
    from reportlab.platypus import SimpleDocTemplate

    return SimpleDocTemplate(
        buf, pagesize=A4, title=title,
        leftMargin=1.8 * cm, rightMargin=1.8 * cm,
        topMargin=1.8 * cm, bottomMargin=1.8 * cm,
    )


def analysis_pdf(
    title: str,
    technology: str,
    sections: Iterable[tuple[str, str]],
    summary: str = "",
    footer: Optional[str] = None,
) -> bytes:
    """
    Text-flowed report: banner, optional summary, then one heading + body per
    section.  Empty sections are printed as "Not available." so the reader
    sees which headings the model skipped.
    """
    from reportlab.lib.units import cm
    from reportlab.platypus import HRFlowable, Paragraph, Spacer

    buf = io.BytesIO()
    doc = _doc(buf, title)
    st  = _styles()
    today = date.today().strftime("%B %d, %Y")

    story = [
        _banner(title, f"{technology} · Generated {today}", doc.width, st),
        Spacer(1, 0.4 * cm),
    ]
    if summary:
        story.append(Paragraph("Summary", st["h2"]))
        story.append(HRFlowable(width="100%", thickness=1, color=st["navy"]))
        story.append(Spacer(1, 0.15 * cm))
        story.append(Paragraph(_markup(summary), st["body"]))

    for heading, content in sections:
        story.append(Paragraph(escape(heading), st["h2"]))
        story.append(HRFlowable(width="100%", thickness=1, color=st["navy"]))
        story.append(Spacer(1, 0.15 * cm))
        story.append(Paragraph(_markup(content) or "Not available.", st["body"]))

    story.append(Spacer(1, 0.6 * cm))
    story.append(Paragraph(
        footer or "AI-generated analysis. Figures are model estimates and should be verified.",
        st["small"],
    ))
    doc.build(story)
    return buf.getvalue()


def quadrant_pdf(
    technology: str,
    vendors: list[VendorScoreRecord],
    overview: str = "",
    fallback: bool = False,
) -> bytes:
    from reportlab.lib import colors as rl_colors
    from reportlab.lib.units import cm
    from reportlab.platypus import HRFlowable, Paragraph, Spacer, Table, TableStyle

    buf = io.BytesIO()
    doc = _doc(buf, f"{technology} Supplier Quadrant")
    st  = _styles()
    today = date.today().strftime("%B %d, %Y")

    story = [
        _banner("Supplier Quadrant Analysis", f"{technology} · Generated {today}", doc.width, st),
        Spacer(1, 0.4 * cm),
    ]
    if fallback:
        story.append(Paragraph(
            "<b>Note:</b> vendor scores could not be read from the model's answer; "
            "the placements below are a default reference set.",
            st["body"],
        ))
        story.append(Spacer(1, 0.2 * cm))
    if overview:
        story.append(Paragraph(_markup(overview), st["body"]))

    story.append(Paragraph("Vendor Positioning", st["h2"]))
    story.append(HRFlowable(width="100%", thickness=1, color=st["navy"]))
    story.append(Spacer(1, 0.15 * cm))

    rows = [["Vendor", "Quadrant", "Execute", "Vision"]]
    for v in vendors:
        rows.append([
            Paragraph(escape(v.name), st["body"]),
            v.quadrant.value,
            f"{v.ability_to_execute:.0f}",
            f"{v.completeness_of_vision:.0f}",
        ])
    table = Table(rows, colWidths=[doc.width * f for f in (0.40, 0.26, 0.17, 0.17)])
    table.setStyle(TableStyle([
        ("BACKGROUND",    (0, 0), (-1, 0), st["navy"]),
        ("TEXTCOLOR",     (0, 0), (-1, 0), rl_colors.white),
        ("FONTNAME",      (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE",      (0, 0), (-1, -1), 8),
        ("VALIGN",        (0, 0), (-1, -1), "MIDDLE"),
        ("GRID",          (0, 0), (-1, -1), 0.5, rl_colors.lightgrey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [rl_colors.white, _rl_colour("#f3f6fb")]),
    ]))
    story.append(table)

    story.append(Paragraph("Vendor Notes", st["h2"]))
    for v in vendors:
        story.append(Paragraph(f"<b>{escape(v.name)}</b>: {_markup(v.summary)}", st["body"]))
        story.append(Spacer(1, 0.1 * cm))

    doc.build(story)
    return buf.getvalue()


def analysis_json(payload: dict) -> bytes:
    return json.dumps(payload, indent=2, default=str).encode("utf-8")


# ─── Artifact bundle ─────────────────────────────────────────────────────────

def _executive_sections(run: "ResearchRun") -> list[tuple[str, str]]:
    from ea_assistant.prompts import ANALYSIS_MODULES

    sections = []
    for slug, data in run.results.items():
        label = ANALYSIS_MODULES[slug].label if slug in ANALYSIS_MODULES else slug
        sections.append((label, data.get("summary", "")))
    forecast = run.results.get("5-year-forecast")
    if forecast:
        sections.extend(forecast.get("sections", {}).items())
    return sections


def build_artifacts(run: "ResearchRun") -> list[Artifact]:
    """Render every artifact the finished run has data for."""
    stem = file_stem(run.technology)
    artifacts: list[Artifact] = []

    if run.results:
        artifacts.append(Artifact(
            type=ArtifactType.PDF,
            name=f"{stem}_Executive_Summary.pdf",
            title="Executive Summary",
            description="Strategic analysis and recommendations",
            data=analysis_pdf(
                "Enterprise Architecture Analysis", run.technology, _executive_sections(run),
            ),
            mime=PDF_MIME,
        ))

    market = run.results.get("market-analysis")
    if market:
        artifacts.append(Artifact(
            type=ArtifactType.PDF,
            name=f"{stem}_Market_Analysis.pdf",
            title="Market Analysis",
            description="Comprehensive market research and trends",
            data=analysis_pdf(
                "Market Analysis Report", run.technology,
                market.get("sections", {}).items(), summary=market.get("summary", ""),
            ),
            mime=PDF_MIME,
        ))

    maturity = run.results.get("maturity-assessment")
    if maturity and maturity.get("chart_data"):
        artifacts.append(Artifact(
            type=ArtifactType.IMAGE,
            name=f"{stem}_Hype_Cycle.png",
            title="Hype Cycle Chart",
            description="Technology maturity positioning",
            data=charts.render_png(maturity["chart_data"]),
            mime=PNG_MIME,
        ))

    quad = run.results.get("supplier-quad")
    if quad and quad.get("chart_data"):
        artifacts.append(Artifact(
            type=ArtifactType.IMAGE,
            name=f"{stem}_Vendor_Landscape.png",
            title="Vendor Landscape",
            description="Competitive positioning analysis",
            data=charts.render_png(quad["chart_data"]),
            mime=PNG_MIME,
        ))
        artifacts.append(Artifact(
            type=ArtifactType.PDF,
            name=f"{stem}_Supplier_Quadrant.pdf",
            title="Supplier Quadrant",
            description="Vendor scores and quadrant placements",
            data=quadrant_pdf(
                run.technology,
                [VendorScoreRecord(**v) for v in quad.get("vendors", [])],
                overview=quad.get("summary", ""),
                fallback=quad.get("fallback", False),
            ),
            mime=PDF_MIME,
        ))

    artifacts.append(Artifact(
        type=ArtifactType.JSON,
        name=f"{stem}_Analysis_Data.json",
        title="Analysis Data",
        description="Complete research data and metadata",
        data=analysis_json(run.to_dict()),
        mime=JSON_MIME,
    ))
    logger.info("Built %d artifacts for %s", len(artifacts), run.technology)
    return artifacts
