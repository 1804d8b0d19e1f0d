"""
Response Extractor — regex heuristics over free-text completions
================================================================
The model is asked for a fixed ``**HEADING**`` skeleton but nothing forces
it to comply, so every function here is best effort:

  • a heading that isn't found yields "" (never an exception)
  • if *no* heading is found, extract_sections() falls back to splitting the
    text into equal-length parts, one per requested heading
  • numeric metrics that don't match stay None

None of these results are guaranteed to be complete; callers display
whatever came back.
"""

from __future__ import annotations

import html
import logging
import math
import re
from typing import Iterable, Optional

from ea_assistant.models import ExtractedSection

logger = logging.getLogger(__name__)

SECTION_PREVIEW_CHARS = 300
SUMMARY_CHARS = 200
NOT_AVAILABLE = "Analysis content not available."


# ─── Sections ────────────────────────────────────────────────────────────────

def _section_pattern(heading: str) -> re.Pattern:
    return re.compile(rf"\*\*{re.escape(heading)}\*\*([\s\S]*?)(?=\*\*|$)", re.IGNORECASE)


def extract_section(text: str, heading: str) -> Optional[str]:
    """Content between ``**heading**`` and the next ``**`` (or end of text); None if absent."""
    match = _section_pattern(heading).search(text or "")
    if match is None:
        return None
    return match.group(1).strip()


def quarter_text(text: str, parts: int = 4) -> list[str]:
    """Split ``text`` into ``parts`` chunks of equal length (by characters, not meaning)."""
    parts = max(parts, 1)
    text = (text or "").strip()
    if not text:
        return [""] * parts
    size = math.ceil(len(text) / parts)
    return [text[i * size:(i + 1) * size].strip() for i in range(parts)]


def extract_sections(text: str, headings: Iterable[str]) -> dict[str, str]:
    """
    Map every heading to its section body.

    Every requested heading is present in the result.  Headings that don't
    appear map to "".  When none of them appears, the text is split by length
    into one chunk per heading instead.
    """
    headings = list(headings)
    found = {h: extract_section(text, h) for h in headings}
    if headings and all(v is None for v in found.values()):
        logger.info("No section headings matched; splitting %d chars by length", len(text or ""))
        return dict(zip(headings, quarter_text(text, len(headings))))
    return {h: (v or "") for h, v in found.items()}


def preview(content: str, limit: int = SECTION_PREVIEW_CHARS) -> str:
    """Truncated section body for the web summary card."""
    if not content:
        return NOT_AVAILABLE
    return content[:limit] + "..."


def web_sections(sections: dict[str, str], titles: dict[str, str]) -> list[dict[str, str]]:
    """[{title, content}] preview cards, in heading order; ``titles`` maps heading → display title."""
    return [
        ExtractedSection(titles.get(heading, heading.title()), preview(content)).as_dict()
        for heading, content in sections.items()
    ]


def card_html(title: str, body: str) -> str:
    """HTML for one preview card; title and body are escaped model text."""
    return (f'<div class="ea-card"><h4>{html.escape(title)}</h4>'
            f'<p>{html.escape(body)}</p></div>')


def executive_summary(text: str) -> str:
    """First line when it's a real sentence, otherwise the first 200 characters."""
    text = text or ""
    if not text:
        return ""
    first_line = text.split("\n")[0]
    if len(first_line) > 50:
        return first_line[:SUMMARY_CHARS] + "..."
    return text[:SUMMARY_CHARS] + "..."


# ─── Market metrics ──────────────────────────────────────────────────────────

_SIZE_RE     = re.compile(r"\$(\d+(?:\.\d+)?)\s*billion", re.IGNORECASE)
_GROWTH_RE   = re.compile(r"(\d+(?:\.\d+)?)\s*%?\s*(?:growth|CAGR|annually)", re.IGNORECASE)
_ADOPTION_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%?\s*(?:adoption|enterprises|organizations)", re.IGNORECASE)


def extract_market_metrics(text: str) -> dict[str, Optional[str]]:
    metrics: dict[str, Optional[str]] = {
        "market_size":    None,
        "growth_rate":    None,
        "adoption_rate":  None,
        "time_to_market": None,
    }
    if m := _SIZE_RE.search(text or ""):
        metrics["market_size"] = f"${m.group(1)}B"
    if m := _GROWTH_RE.search(text or ""):
        metrics["growth_rate"] = f"{m.group(1)}%"
    if m := _ADOPTION_RE.search(text or ""):
        metrics["adoption_rate"] = f"{m.group(1)}%"
    return metrics


def extract_market_sizes(text: str) -> list[float]:
    """Every "$N billion" figure in order of appearance."""
    return [float(v) for v in _SIZE_RE.findall(text or "")]


# ─── Hype cycle / maturity ───────────────────────────────────────────────────

HYPE_CYCLE_POSITIONS = [
    "Innovation Trigger",
    "Peak of Inflated Expectations",
    "Peak of Expectations",
    "Trough of Disillusionment",
    "Slope of Enlightenment",
    "Plateau of Productivity",
]


def _position_rationale(text: str, position: str) -> str:
    match = re.search(rf"{re.escape(position)}[^.]*\.([^.]*\.)", text, re.IGNORECASE)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return "Rationale not available"


def extract_hype_cycle_position(text: str, positioning_section: str = "") -> dict[str, str]:
    """
    Hype-cycle phase named in the answer.

    Looks in the positioning section first (if given), then the whole text,
    and picks the phase mentioned earliest: later mentions are usually the
    "expected progression" paragraph.
    """
    for haystack in (positioning_section, text or ""):
        if not haystack:
            continue
        hits = []
        for position in HYPE_CYCLE_POSITIONS:
            m = re.search(re.escape(position), haystack, re.IGNORECASE)
            if m:
                hits.append((m.start(), position))
        if hits:
            _, position = min(hits)
            return {
                "position":   position,
                "confidence": "high",
                "evidence":   _position_rationale(text or "", position),
            }
    return {
        "position":   "Unknown",
        "confidence": "low",
        "evidence":   "Position not clearly identified in analysis",
    }


_MATURITY_ADOPTION_RE = re.compile(r"(\d+(?:-\d+)?)\s*%?\s*(?:adoption|enterprises|organizations)", re.IGNORECASE)
_MAINSTREAM_RE        = re.compile(r"(\d+(?:-\d+)?)\s*years?\s*(?:to|for|until|remaining)", re.IGNORECASE)
_READINESS_PHRASES    = ("highly viable", "enterprise-ready", "ready for", "mature enough")


def extract_maturity_metrics(text: str) -> dict[str, Optional[str]]:
    text = text or ""
    metrics: dict[str, Optional[str]] = {
        "adoption_rate":        None,
        "time_to_mainstream":   None,
        "enterprise_readiness": "Moderate",
        "technical_maturity":   None,
    }
    if m := _MATURITY_ADOPTION_RE.search(text):
        metrics["adoption_rate"] = m.group(1) + "%"
    if m := _MAINSTREAM_RE.search(text):
        metrics["time_to_mainstream"] = m.group(1) + " years"
    lowered = text.lower()
    if any(p in lowered for p in _READINESS_PHRASES):
        metrics["enterprise_readiness"] = "High"
    return metrics


# ─── Forecast ────────────────────────────────────────────────────────────────

_MILESTONE_KEYWORDS = ("pilot", "deployment", "scaling", "integration", "standardization")

_INVESTMENT_PHASES = (
    ("Initial Investment", ("initial", "pilot", "budget")),
    ("Scaling Investment", ("scaling", "expansion", "growth")),
    ("ROI Realization",    ("roi", "payback", "returns")),
)


def _year_clause(text: str, year: int) -> Optional[str]:
    match = re.search(rf"Year\s*{year}[:\-\s]*([^.]*\.[^.]*\.?)", text, re.IGNORECASE)
    return match.group(1).strip() if match else None


def extract_timeline(text: str) -> dict:
    """Year 1/3/5 clauses plus milestone phases whose keyword appears anywhere."""
    text = text or ""
    lowered = text.lower()
    milestones = [
        {"phase": kw, "timeframe": f"Year {i + 1}-{i + 2}", "priority": i + 1}
        for i, kw in enumerate(_MILESTONE_KEYWORDS)
        if kw in lowered
    ]
    return {
        "year1":      _year_clause(text, 1),
        "year3":      _year_clause(text, 3),
        "year5":      _year_clause(text, 5),
        "milestones": milestones,
    }


def extract_investment_phases(text: str) -> list[str]:
    lowered = (text or "").lower()
    return [phase for phase, keywords in _INVESTMENT_PHASES if any(k in lowered for k in keywords)]


# ─── Vendor-technology assessment ────────────────────────────────────────────

_MATURITY_WORDS   = ("mature", "proven", "established", "leading")
_STRONG_WORDS     = ("strong", "excellent", "superior", "market-leading")
_COMPLEXITY_WORDS = ("complex", "challenging", "difficult", "extensive")

_POSITIVE_MODIFIERS = ("excellent", "strong", "superior", "advanced", "robust")
_NEGATIVE_MODIFIERS = ("limited", "weak", "poor", "basic", "minimal")

CAPABILITY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "security":    ("security", "secure", "protection"),
    "scalability": ("scalability", "scalable", "scale"),
    "integration": ("integration", "integrate", "interoperability"),
    "performance": ("performance", "fast", "efficient"),
    "usability":   ("usability", "user-friendly", "intuitive"),
    "support":     ("support", "service", "maintenance"),
}


def extract_vendor_assessment(text: str) -> dict[str, str]:
    lowered = (text or "").lower()
    assessment = {
        "technical_maturity":        "Moderate",
        "competitive_position":      "Moderate",
        "enterprise_suitability":    "Moderate",
        "implementation_complexity": "Moderate",
        "strategic_value":           "Moderate",
    }
    if any(w in lowered for w in _MATURITY_WORDS):
        assessment["technical_maturity"] = "High"
    if any(w in lowered for w in _STRONG_WORDS):
        assessment["competitive_position"] = "Strong"
        assessment["strategic_value"] = "High"
    if any(w in lowered for w in _COMPLEXITY_WORDS):
        assessment["implementation_complexity"] = "High"
    return assessment


def capability_score(text: str, keywords: Iterable[str]) -> int:
    """
    1-5 score for one capability: 4 when a keyword is preceded by a positive
    modifier, 2 when by a negative one, 3 when mentioned plainly or not at all.
    """
    for keyword in keywords:
        matches = re.findall(rf"(?:\w+\s+)?{re.escape(keyword)}", text or "", re.IGNORECASE)
        if not matches:
            continue
        for phrase in matches:
            lowered = phrase.lower()
            if any(m in lowered for m in _POSITIVE_MODIFIERS):
                return 4
            if any(m in lowered for m in _NEGATIVE_MODIFIERS):
                return 2
        return 3
    return 3


def extract_capability_matrix(text: str) -> dict[str, int]:
    return {name: capability_score(text, kws) for name, kws in CAPABILITY_KEYWORDS.items()}
