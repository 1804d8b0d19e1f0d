"""
Supplier quadrant parsing
=========================
Turns the free-text answer of the supplier-quad module into
VendorScoreRecord objects.

    split_vendor_blocks(text)      → one chunk per vendor heading
    parse_vendor_block(block)      → VendorScoreRecord | None
    extract_vendor_scores(text)    → (records, used_fallback)

A block is accepted only when both axis scores and at least
MIN_PARSED_SUBSCORES of the twelve factor scores parse.  When nothing is
accepted the caller gets a canned vendor list with fixed scores instead, and
the payload is flagged so the UI can say so.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Optional

from ea_assistant.models import (
    MIN_PARSED_SUBSCORES,
    QUADRANT_FACTORS,
    Quadrant,
    VendorScoreRecord,
)

logger = logging.getLogger(__name__)

MAX_VENDORS = 12
AXIS_THRESHOLD = 70

_NUMBER = r"(\d{1,3}(?:\.\d+)?)"
# An echoed "(25%)" weight after a label is skipped, never read as the score.
_GAP    = r"(?:\s*\([^)\n]*\))?[^\n\d(]{0,20}?"

_BOLD_HEADING_RE = re.compile(r"^[ \t]*\*\*([^*\n]{2,60})\*\*[ \t]*:?[ \t]*$", re.MULTILINE)
_NUMBERED_RE     = re.compile(r"^[ \t]*\d+\.\s+([A-Za-z][^\n:]{1,48})", re.MULTILINE)
_EXECUTE_RE      = re.compile(rf"Ability\s+to\s+Execute{_GAP}{_NUMBER}", re.IGNORECASE)
_VISION_RE       = re.compile(rf"Completeness\s+of\s+Vision{_GAP}{_NUMBER}", re.IGNORECASE)
_QUADRANT_RE     = re.compile(
    r"Quadrant\s*[:\-]\s*\**\s*(Leaders?|Challengers?|Visionar(?:y|ies)|Niche\s+Players?)",
    re.IGNORECASE,
)
_STRENGTHS_RE    = re.compile(r"Strengths?\s*:\s*(.+)", re.IGNORECASE)


def _label_pattern(label: str) -> re.Pattern:
    words = re.escape(label).replace(r"\&", "&").replace("&", "(?:&|and)")
    words = words.replace(r"\ ", r"\s+").replace(r"\-", r"[\s\-]?")
    return re.compile(rf"{words}{_GAP}{_NUMBER}", re.IGNORECASE)


_FACTOR_PATTERNS = [(f["key"], _label_pattern(f["label"])) for f in QUADRANT_FACTORS]


# ─── Splitting ───────────────────────────────────────────────────────────────

def split_vendor_blocks(text: str) -> list[str]:
    """
    Split on bold ``**Name**`` heading lines, else on numbered ``1. Name``
    lines.  Text before the first heading is dropped; no heading → [].
    """
    text = text or ""
    starts = [m.start() for m in _BOLD_HEADING_RE.finditer(text)]
    if not starts:
        starts = [m.start() for m in _NUMBERED_RE.finditer(text)]
    if not starts:
        return []
    bounds = starts + [len(text)]
    return [text[bounds[i]:bounds[i + 1]].strip() for i in range(len(starts))]


def _block_name(block: str) -> str:
    first = block.splitlines()[0] if block else ""
    name = re.sub(r"^\s*(?:\d+\.\s+)?", "", first)
    name = name.replace("*", "").strip().rstrip(":").strip()
    return name


# ─── Scores ──────────────────────────────────────────────────────────────────

def _score(match: Optional[re.Match]) -> Optional[float]:
    if match is None:
        return None
    value = float(match.group(1))
    return value if 0 <= value <= 100 else None


def derive_quadrant(execute: float, vision: float) -> Quadrant:
    """Placement from the axis scores when the model didn't state one."""
    if execute > AXIS_THRESHOLD and vision > AXIS_THRESHOLD:
        return Quadrant.LEADERS
    if execute > AXIS_THRESHOLD:
        return Quadrant.CHALLENGERS
    if vision > AXIS_THRESHOLD:
        return Quadrant.VISIONARIES
    return Quadrant.NICHE_PLAYERS


def _stated_quadrant(block: str) -> Optional[Quadrant]:
    match = _QUADRANT_RE.search(block)
    if match is None:
        return None
    word = match.group(1).lower()
    if word.startswith("leader"):
        return Quadrant.LEADERS
    if word.startswith("challenger"):
        return Quadrant.CHALLENGERS
    if word.startswith("visionar"):
        return Quadrant.VISIONARIES
    return Quadrant.NICHE_PLAYERS


def parse_subscores(block: str) -> dict[str, float]:
    scores = {}
    for key, pattern in _FACTOR_PATTERNS:
        value = _score(pattern.search(block))
        if value is not None:
            scores[key] = value
    return scores


def parse_vendor_block(block: str) -> Optional[VendorScoreRecord]:
    """
    One vendor block → record, or None when the block is unusable
    (no name, an axis score missing, or fewer than MIN_PARSED_SUBSCORES factors).
    """
    name = _block_name(block)
    if not (2 < len(name) < 50):
        return None

    execute = _score(_EXECUTE_RE.search(block))
    vision  = _score(_VISION_RE.search(block))
    if execute is None or vision is None:
        logger.debug("Dropping %r: axis score missing", name)
        return None

    subscores = parse_subscores(block)
    if len(subscores) < MIN_PARSED_SUBSCORES:
        logger.debug("Dropping %r: only %d sub-scores parsed", name, len(subscores))
        return None

    strengths = _STRENGTHS_RE.search(block)
    summary = strengths.group(1).strip() if strengths else block[:200].strip() + "..."

    return VendorScoreRecord(
        name=name,
        quadrant=_stated_quadrant(block) or derive_quadrant(execute, vision),
        ability_to_execute=execute,
        completeness_of_vision=vision,
        subscores=subscores,
        summary=summary,
    )


# ─── Fallback set ────────────────────────────────────────────────────────────

_FALLBACK_SETS: dict[str, list[tuple[str, Quadrant]]] = {
    "Zero Trust": [
        ("Zscaler",            Quadrant.LEADERS),
        ("Palo Alto Networks", Quadrant.LEADERS),
        ("CrowdStrike",        Quadrant.LEADERS),
        ("Microsoft",          Quadrant.CHALLENGERS),
        ("Cisco",              Quadrant.CHALLENGERS),
        ("Okta",               Quadrant.VISIONARIES),
        ("SentinelOne",        Quadrant.VISIONARIES),
        ("Fortinet",           Quadrant.NICHE_PLAYERS),
    ],
    "AIOps": [
        ("Splunk",      Quadrant.LEADERS),
        ("Datadog",     Quadrant.LEADERS),
        ("New Relic",   Quadrant.CHALLENGERS),
        ("Dynatrace",   Quadrant.LEADERS),
        ("AppDynamics", Quadrant.CHALLENGERS),
        ("Moogsoft",    Quadrant.VISIONARIES),
        ("BigPanda",    Quadrant.NICHE_PLAYERS),
    ],
    "Technology": [
        ("Vendor A", Quadrant.LEADERS),
        ("Vendor B", Quadrant.CHALLENGERS),
        ("Vendor C", Quadrant.VISIONARIES),
        ("Vendor D", Quadrant.NICHE_PLAYERS),
    ],
}

_BASE_SCORES = {
    Quadrant.LEADERS:       (80, 80),
    Quadrant.CHALLENGERS:   (75, 60),
    Quadrant.VISIONARIES:   (60, 75),
    Quadrant.NICHE_PLAYERS: (55, 55),
}

# Per-factor offsets from the axis base score.
_FACTOR_OFFSETS = {
    "product_capability":   0,
    "reliability_ops":      -5,
    "customer_experience":  5,
    "market_traction":      0,
    "financial_viability":  10,
    "ecosystem_partners":   -5,
    "innovation_roadmap":   0,
    "market_understanding": 5,
    "platform_strategy":    0,
    "go_to_market":         -5,
    "standards_compliance": -10,
    "geographic_strategy":  0,
}


def _fallback_record(name: str, quadrant: Quadrant) -> VendorScoreRecord:
    execute, vision = _BASE_SCORES[quadrant]
    subscores = {}
    for f in QUADRANT_FACTORS:
        base = execute if f["axis"] == "execute" else vision
        subscores[f["key"]] = float(max(40, min(90, base + _FACTOR_OFFSETS[f["key"]])))
    return VendorScoreRecord(
        name=name,
        quadrant=quadrant,
        ability_to_execute=float(execute),
        completeness_of_vision=float(vision),
        subscores=subscores,
        summary=f"{name} analysis based on market positioning and capabilities.",
    )


def fallback_vendors(text: str) -> list[VendorScoreRecord]:
    """Canned vendor set chosen by a keyword in the text, with fixed base scores."""
    text = text or ""
    key = "Zero Trust" if "Zero Trust" in text else "AIOps" if "AIOps" in text else "Technology"
    return [_fallback_record(name, q) for name, q in _FALLBACK_SETS[key]]


# ─── Public entry points ─────────────────────────────────────────────────────

def extract_vendor_scores(text: str) -> tuple[list[VendorScoreRecord], bool]:
    """
    Accepted vendor records (at most MAX_VENDORS) and whether the canned
    fallback set had to be used instead.
    """
    records = []
    for block in split_vendor_blocks(text):
        record = parse_vendor_block(block)
        if record is not None:
            records.append(record)
    if not records:
        logger.info("No vendor block parsed; using fallback vendor set")
        return fallback_vendors(text), True
    return records[:MAX_VENDORS], False


def quadrant_distribution(vendors: list[VendorScoreRecord]) -> dict[str, int]:
    counts = Counter(v.quadrant.value for v in vendors)
    return {q.value: counts.get(q.value, 0) for q in Quadrant}


def top_vendors(vendors: list[VendorScoreRecord], n: int = 5) -> list[VendorScoreRecord]:
    """Highest combined execute + vision first."""
    return sorted(
        vendors,
        key=lambda v: v.ability_to_execute + v.completeness_of_vision,
        reverse=True,
    )[:n]


def quadrant_metrics(text: str, vendors: list[VendorScoreRecord]) -> dict:
    return {
        "total_vendors":        len(vendors),
        "evaluation_framework": "12-factor weighted scoring",
        "methodology":          "Magic Quadrant-style positioning",
    }


def format_quadrant_summary(text: str, vendors: list[VendorScoreRecord]) -> dict:
    """Web-summary card: overview, per-quadrant counts, top five, and name lists."""
    def names(q: Quadrant) -> str:
        return ", ".join(v.name for v in vendors if v.quadrant == q) or "None identified"

    return {
        "title":                 "Supplier Quadrant Analysis",
        "overview":              (text or "")[:300] + "...",
        "quadrant_distribution": quadrant_distribution(vendors),
        "top_vendors": [
            {"name": v.name, "quadrant": v.quadrant.value} for v in top_vendors(vendors)
        ],
        "sections": [
            {"title": "Market Leaders",     "content": names(Quadrant.LEADERS)},
            {"title": "Strong Challengers", "content": names(Quadrant.CHALLENGERS)},
            {"title": "Visionary Players",  "content": names(Quadrant.VISIONARIES)},
            {"title": "Niche Players",      "content": names(Quadrant.NICHE_PLAYERS)},
        ],
    }
