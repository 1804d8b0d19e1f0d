"""
Data models for the Enterprise Architecture Assistant.

Everything here is request scoped: created per submission, handed down the
Prompt Builder → Vendor Client → Response Extractor pipeline, and discarded
once the JSON payload (or downloadable artifact) has been produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ─── Enumerations ────────────────────────────────────────────────────────────

class AnalysisType(str, Enum):
    """Analysis category; each one is served by its own module."""
    MARKET       = "market"
    MARKET_BRIEF = "market_brief"
    VENDOR       = "vendor"
    MATURITY     = "maturity"
    FORECAST     = "forecast"
    QUADRANT     = "quadrant"


class LLMProvider(str, Enum):
    """Which vendor's completion endpoint a module calls."""
    CLAUDE = "claude"
    OPENAI = "openai"
    GEMINI = "gemini"


class Quadrant(str, Enum):
    """Magic-Quadrant-style placement of an analysed technology supplier."""
    LEADERS       = "Leaders"
    CHALLENGERS   = "Challengers"
    VISIONARIES   = "Visionaries"
    NICHE_PLAYERS = "Niche Players"


class ArtifactType(str, Enum):
    PDF   = "pdf"
    IMAGE = "image"
    JSON  = "json"


# ─── Quadrant factor registry ───────────────────────────────────────────────

# Twelve weighted sub-factors, six per axis.  Weights are percentages of the
# axis score and sum to 100 on each side.
QUADRANT_FACTORS: list[dict] = [
    {"key": "product_capability",   "label": "Product Capability",       "axis": "execute", "weight": 25},
    {"key": "reliability_ops",      "label": "Reliability & Operations", "axis": "execute", "weight": 15},
    {"key": "customer_experience",  "label": "Customer Experience",      "axis": "execute", "weight": 15},
    {"key": "market_traction",      "label": "Market Traction",          "axis": "execute", "weight": 20},
    {"key": "financial_viability",  "label": "Financial Viability",      "axis": "execute", "weight": 10},
    {"key": "ecosystem_partners",   "label": "Ecosystem Partners",       "axis": "execute", "weight": 15},
    {"key": "innovation_roadmap",   "label": "Innovation Roadmap",       "axis": "vision",  "weight": 25},
    {"key": "market_understanding", "label": "Market Understanding",     "axis": "vision",  "weight": 20},
    {"key": "platform_strategy",    "label": "Platform Strategy",        "axis": "vision",  "weight": 20},
    {"key": "go_to_market",         "label": "Go-to-Market",             "axis": "vision",  "weight": 15},
    {"key": "standards_compliance", "label": "Standards Compliance",     "axis": "vision",  "weight": 10},
    {"key": "geographic_strategy",  "label": "Geographic Strategy",      "axis": "vision",  "weight": 10},
]

FACTOR_KEYS = [f["key"] for f in QUADRANT_FACTORS]

# A vendor block is kept only when at least this many sub-scores parse.
MIN_PARSED_SUBSCORES = 8


# ─── Request / response values ───────────────────────────────────────────────

@dataclass
class AnalysisRequest:
    """One user submission: which technology, which analysis, optional supplier."""
    technology:    str
    analysis_type: AnalysisType
    vendor:        Optional[str] = None


@dataclass
class TokenUsage:
    input_tokens:  int = 0
    output_tokens: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"input_tokens": self.input_tokens, "output_tokens": self.output_tokens}


@dataclass
class VendorCompletionResult:
    """Raw text returned by one LLM vendor call, plus usage and timing."""
    raw_text:    str
    usage:       TokenUsage = field(default_factory=TokenUsage)
    model:       str = ""
    provider:    str = ""
    api_call_ms: int = 0


@dataclass
class ExtractedSection:
    """A ``**TITLE**`` section carved out of the completion text (may be empty)."""
    title:   str
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"title": self.title, "content": self.content}


class VendorScoreRecord(BaseModel):
    """
    One supplier parsed out of a quadrant analysis.
    Only built when both axis scores and ≥ MIN_PARSED_SUBSCORES sub-scores parsed.
    """
    name:                   str
    quadrant:               Quadrant
    ability_to_execute:     float = Field(ge=0.0, le=100.0)
    completeness_of_vision: float = Field(ge=0.0, le=100.0)
    subscores:              dict[str, float] = Field(
        default_factory=dict,
        description="factor key → 0-100 score; only the factors that parsed",
    )
    summary:                str = ""

    def weighted_axis(self, axis: str) -> Optional[float]:
        """Weighted average of the parsed sub-scores on one axis (None if none parsed)."""
        total = weight = 0.0
        for f in QUADRANT_FACTORS:
            if f["axis"] == axis and f["key"] in self.subscores:
                total  += self.subscores[f["key"]] * f["weight"]
                weight += f["weight"]
        return round(total / weight, 1) if weight else None


@dataclass
class Artifact:
    """A downloadable file produced from analysis results."""
    type:        ArtifactType
    name:        str            # file name, e.g. "Zero_Trust_Market_Analysis.pdf"
    title:       str
    description: str
    data:        bytes
    mime:        str

    @property
    def size_kb(self) -> float:
        return round(len(self.data) / 1024, 1)
