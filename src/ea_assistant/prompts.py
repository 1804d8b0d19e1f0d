"""
Prompt Builder + analysis module table
======================================
Every analysis module is the same pipeline with different parameters, so the
per-module differences live in one table (ANALYSIS_MODULES) instead of one
handler file per module:

    slug                          provider  max_tokens  sections
    market-analysis               openai    400         5
    market-brief                  claude    350         3
    vendor-technology-analysis    openai    450         6   (needs vendor)
    maturity-assessment           openai    400         4
    5-year-forecast               openai    450         6
    supplier-quad                 openai    1000        —   (vendor blocks)

Prompts are deterministic: same technology (and vendor) → same string.  Each
carries a fixed ``**SECTION**`` skeleton, which the Response Extractor later
searches for, and a word ceiling that keeps the completion inside the
hosting platform's ~10 s execution limit.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from typing import Optional

from ea_assistant.errors import ValidationError
from ea_assistant.models import AnalysisRequest, AnalysisType, LLMProvider, QUADRANT_FACTORS


@dataclass(frozen=True)
class AnalysisModule:
    """Configuration row for one analysis module."""
    slug:          str
    analysis_type: AnalysisType
    label:         str
    provider:      LLMProvider
    template:      str
    sections:      tuple[tuple[str, str], ...]   # (display title, **HEADING** in the prompt)
    max_tokens:    int
    temperature:   float = 0.3
    model:         Optional[str] = None          # None → the provider's default from Settings
    requires_vendor: bool = False

    @property
    def headings(self) -> list[str]:
        return [h for _, h in self.sections]


# ─── Templates ───────────────────────────────────────────────────────────────

_MARKET_TEMPLATE = textwrap.dedent("""\
    Analyze the current market landscape for {technology}.

    Provide comprehensive market intelligence covering:

    **MARKET SIZE AND GROWTH**
    - Current market valuation and projected 3-year growth rates
    - Key growth drivers and market expansion factors
    - Regional market distribution and growth patterns

    **INDUSTRY ADOPTION**
    - Current adoption rates across industry sectors
    - Leading industries driving implementation
    - Enterprise vs. SMB adoption patterns

    **MARKET DYNAMICS**
    - Competitive market structure and concentration
    - Pricing trends and cost evolution
    - Investment and funding landscape

    **MARKET DRIVERS**
    - Primary business drivers accelerating adoption
    - Technology enablers supporting growth
    - Regulatory and compliance factors

    **MARKET CHALLENGES**
    - Key barriers limiting market expansion
    - Technical and operational challenges
    - Market maturity and saturation risks

    Keep response under 300 words. Focus on quantitative market insights and actionable business intelligence for enterprise decision-making.""")

_MARKET_BRIEF_TEMPLATE = textwrap.dedent("""\
    Analyze the current market landscape for {technology}. Provide:

    **MARKET SIZE & GROWTH**
    - Current market valuation and projected growth rate
    - Key geographic markets and adoption levels

    **ADOPTION DRIVERS**
    - Top 3 business drivers accelerating adoption
    - Industry sectors leading implementation

    **MARKET TRENDS**
    - Current trends shaping the market
    - Future outlook (next 2-3 years)

    Keep response under 250 words. Focus on quantifiable data and business insights.""")

_VENDOR_TEMPLATE = textwrap.dedent("""\
    Analyze {vendor}'s {technology} solution for enterprise architecture evaluation.

    Provide comprehensive assessment covering:

    **VENDOR IMPLEMENTATION APPROACH**
    - {vendor}'s specific architecture and technical approach
    - Unique features and capabilities that differentiate from competitors
    - Integration with {vendor}'s broader technology ecosystem
    - Technical maturity and development timeline

    **COMPETITIVE POSITIONING**
    - How {vendor}'s {technology} compares to market alternatives
    - Competitive advantages and unique value propositions
    - Market share and customer adoption metrics
    - Strengths and limitations vs. competitors

    **ENTERPRISE SUITABILITY**
    - Target use cases and ideal deployment scenarios
    - Scalability and performance characteristics
    - Security and compliance capabilities
    - Integration complexity with existing infrastructure

    **COMMERCIAL CONSIDERATIONS**
    - Licensing models and pricing structure
    - Total cost of ownership factors
    - Support and professional services offerings
    - Contract terms and vendor relationship considerations

    **IMPLEMENTATION GUIDANCE**
    - Deployment complexity and timeline expectations
    - Required skills and training considerations
    - Success factors and common implementation challenges
    - Best practices for enterprise adoption

    **STRATEGIC ASSESSMENT**
    - Long-term viability and vendor roadmap
    - Technology evolution and future development plans
    - Risk factors and mitigation strategies
    - Strategic fit for enterprise architecture

    Keep response under 350 words. Focus on actionable insights for vendor selection and implementation planning.""")

_MATURITY_TEMPLATE = textwrap.dedent("""\
    Assess the technology maturity of {technology}.

    Provide:

    **HYPE CYCLE POSITIONING**
    - Current position on the hype cycle curve (Innovation Trigger, Peak of Expectations, Trough of Disillusionment, Slope of Enlightenment, or Plateau of Productivity)
    - Rationale for current positioning

    **MATURITY INDICATORS**
    - Market adoption percentage and enterprise readiness
    - Time to mainstream adoption (years remaining)
    - Technical maturity vs. market hype assessment

    **IMPLEMENTATION READINESS**
    - Current viability for enterprise deployment
    - Key barriers preventing mainstream adoption
    - Success factors for early implementation

    **ADOPTION TIMELINE**
    - Expected progression through remaining hype cycle phases
    - Projected timeline to reach productivity plateau

    Keep response under 300 words. Focus on specific maturity indicators and actionable timing insights for enterprise planning.""")

_FORECAST_TEMPLATE = textwrap.dedent("""\
    Develop a comprehensive 5-year strategic forecast for {technology} technology.

    Provide:

    **TECHNOLOGY EVOLUTION**
    - Expected capability advances in Years 1, 3, and 5
    - Emerging technologies that will integrate with {technology}
    - Technical maturity progression and standardization timeline

    **MARKET PROJECTIONS**
    - Market size growth trajectory (current → 5 years)
    - New market segments and use cases emerging
    - Geographic expansion and regional adoption patterns

    **VENDOR LANDSCAPE EVOLUTION**
    - Expected consolidation, acquisitions, partnerships
    - New market entrants and disruptive companies
    - Shifts in competitive positioning over 5 years

    **IMPLEMENTATION ROADMAP**
    - Optimal timing for pilot, deployment, and scaling phases
    - Critical decision windows for enterprise adoption
    - Integration milestones with existing infrastructure

    **INVESTMENT STRATEGY**
    - When to budget for initial investment vs. scaling
    - ROI timeline and payback period expectations
    - Resource allocation recommendations across the 5-year horizon

    **STRATEGIC RISKS & OPPORTUNITIES**
    - Future challenges and mitigation strategies
    - Competitive advantage windows
    - Technology obsolescence risks

    Keep response under 350 words. Focus on actionable strategic planning insights with specific timeframes for enterprise decision-making.""")


def _factor_lines(axis: str) -> str:
    return "\n".join(
        f"- {f['label']} ({f['weight']}%)" for f in QUADRANT_FACTORS if f["axis"] == axis
    )


# The per-vendor output block is spelled out so the quadrant parser has a
# stable "Label: score" shape to look for.
_QUADRANT_TEMPLATE = (
    textwrap.dedent("""\
        Conduct a Magic Quadrant-style vendor positioning analysis for {technology}.

        Evaluate 8-12 major vendors using transparent weighted scoring (0-100 per factor).

        ABILITY TO EXECUTE factors:
    """)
    + _factor_lines("execute")
    + "\n\nCOMPLETENESS OF VISION factors:\n"
    + _factor_lines("vision")
    + textwrap.dedent("""

        QUADRANT LOGIC:
        - Leaders: >70 on both axes
        - Challengers: >70 execute, 50-70 vision
        - Visionaries: 50-70 execute, >70 vision
        - Niche Players: <70 on both axes

        OUTPUT FORMAT — one block per vendor, exactly like this:

        **Vendor Name**
        Quadrant: Leaders
        Ability to Execute: 82
        Completeness of Vision: 78
    """)
    + "\n".join(f"{f['label']}: <score>" for f in QUADRANT_FACTORS)
    + textwrap.dedent("""
        Strengths: one sentence.

        Keep response comprehensive but under 400 words total.""")
)


# ─── Module table ────────────────────────────────────────────────────────────

ANALYSIS_MODULES: dict[str, AnalysisModule] = {
    "market-analysis": AnalysisModule(
        slug="market-analysis",
        analysis_type=AnalysisType.MARKET,
        label="Market analysis",
        provider=LLMProvider.OPENAI,
        template=_MARKET_TEMPLATE,
        sections=(
            ("Market Overview",   "MARKET SIZE AND GROWTH"),
            ("Industry Adoption", "INDUSTRY ADOPTION"),
            ("Market Dynamics",   "MARKET DYNAMICS"),
            ("Market Drivers",    "MARKET DRIVERS"),
            ("Challenges",        "MARKET CHALLENGES"),
        ),
        max_tokens=400,
    ),
    "market-brief": AnalysisModule(
        slug="market-brief",
        analysis_type=AnalysisType.MARKET_BRIEF,
        label="Market brief",
        provider=LLMProvider.CLAUDE,
        template=_MARKET_BRIEF_TEMPLATE,
        sections=(
            ("Market Size & Growth", "MARKET SIZE & GROWTH"),
            ("Adoption Drivers",     "ADOPTION DRIVERS"),
            ("Market Trends",        "MARKET TRENDS"),
        ),
        max_tokens=350,
    ),
    "vendor-technology-analysis": AnalysisModule(
        slug="vendor-technology-analysis",
        analysis_type=AnalysisType.VENDOR,
        label="Vendor technology analysis",
        provider=LLMProvider.OPENAI,
        template=_VENDOR_TEMPLATE,
        sections=(
            ("Implementation Approach",   "VENDOR IMPLEMENTATION APPROACH"),
            ("Competitive Position",      "COMPETITIVE POSITIONING"),
            ("Enterprise Suitability",    "ENTERPRISE SUITABILITY"),
            ("Commercial Considerations", "COMMERCIAL CONSIDERATIONS"),
            ("Implementation Guidance",   "IMPLEMENTATION GUIDANCE"),
            ("Strategic Assessment",      "STRATEGIC ASSESSMENT"),
        ),
        max_tokens=450,
        requires_vendor=True,
    ),
    "maturity-assessment": AnalysisModule(
        slug="maturity-assessment",
        analysis_type=AnalysisType.MATURITY,
        label="Maturity assessment",
        provider=LLMProvider.OPENAI,
        template=_MATURITY_TEMPLATE,
        sections=(
            ("Hype Cycle Position",      "HYPE CYCLE POSITIONING"),
            ("Maturity Indicators",      "MATURITY INDICATORS"),
            ("Implementation Readiness", "IMPLEMENTATION READINESS"),
            ("Adoption Timeline",        "ADOPTION TIMELINE"),
        ),
        max_tokens=400,
    ),
    "5-year-forecast": AnalysisModule(
        slug="5-year-forecast",
        analysis_type=AnalysisType.FORECAST,
        label="5-year forecast",
        provider=LLMProvider.OPENAI,
        template=_FORECAST_TEMPLATE,
        sections=(
            ("Technology Evolution",    "TECHNOLOGY EVOLUTION"),
            ("Market Projections",      "MARKET PROJECTIONS"),
            ("Vendor Landscape",        "VENDOR LANDSCAPE EVOLUTION"),
            ("Implementation Roadmap",  "IMPLEMENTATION ROADMAP"),
            ("Investment Strategy",     "INVESTMENT STRATEGY"),
            ("Risks & Opportunities",   "STRATEGIC RISKS & OPPORTUNITIES"),
        ),
        max_tokens=450,
    ),
    "supplier-quad": AnalysisModule(
        slug="supplier-quad",
        analysis_type=AnalysisType.QUADRANT,
        label="Supplier quadrant",
        provider=LLMProvider.OPENAI,
        template=_QUADRANT_TEMPLATE,
        sections=(),
        max_tokens=1000,
    ),
}

MODULES_BY_TYPE: dict[AnalysisType, AnalysisModule] = {
    m.analysis_type: m for m in ANALYSIS_MODULES.values()
}


def get_module(slug: str) -> AnalysisModule:
    """Return the module row for ``slug``; KeyError if there is no such module."""
    return ANALYSIS_MODULES[slug]


def _text_field(value, message: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(message)
    return value.strip()


def make_request(
    analysis_type: AnalysisType | str,
    technology: Optional[str],
    vendor: Optional[str] = None,
) -> AnalysisRequest:
    """
    Validate one submission into an AnalysisRequest.

    Raises:
        ValidationError – technology missing, blank or not a string; vendor not
                          a string, or missing for the vendor-technology module.
    """
    analysis_type = AnalysisType(analysis_type)
    technology = _text_field(technology, "Technology must be a string")
    if not technology:
        raise ValidationError("Technology parameter required")
    vendor = _text_field(vendor, "Vendor must be a string")
    if MODULES_BY_TYPE[analysis_type].requires_vendor and not vendor:
        raise ValidationError("Both vendor and technology parameters required")
    return AnalysisRequest(technology, analysis_type, vendor or None)


def render_prompt(request: AnalysisRequest) -> str:
    module = MODULES_BY_TYPE[request.analysis_type]
    # str.format ignores unused keyword arguments
    return module.template.format(technology=request.technology, vendor=request.vendor or "")


def build_prompt(
    analysis_type: AnalysisType | str,
    technology: Optional[str],
    vendor: Optional[str] = None,
) -> str:
    """Render the prompt for one analysis category; see make_request for validation."""
    return render_prompt(make_request(analysis_type, technology, vendor))


# ─── Search-enhanced research prompts (ea-api "research" endpoint) ───────────

RESEARCH_PHASES = ("market", "vendor", "hype", "strategic")

_RESEARCH_INTROS = {
    "market": (
        "You are a senior technology market analyst. Using the current market "
        "intelligence below, provide a comprehensive market analysis for {technology}.",
        "CURRENT MARKET INTELLIGENCE",
        [
            "**Market Size and Growth** - Current valuation and projected growth rates",
            "**Key Market Drivers** - What's driving adoption and investment",
            "**Industry Adoption** - Which sectors are leading implementation",
            "**Geographic Trends** - Regional adoption patterns and growth",
            "**Investment Landscape** - Funding trends and M&A activity",
        ],
        "Focus on data-driven insights from the sources above. Cite specific "
        "market figures and projections when available.",
    ),
    "vendor": (
        "You are an enterprise vendor analyst. Using the current vendor "
        "intelligence below, analyze the {technology} vendor ecosystem.",
        "CURRENT VENDOR INTELLIGENCE",
        [
            "**Market Leaders** - Top vendors by market share and revenue",
            "**Competitive Positioning** - How vendors differentiate themselves",
            "**Emerging Players** - New entrants and disruptive companies",
            "**Partnership Ecosystem** - Key alliances and integrations",
            "**Selection Framework** - Criteria for vendor evaluation",
        ],
        "Use specific vendor names, market share data, and competitive "
        "insights from the sources above.",
    ),
    "hype": (
        "You are a technology maturity analyst. Using the current market "
        "positioning data below, assess {technology}'s position on the hype cycle.",
        "CURRENT POSITIONING DATA",
        [
            "**Current Hype Cycle Position** - Where the technology sits today",
            "**Market Maturity Indicators** - Evidence of maturation or hype",
            "**Adoption Timeline** - Expected path to mainstream adoption",
            "**Implementation Readiness** - Current viability for enterprise deployment",
            "**Future Outlook** - Next 2-5 year trajectory",
        ],
        "Reference specific analyst reports and market indicators from the sources above.",
    ),
    "strategic": (
        "You are an enterprise technology strategist. Using the current "
        "implementation intelligence below, develop strategic recommendations "
        "for {technology} adoption.",
        "CURRENT IMPLEMENTATION INTELLIGENCE",
        [
            "**Strategic Value Proposition** - Business case and ROI potential",
            "**Implementation Approaches** - Proven deployment strategies",
            "**Success Factors** - Critical elements for successful adoption",
            "**Risk Assessment** - Challenges and mitigation strategies",
            "**Timeline and Roadmap** - Recommended implementation phases",
        ],
        "Reference specific case studies, ROI data, and best practices from the sources above.",
    ),
}


def build_research_prompt(technology: str, phase: str, search_results: list[dict]) -> str:
    """Prompt for one research phase, with the filtered search hits inlined as context."""
    intro, context_label, items, outro = _RESEARCH_INTROS.get(phase, _RESEARCH_INTROS["market"])
    context = "\n".join(
        f"**{r.get('title', '')}**\n{r.get('snippet', '')}\nSource: {r.get('url', '')}\n"
        for r in search_results
    )
    numbered = "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))
    return (
        intro.format(technology=technology)
        + f"\n\n{context_label}:\n{context}\n\n"
        + "Based on this current data, provide analysis covering:\n"
        + numbered
        + "\n\n"
        + outro
    )


# ─── Speed-test prompts (one per provider) ──────────────────────────────────

SPEED_TEST_PROMPTS: dict[str, str] = {
    "claude": textwrap.dedent("""\
        Analyze Zero Trust Security for enterprise architecture. Provide:

        1. Key business benefits (2-3 points)
        2. Main implementation challenges (2-3 points)
        3. One strategic recommendation for adoption

        Keep response under 200 words."""),
    "openai": textwrap.dedent("""\
        Analyze Zero Trust Security for enterprise architecture. Provide:

        **BUSINESS BENEFITS**
        **IMPLEMENTATION CHALLENGES**
        **STRATEGIC RECOMMENDATION**

        Keep response under 250 words."""),
    "gemini": (
        "Provide a brief 2-paragraph analysis of Zero Trust Security for "
        "enterprise architecture. Include market adoption and key benefits."
    ),
}

SPEED_TEST_MAX_TOKENS = {"claude": 300, "openai": 350, "gemini": 1000}
