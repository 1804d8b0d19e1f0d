"""
orchestrator.py — TechnologyResearchAgent
=========================================
Fires the enabled analysis modules for one technology in parallel, collects
their payloads, renders the downloadable artifacts and appends a history
entry.

    agent = TechnologyResearchAgent()
    run   = agent.run("Zero Trust Security", ResearchOptions(vendor="Zscaler"))
    run.results["market-analysis"]["sections"]
    run.artifacts                       # list[Artifact]

A module that fails (missing key, vendor error, anything else) is recorded
as a failed AgentStep and the run carries on with the rest; the run itself
only raises for an invalid technology name.
"""

from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, Optional

from ea_assistant import history
from ea_assistant.agent_trace import AgentStep, RunTrace
from ea_assistant.config import Settings, get_settings
from ea_assistant.errors import AssistantError, ValidationError
from ea_assistant.handlers import run_module
from ea_assistant.models import Artifact
from ea_assistant.prompts import ANALYSIS_MODULES
from ea_assistant.reports import build_artifacts

logger = logging.getLogger(__name__)

MIN_TECHNOLOGY_CHARS = 3

_ICONS = {
    "market-analysis":            "📈",
    "market-brief":               "📰",
    "vendor-technology-analysis": "🏢",
    "maturity-assessment":        "🔄",
    "5-year-forecast":            "🔭",
    "supplier-quad":              "🎯",
}

ProgressCallback = Callable[[str, int], None]


@dataclass
class ResearchOptions:
    include_market:     bool = True
    include_quadrant:   bool = True
    include_maturity:   bool = True
    include_forecast:   bool = True
    vendor:             Optional[str] = None   # adds vendor-technology-analysis
    generate_artifacts: bool = True
    save_history:       bool = True

    def module_slugs(self) -> list[str]:
        slugs = []
        if self.include_market:
            slugs.append("market-analysis")
        if self.include_quadrant:
            slugs.append("supplier-quad")
        if self.include_maturity:
            slugs.append("maturity-assessment")
        if self.include_forecast:
            slugs.append("5-year-forecast")
        if self.vendor and self.vendor.strip():
            slugs.append("vendor-technology-analysis")
        return slugs


@dataclass
class ResearchRun:
    run_id:      str
    technology:  str
    options:     ResearchOptions
    started_at:  str
    results:     dict[str, dict] = field(default_factory=dict)   # slug → payload["data"]
    errors:      dict[str, str] = field(default_factory=dict)    # slug → error message
    trace:       Optional[RunTrace] = None
    artifacts:   list[Artifact] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return bool(self.results)

    def to_dict(self) -> dict:
        """JSON-safe view (artifact bytes left out)."""
        return {
            "metadata": {
                "id":          self.run_id,
                "technology":  self.technology,
                "timestamp":   self.started_at,
                "agent":       "Technology Research Agent",
                "duration_ms": self.duration_ms,
                "options":     asdict(self.options),
            },
            "analysis": self.results,
            "errors":   self.errors,
            "trace":    self.trace.to_dict() if self.trace else None,
        }

    def history_entry(self) -> dict:
        return {
            "id":         self.run_id,
            "type":       "technology-research",
            "technology": self.technology,
            "timestamp":  self.started_at,
            "duration":   self.duration_ms,
            "modules":    list(self.results),
            "failed":     list(self.errors),
            "artifacts":  len(self.artifacts),
            "trace":      self.trace.to_dict() if self.trace else None,
        }


def _step_notes(slug: str, data: dict) -> tuple[list[str], list[str]]:
    """Decisions + warnings worth surfacing in the trace for one module payload."""
    decisions, warnings = [], []
    empty = [title for title, content in data.get("sections", {}).items() if not content]
    if empty:
        warnings.append(f"Sections not found in response: {', '.join(empty)}")
    if slug == "supplier-quad":
        decisions.append(f"{len(data.get('vendors', []))} vendors placed")
        if data.get("fallback"):
            warnings.append("No vendor block parsed; default vendor set shown")
    elif slug == "maturity-assessment":
        decisions.append(f"Hype cycle: {data['hype_cycle_position']['position']}")
    elif slug in ("market-analysis", "market-brief"):
        size = data.get("metrics", {}).get("market_size")
        decisions.append(f"Market size: {size or 'not stated'}")
    elif slug == "5-year-forecast":
        decisions.append(f"Investment phases: {', '.join(data.get('investment_phases', [])) or 'none'}")
    elif slug == "vendor-technology-analysis":
        decisions.append(f"Competitive position: {data['assessment']['competitive_position']}")
    return decisions, warnings


class TechnologyResearchAgent:
    """Runs the analysis modules for one technology and bundles the results."""

    def __init__(self, settings: Optional[Settings] = None, max_workers: int = 5) -> None:
        self.settings    = settings
        self.max_workers = max_workers

    def _run_one(self, slug: str, technology: str, vendor: Optional[str], t0: float) -> tuple[str, AgentStep, Optional[dict], Optional[str]]:
        module   = ANALYSIS_MODULES[slug]
        start_ms = (time.perf_counter() - t0) * 1000
        try:
            payload = run_module(module, technology, vendor, self.settings or get_settings())
        except AssistantError as exc:
            error = exc.message
        except Exception as exc:
            logger.exception("%s failed", module.label)
            error = f"{module.label} failed: {exc}"
        else:
            data = payload["data"]
            decisions, warnings = _step_notes(slug, data)
            step = AgentStep(
                module_id      = slug,
                module_name    = module.label,
                icon           = _ICONS.get(slug, "•"),
                start_ms       = round(start_ms, 1),
                duration_ms    = payload["timing"]["total_ms"],
                status         = "success",
                input_summary  = f"{technology}" + (f" / {vendor}" if module.requires_vendor else ""),
                output_summary = data.get("summary", "")[:160],
                decisions      = decisions,
                warnings       = warnings,
                detail         = {
                    "tokens":      payload["tokens"],
                    "model":       payload["model"],
                    "provider":    payload["provider"],
                    "api_call_ms": payload["timing"]["api_call_ms"],
                    "status":      payload["timing"]["status"],
                },
            )
            return slug, step, data, None

        logger.warning("Module %s failed: %s", slug, error)
        step = AgentStep(
            module_id      = slug,
            module_name    = module.label,
            icon           = _ICONS.get(slug, "•"),
            start_ms       = round(start_ms, 1),
            duration_ms    = round((time.perf_counter() - t0) * 1000 - start_ms, 1),
            status         = "failed",
            input_summary  = technology,
            output_summary = error,
            warnings       = [error],
        )
        return slug, step, None, error

    def run(
        self,
        technology: str,
        options: Optional[ResearchOptions] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ResearchRun:
        technology = (technology or "").strip()
        if len(technology) < MIN_TECHNOLOGY_CHARS:
            raise ValidationError(
                f"Technology name must be at least {MIN_TECHNOLOGY_CHARS} characters"
            )
        options = options or ResearchOptions()
        report  = progress or (lambda message, pct: None)

        run = ResearchRun(
            run_id     = str(uuid.uuid4())[:8].upper(),
            technology = technology,
            options    = options,
            started_at = datetime.now().isoformat(timespec="seconds"),
        )
        run.trace = RunTrace(run_id=run.run_id, technology=technology, timestamp=run.started_at)

        slugs = options.module_slugs()
        report("Initializing research pipeline...", 0)
        t0 = time.perf_counter()

        steps: dict[str, AgentStep] = {}
        if slugs:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(slugs))) as pool:
                futures = [
                    pool.submit(self._run_one, slug, technology, options.vendor, t0)
                    for slug in slugs
                ]
                for done, fut in enumerate(as_completed(futures), start=1):
                    slug, step, data, error = fut.result()
                    steps[slug] = step
                    if data is not None:
                        run.results[slug] = data
                    else:
                        run.errors[slug] = error
                    report(f"{ANALYSIS_MODULES[slug].label} complete", int(done / len(slugs) * 90))

        # Keep results and trace in request order, not completion order.
        run.results = {s: run.results[s] for s in slugs if s in run.results}
        for slug in slugs:
            run.trace.append(steps[slug])

        run.duration_ms    = int((time.perf_counter() - t0) * 1000)
        run.trace.total_ms = run.duration_ms

        if options.generate_artifacts:
            run.artifacts = build_artifacts(run)
            report("Artifacts generated", 100)

        if options.save_history:
            history.save_history_entry(run.history_entry())

        logger.info(
            "Research run %s for %r: %d ok, %d failed, %d ms",
            run.run_id, technology, len(run.results), len(run.errors), run.duration_ms,
        )
        return run
