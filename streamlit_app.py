# streamlit_app.py – Enterprise Architecture Assistant
# LLM-backed technology research: market, maturity, forecast, supplier quadrant

import sys
from pathlib import Path

# make src/ importable without installing the package
sys.path.insert(0, str(Path(__file__).parent / "src"))

import pandas as pd
import streamlit as st

from ea_assistant import charts, extraction, history
from ea_assistant.config import get_settings
from ea_assistant.errors import AssistantError
from ea_assistant.handlers import run_module
from ea_assistant.orchestrator import ResearchOptions, TechnologyResearchAgent
from ea_assistant.prompts import ANALYSIS_MODULES
from ea_assistant.quadrant import top_vendors
from ea_assistant.models import FACTOR_KEYS, QUADRANT_FACTORS, VendorScoreRecord

# Color constants
BG_CARD      = "#FFFFFF"
BLUE         = "#0078D4"
BLUE_LITE    = "#EFF6FF"
TEXT_PRIMARY = "#1B1B1B"
TEXT_MUTED   = "#616161"
BORDER       = "#E1DFDD"
GREEN        = "#107C41"
ORANGE       = "#CA5010"

STATUS_COLOUR = {"FAST": GREEN, "ACCEPTABLE": BLUE, "SLOW": ORANGE}
DRAFT_FORM_ID = "research_form"

# ─── Page config ─────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="EA Assistant – Technology Research",
    page_icon="🏛️",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(f"""
<style>
  .ea-card {{
    background:{BG_CARD};border:1px solid {BORDER};border-radius:10px;
    padding:14px 18px;margin-bottom:12px;
  }}
  .ea-card h4 {{ margin:0 0 6px;color:{TEXT_PRIMARY};font-size:0.95rem; }}
  .ea-card p  {{ margin:0;color:{TEXT_MUTED};font-size:0.85rem;line-height:1.45; }}
  .ea-pill {{
    display:inline-block;border-radius:12px;padding:2px 10px;
    font-size:0.72rem;font-weight:600;color:#fff;
  }}
</style>
""", unsafe_allow_html=True)

history.init_db()
settings = get_settings()
saved_prefs = history.load_settings({"include_market": True, "include_quadrant": True,
                                     "include_maturity": True, "include_forecast": True})


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _card(title: str, body: str) -> None:
    st.markdown(extraction.card_html(title, body), unsafe_allow_html=True)


def _timing_pill(timing: dict) -> str:
    colour = STATUS_COLOUR.get(timing.get("status"), TEXT_MUTED)
    return (f'<span class="ea-pill" style="background:{colour}">'
            f'{timing.get("status")} · {timing.get("total_ms")} ms</span>')


def _vendor_frame(vendors: list[dict]) -> pd.DataFrame:
    labels = {f["key"]: f["label"] for f in QUADRANT_FACTORS}
    rows = []
    for v in vendors:
        row = {
            "Vendor":   v["name"],
            "Quadrant": v["quadrant"],
            "Execute":  round(v["ability_to_execute"]),
            "Vision":   round(v["completeness_of_vision"]),
        }
        for key in FACTOR_KEYS:
            row[labels[key]] = v["subscores"].get(key)
        rows.append(row)
    return pd.DataFrame(rows)


def render_module_result(slug: str, data: dict) -> None:
    """Sections as cards, chart alongside, quadrant table when present."""
    col_text, col_chart = st.columns([1, 1])
    with col_text:
        if data.get("summary"):
            st.caption(data["summary"])
        for title, content in data.get("sections", {}).items():
            _card(title, (content[:600] + "…") if len(content) > 600 else (content or "Not found in response."))
    with col_chart:
        if data.get("chart_data"):
            st.plotly_chart(charts.to_figure(data["chart_data"]), use_container_width=True)

    if slug == "supplier-quad":
        if data.get("fallback"):
            st.warning("Vendor scores could not be read from the model's answer; showing a default reference set.")
        st.dataframe(_vendor_frame(data.get("vendors", [])), use_container_width=True, hide_index=True)
        leaders = top_vendors([VendorScoreRecord(**v) for v in data.get("vendors", [])], n=3)
        if leaders:
            st.markdown("**Top positioned:** " + ", ".join(f"{v.name} ({v.quadrant.value})" for v in leaders))

    with st.expander("📄 Full model response"):
        st.markdown(data.get("analysis", ""))


# ─── Sidebar ─────────────────────────────────────────────────────────────────
with st.sidebar:
    st.markdown("""
    <div style="text-align:center;padding:12px 0 12px;">
      <div style="font-size:1.8rem;line-height:1;">🏛️</div>
      <div style="font-size:1.1rem;font-weight:700;margin-top:6px;">EA Assistant</div>
      <div style="font-size:0.7rem;opacity:0.6;margin-top:2px;">Technology Research</div>
    </div>
    """, unsafe_allow_html=True)
    st.markdown("---")

    st.markdown("**Service status**")
    for _svc, _badge in settings.status_summary().items():
        st.markdown(f"{_badge} &nbsp; {_svc}")
    st.markdown("---")

    st.markdown("**Modules**")
    _inc_market   = st.checkbox("📈 Market analysis",    value=saved_prefs["include_market"])
    _inc_quadrant = st.checkbox("🎯 Supplier quadrant",  value=saved_prefs["include_quadrant"])
    _inc_maturity = st.checkbox("🔄 Maturity / hype cycle", value=saved_prefs["include_maturity"])
    _inc_forecast = st.checkbox("🔭 5-year forecast",    value=saved_prefs["include_forecast"])
    if st.button("💾 Save as default", use_container_width=True):
        history.save_settings({
            "include_market":   _inc_market,
            "include_quadrant": _inc_quadrant,
            "include_maturity": _inc_maturity,
            "include_forecast": _inc_forecast,
        })
        st.success("Defaults saved.")


tab_research, tab_module, tab_history = st.tabs(["🔬 Technology Research", "🧩 Single Module", "🕘 History"])

# ── Tab 1: full research run ─────────────────────────────────────────────────
with tab_research:
    st.markdown("### 🔬 Technology Research")
    st.caption(
        "Runs the selected analysis modules in parallel against the configured LLM "
        "vendors, then builds PDF, PNG and JSON downloads from the results."
    )

    _draft = history.load_draft(DRAFT_FORM_ID) or {}
    with st.form("research_form"):
        _tech   = st.text_input("Technology", value=_draft.get("technology", ""),
                                placeholder="e.g. Zero Trust Security")
        _vendor = st.text_input("Vendor (optional)", value=_draft.get("vendor", ""),
                                placeholder="e.g. Zscaler — adds a vendor-technology analysis")
        _submitted = st.form_submit_button("🚀 Run research", type="primary", use_container_width=True)

    if _submitted:
        history.save_draft(DRAFT_FORM_ID, {"technology": _tech, "vendor": _vendor})
        _bar = st.progress(0, text="Starting...")
        try:
            _run = TechnologyResearchAgent().run(
                _tech,
                ResearchOptions(
                    include_market   = _inc_market,
                    include_quadrant = _inc_quadrant,
                    include_maturity = _inc_maturity,
                    include_forecast = _inc_forecast,
                    vendor           = _vendor or None,
                ),
                progress=lambda msg, pct: _bar.progress(pct, text=msg),
            )
            st.session_state["research_run"] = _run
        except AssistantError as exc:
            st.error(exc.message)

    _run = st.session_state.get("research_run")
    if _run is not None:
        st.markdown(f"#### Results — {_run.technology}")
        _m1, _m2, _m3, _m4 = st.columns(4)
        _m1.metric("Modules OK", len(_run.results))
        _m2.metric("Failed", len(_run.errors))
        _m3.metric("Duration", f"{_run.duration_ms / 1000:.1f} s")
        _m4.metric("Tokens", _run.trace.total_tokens)

        for _slug, _err in _run.errors.items():
            st.error(f"**{ANALYSIS_MODULES[_slug].label}** failed: {_err}")

        if _run.results:
            _tabs = st.tabs([ANALYSIS_MODULES[s].label for s in _run.results])
            for _t, (_slug, _data) in zip(_tabs, _run.results.items()):
                with _t:
                    render_module_result(_slug, _data)

        with st.expander("🧭 Run trace"):
            st.dataframe(pd.DataFrame([
                {
                    "Module":   f"{s.icon} {s.module_name}",
                    "Status":   s.status,
                    "Start ms": s.start_ms,
                    "Duration ms": s.duration_ms,
                    "Notes":    "; ".join(s.decisions + s.warnings),
                }
                for s in _run.trace.steps
            ]), use_container_width=True, hide_index=True)

        if _run.artifacts:
            st.markdown("#### ⬇️ Downloads")
            _cols = st.columns(min(len(_run.artifacts), 3))
            for _i, _a in enumerate(_run.artifacts):
                with _cols[_i % len(_cols)]:
                    _card(_a.title, f"{_a.description} · {_a.size_kb} KB")
                    if st.download_button(
                        label=f"Download {_a.name}",
                        data=_a.data,
                        file_name=_a.name,
                        mime=_a.mime,
                        key=f"dl_{_run.run_id}_{_i}",
                        use_container_width=True,
                    ):
                        history.log_download(_run.run_id, _a)

# ── Tab 2: one module on its own ─────────────────────────────────────────────
with tab_module:
    st.markdown("### 🧩 Single Module")
    _slug = st.selectbox(
        "Module", list(ANALYSIS_MODULES),
        format_func=lambda s: f"{ANALYSIS_MODULES[s].label} ({ANALYSIS_MODULES[s].provider.value})",
    )
    _mod_tech = st.text_input("Technology", key="mod_tech")
    _mod_vendor = ""
    if ANALYSIS_MODULES[_slug].requires_vendor:
        _mod_vendor = st.text_input("Vendor", key="mod_vendor")

    if st.button("▶ Run module", type="primary"):
        with st.spinner(f"Calling {ANALYSIS_MODULES[_slug].provider.value}..."):
            try:
                st.session_state["module_payload"] = run_module(
                    ANALYSIS_MODULES[_slug], _mod_tech, _mod_vendor, settings,
                )
            except AssistantError as exc:
                st.session_state.pop("module_payload", None)
                st.error(exc.message)
                if getattr(exc, "hint", ""):
                    st.caption(exc.hint)

    _payload = st.session_state.get("module_payload")
    if _payload:
        st.markdown(_timing_pill(_payload["timing"]), unsafe_allow_html=True)
        render_module_result(_payload["module"], _payload["data"])

# ── Tab 3: history ───────────────────────────────────────────────────────────
with tab_history:
    st.markdown("### 🕘 Research History")
    _entries = history.load_history()
    if not _entries:
        st.info("No research runs yet.")
    else:
        st.dataframe(pd.DataFrame([
            {
                "When":       e.get("timestamp"),
                "Technology": e.get("technology"),
                "Modules":    ", ".join(e.get("modules", [])),
                "Failed":     ", ".join(e.get("failed", [])),
                "Artifacts":  e.get("artifacts", 0),
                "Duration s": round((e.get("duration") or 0) / 1000, 1),
            }
            for e in _entries
        ]), use_container_width=True, hide_index=True)
        if st.button("🗑️ Clear history"):
            history.clear_history()
            st.rerun()

    _downloads = history.load_download_log()
    if _downloads:
        st.markdown("#### Downloaded artifacts")
        st.dataframe(pd.DataFrame(_downloads), use_container_width=True, hide_index=True)
