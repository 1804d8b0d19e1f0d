"""
ea_assistant — Enterprise Architecture Assistant
================================================
LLM-backed technology research: each analysis module builds a prompt, sends
it to one vendor (Claude, OpenAI or Gemini), carves the reply into sections
and scores with regex heuristics, and returns a JSON payload that the front
end turns into charts, PDFs and JSON downloads.

Modules
-------
  config        Settings from env / .env
  errors        error taxonomy → HTTP status
  models        enums, dataclasses, VendorScoreRecord, Artifact
  prompts       Prompt Builder + ANALYSIS_MODULES table
  llm_client    Vendor Client (Claude / OpenAI / Gemini)
  web_search    Bing / SerpApi / Brave search for the research endpoint
  extraction    Response Extractor
  quadrant      supplier quadrant parsing
  chart_data    chart payloads
  charts        plotly figures + PNG rendering
  reports       PDF / JSON artifacts
  handlers      framework-free HTTP handlers
  api           FastAPI app
  agent_trace   per-run module trace
  orchestrator  TechnologyResearchAgent
  history       SQLite persistence
  cli           terminal entry point
"""

__version__ = "0.1.0"
