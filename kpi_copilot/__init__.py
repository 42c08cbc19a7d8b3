"""
KPI Copilot - Traceability Graph Query Agent

A rule-based copilot that answers free-text questions about an engineering
KPI traceability graph (goal -> KPI -> design parameter -> verification).

Project Structure:
==================

kpi_copilot/
├── data/               # Node/edge models, payload loader, sample dataset
├── engine/             # Graph Store (snapshot + structural queries)
├── analysis/           # Traversal and analytics (risk, gaps, health, ...)
│
├── agents/             # INFERENCE MODULE (LangGraph)
│   ├── state.py        # CopilotState, ParsedQuery, intents
│   ├── parser.py       # parse_query()
│   ├── context.py      # Multi-turn context manager
│   ├── graph.py        # State machine
│   └── nodes/          # Graph nodes (router, extractor, generator, ...)
│
├── reports/            # Markdown / JSON report generation
├── testing/            # Parser evaluation harness
├── api/                # FastAPI backend
└── config/             # pydantic-settings configuration
"""

__version__ = "0.1.0"
