"""
Evaluation utilities for the query parser.

Usage:
    # Built-in labelled cases
    python -m kpi_copilot evaluate

    # Custom JSONL cases
    python -m kpi_copilot evaluate --test-file cases.jsonl --output reports/parser.json
"""

from kpi_copilot.testing.intent_tester import IntentTester, IntentTestReport, BUILTIN_CASES

__all__ = [
    "IntentTester",
    "IntentTestReport",
    "BUILTIN_CASES",
]
