"""Orchestration result reporting: JSON, YAML and Markdown."""

from suite_orchestrator.reporting.reporter import Reporter

__all__ = [
    "Reporter",
]
