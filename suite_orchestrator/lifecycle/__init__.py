"""Test lifecycle: quarantine of chronically failing tests."""

from suite_orchestrator.lifecycle.quarantine import (
    DEFAULT_FAILURE_THRESHOLD,
    Quarantine,
    count_failures,
    make_test_id,
    quarantine_failures,
    quarantine_tests,
)

__all__ = [
    "DEFAULT_FAILURE_THRESHOLD",
    "Quarantine",
    "count_failures",
    "make_test_id",
    "quarantine_failures",
    "quarantine_tests",
]
