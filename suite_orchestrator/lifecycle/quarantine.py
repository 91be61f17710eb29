"""Quarantine of chronically failing tests.

Quarantine is a plain set of test identifiers (``suite:file:name``). The
policy that fills it, quarantine_tests(), is a batch aggregation over a
sequence of results; callers re-run it over their accumulated history, or
keep running failure counts and pass them to quarantine_failures().
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Iterable, Mapping

if TYPE_CHECKING:
    from suite_orchestrator.execution.runner import TestResult

DEFAULT_FAILURE_THRESHOLD = 3


def make_test_id(suite: str, file: str, name: str) -> str:
    """Build the quarantine identifier for a test."""
    return f"{suite}:{file}:{name}"


class Quarantine:
    """Set of quarantined test identifiers with explicit membership control."""

    def __init__(self, test_ids: Iterable[str] = ()) -> None:
        self._tests: set[str] = set(test_ids)

    def quarantine(self, test_id: str) -> None:
        self._tests.add(test_id)

    def unquarantine(self, test_id: str) -> None:
        """Remove a test from quarantine. Unknown identifiers are ignored."""
        self._tests.discard(test_id)

    def is_quarantined(self, test_id: str) -> bool:
        return test_id in self._tests

    def list(self) -> set[str]:
        """Snapshot of all quarantined identifiers."""
        return set(self._tests)

    def clear(self) -> None:
        self._tests.clear()

    def __contains__(self, test_id: object) -> bool:
        return test_id in self._tests

    def __len__(self) -> int:
        return len(self._tests)


def count_failures(results: Iterable[TestResult]) -> Counter[str]:
    """Count failed results per test identifier."""
    return Counter(r.test_id for r in results if not r.passed)


def quarantine_tests(
    results: Iterable[TestResult],
    quarantine: Quarantine,
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
) -> list[str]:
    """Quarantine every test whose failure count reaches the threshold.

    Args:
        results: Result history to aggregate over.
        quarantine: Set to add offending tests to.
        failure_threshold: Failures needed before a test is quarantined.

    Returns:
        Identifiers newly added by this call, sorted.
    """
    return quarantine_failures(count_failures(results), quarantine, failure_threshold)


def quarantine_failures(
    failure_counts: Mapping[str, int],
    quarantine: Quarantine,
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
) -> list[str]:
    """Same policy as quarantine_tests(), over precomputed failure counts."""
    added: list[str] = []
    for tid, count in failure_counts.items():
        if count >= failure_threshold and not quarantine.is_quarantined(tid):
            quarantine.quarantine(tid)
            added.append(tid)
    return sorted(added)
