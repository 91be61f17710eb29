"""Include/exclude and tag filtering of suites and their files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from functools import lru_cache

from suite_orchestrator.discovery.registry import TestSuite


@dataclass(frozen=True)
class FilterCriteria:
    """Patterns and tags used to narrow a set of suites.

    Empty sequences mean "no constraint".
    """

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    exclude_tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "include", tuple(self.include))
        object.__setattr__(self, "exclude", tuple(self.exclude))
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "exclude_tags", tuple(self.exclude_tags))


@lru_cache(maxsize=256)
def _wildcard_regex(pattern: str) -> re.Pattern[str]:
    parts = (re.escape(part) for part in pattern.split("*"))
    return re.compile(".*".join(parts))


def matches_pattern(file: str, pattern: str) -> bool:
    """Check whether a file path matches a filter pattern.

    A pattern without '*' matches as a plain substring. Each '*' matches
    any run of characters; the match is unanchored, so the pattern only
    needs to occur somewhere in the path.
    """
    if "*" in pattern:
        return _wildcard_regex(pattern).search(file) is not None
    return pattern in file


def _suite_selected(suite: TestSuite, criteria: FilterCriteria) -> bool:
    # Untagged suites are never dropped by the tag filter
    if criteria.tags and suite.tags:
        if not any(tag in suite.tags for tag in criteria.tags):
            return False
    if criteria.exclude_tags and suite.tags:
        if any(tag in suite.tags for tag in criteria.exclude_tags):
            return False
    return True


def _file_selected(file: str, criteria: FilterCriteria) -> bool:
    if criteria.include and not any(
        matches_pattern(file, p) for p in criteria.include
    ):
        return False
    return not any(matches_pattern(file, p) for p in criteria.exclude)


def filter_tests(
    suites: list[TestSuite],
    criteria: FilterCriteria | None = None,
) -> list[TestSuite]:
    """Narrow suites by tags, then narrow each suite's files by pattern.

    Args:
        suites: Suites in the order they should be returned.
        criteria: Filter criteria; None keeps everything with files.

    Returns:
        New suite objects with narrowed file lists, in input order. Suites
        left without files are dropped. The inputs are not modified.
    """
    criteria = criteria or FilterCriteria()
    filtered: list[TestSuite] = []
    for suite in suites:
        if not _suite_selected(suite, criteria):
            continue
        files = tuple(f for f in suite.files if _file_selected(f, criteria))
        if not files:
            continue
        filtered.append(suite if files == suite.files else replace(suite, files=files))
    return filtered
