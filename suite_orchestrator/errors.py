"""Structural errors raised by the orchestrator.

Only structural problems are raised to the caller. Failures of individual
test files are captured inside the OrchestrationResult instead.
"""

from __future__ import annotations


class StructuralError(ValueError):
    """Base class for errors that abort orchestration before dispatch."""


class DuplicateSuiteError(StructuralError):
    """A suite with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Suite already registered: {name}")


class CycleDetectedError(StructuralError):
    """A suite transitively depends on itself.

    Attributes:
        chain: The dependency path forming the cycle. The first and last
            entries name the same suite.
    """

    def __init__(self, chain: list[str]) -> None:
        self.chain = list(chain)
        super().__init__(
            f"Circular dependency detected: {' -> '.join(self.chain)}"
        )
