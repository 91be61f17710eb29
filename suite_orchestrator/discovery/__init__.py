"""Suite discovery: suite definitions and the suite registry."""

from suite_orchestrator.discovery.registry import RetryPolicy, SuiteRegistry, TestSuite

__all__ = [
    "RetryPolicy",
    "SuiteRegistry",
    "TestSuite",
]
