"""Dependency-aware parallel orchestration of test suites."""

from suite_orchestrator.discovery.registry import RetryPolicy, SuiteRegistry, TestSuite
from suite_orchestrator.errors import CycleDetectedError, DuplicateSuiteError, StructuralError
from suite_orchestrator.execution.dag import DependencyResolver
from suite_orchestrator.execution.filtering import FilterCriteria, filter_tests
from suite_orchestrator.execution.limiter import ConcurrencyLimiter
from suite_orchestrator.execution.orchestrator import (
    OrchestrationOptions,
    OrchestrationResult,
    Orchestrator,
    orchestrate_tests,
)
from suite_orchestrator.execution.runner import SubprocessRunner, TestResult, TestRunner
from suite_orchestrator.execution.sharding import TestShard, create_shards, shard_tests
from suite_orchestrator.lifecycle.quarantine import Quarantine, quarantine_tests

__all__ = [
    "ConcurrencyLimiter",
    "CycleDetectedError",
    "DependencyResolver",
    "DuplicateSuiteError",
    "FilterCriteria",
    "OrchestrationOptions",
    "OrchestrationResult",
    "Orchestrator",
    "Quarantine",
    "RetryPolicy",
    "StructuralError",
    "SubprocessRunner",
    "SuiteRegistry",
    "TestResult",
    "TestRunner",
    "TestShard",
    "TestSuite",
    "create_shards",
    "filter_tests",
    "orchestrate_tests",
    "quarantine_tests",
    "shard_tests",
]
