"""Test execution engine: ordering, filtering, sharding, and dispatch."""

from suite_orchestrator.execution.dag import DependencyResolver
from suite_orchestrator.execution.filtering import FilterCriteria, filter_tests, matches_pattern
from suite_orchestrator.execution.limiter import ConcurrencyLimiter, Permit
from suite_orchestrator.execution.orchestrator import (
    CacheStats,
    OrchestrationError,
    OrchestrationOptions,
    OrchestrationResult,
    Orchestrator,
    ShardingInfo,
    Summary,
    orchestrate_tests,
)
from suite_orchestrator.execution.runner import SubprocessRunner, TestResult, TestRunner
from suite_orchestrator.execution.sharding import TestShard, create_shards, shard_tests

__all__ = [
    "CacheStats",
    "ConcurrencyLimiter",
    "DependencyResolver",
    "FilterCriteria",
    "OrchestrationError",
    "OrchestrationOptions",
    "OrchestrationResult",
    "Orchestrator",
    "Permit",
    "ShardingInfo",
    "SubprocessRunner",
    "Summary",
    "TestResult",
    "TestRunner",
    "TestShard",
    "create_shards",
    "filter_tests",
    "matches_pattern",
    "orchestrate_tests",
    "shard_tests",
]
