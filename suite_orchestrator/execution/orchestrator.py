"""Dependency-aware parallel orchestration of test suites.

Provides Orchestrator, which resolves suite order, filters suites and
files, optionally restricts the run to one shard, and dispatches one task
per test file through a ConcurrencyLimiter to an injected runner. Results
are aggregated into an OrchestrationResult.

Only structural errors (duplicate registration, dependency cycles) are
raised. Runner failures, aborts and configuration problems are recorded in
the result.
"""

from __future__ import annotations

import asyncio
import datetime
import sys
import time
import traceback
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Iterable

from suite_orchestrator.discovery.registry import SuiteRegistry, TestSuite
from suite_orchestrator.execution.dag import DependencyResolver
from suite_orchestrator.execution.filtering import FilterCriteria, filter_tests
from suite_orchestrator.execution.limiter import ConcurrencyLimiter
from suite_orchestrator.execution.runner import TestResult, TestRunner, result_name
from suite_orchestrator.execution.sharding import TestShard, create_shards
from suite_orchestrator.lifecycle.quarantine import (
    DEFAULT_FAILURE_THRESHOLD,
    Quarantine,
    count_failures,
    quarantine_failures,
)

RunTestFn = Callable[[TestSuite, str], Awaitable[TestResult]]

# Orchestration states, in the order a call moves through them
STATE_IDLE = "idle"
STATE_RESOLVING = "resolving_dependencies"
STATE_FILTERING = "filtering"
STATE_SHARDING = "sharding"
STATE_DISPATCHING = "dispatching"
STATE_AGGREGATING = "aggregating"
STATE_DONE = "done"
STATE_FAILED = "failed"


def _now() -> str:
    return datetime.datetime.now(tz=datetime.timezone.utc).isoformat()


@dataclass
class OrchestrationOptions:
    """Options for a single orchestrate() call."""

    concurrency: int = 4
    sharding: bool = False
    shard_count: int = 4
    shard_index: int = 0
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    exclude_tags: list[str] = field(default_factory=list)
    continue_on_error: bool = True
    # Only emits cache statistics; there is no cache behind it yet
    enable_cache: bool = False

    def criteria(self) -> FilterCriteria:
        return FilterCriteria(
            include=tuple(self.include),
            exclude=tuple(self.exclude),
            tags=tuple(self.tags),
            exclude_tags=tuple(self.exclude_tags),
        )


@dataclass
class Summary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0


@dataclass
class ShardingInfo:
    shard_index: int
    total_shards: int
    shard_files: list[str] = field(default_factory=list)


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    saved_time: float = 0.0


@dataclass
class OrchestrationError:
    """An error recorded during orchestration, with an ISO-8601 timestamp."""

    message: str
    timestamp: str = field(default_factory=_now)


@dataclass
class OrchestrationResult:
    """Aggregate outcome of one orchestrate() call."""

    success: bool = False
    results: list[TestResult] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    sharding: ShardingInfo | None = None
    errors: list[OrchestrationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cache_stats: CacheStats | None = None
    quarantined: list[str] = field(default_factory=list)
    state: str = STATE_IDLE
    total_duration: float = 0.0
    timestamp: str = field(default_factory=_now)


class Orchestrator:
    """Runs registered suites in dependency order under a concurrency limit.

    The runner is either an object with an async ``run_test(suite, file)``
    method or an async callable with the same signature. The orchestrator
    owns a quarantine and a per-test failure count for its lifetime; after
    each call the counts are checked against failure_threshold. Calls keep
    their progress in the returned result, so one instance may serve
    concurrent orchestrate_async() calls.

    Dependencies order the enumeration of tasks only. Files of dependent
    suites may start before a dependency's files finish when concurrency
    allows it.
    """

    def __init__(
        self,
        runner: TestRunner | RunTestFn,
        registry: SuiteRegistry | None = None,
        quarantine: Quarantine | None = None,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ) -> None:
        self._run_test: RunTestFn = getattr(runner, "run_test", runner)
        self.registry = registry if registry is not None else SuiteRegistry()
        self.resolver = DependencyResolver(self.registry)
        self.quarantine = quarantine if quarantine is not None else Quarantine()
        self.failure_threshold = failure_threshold
        self.failure_counts: Counter[str] = Counter()

    # --- Registry / building blocks ---

    def register_suite(self, suite: TestSuite) -> None:
        """Register a suite.

        Raises:
            DuplicateSuiteError: If the name is already registered.
        """
        self.registry.register(suite)

    def get_suite(self, name: str) -> TestSuite | None:
        return self.registry.get(name)

    def get_suites(self) -> list[TestSuite]:
        return self.registry.suites()

    def resolve_dependencies(self, suite_names: list[str]) -> list[str]:
        return self.resolver.resolve(suite_names)

    def create_shards(self, files: list[str], shard_count: int) -> list[TestShard]:
        return create_shards(files, shard_count)

    def filter_tests(
        self, suites: list[TestSuite], criteria: FilterCriteria | None = None
    ) -> list[TestSuite]:
        return filter_tests(suites, criteria)

    # --- Orchestration ---

    def orchestrate(
        self,
        suite_names: Iterable[str],
        options: OrchestrationOptions | None = None,
    ) -> OrchestrationResult:
        """Run the named suites and return the aggregated result.

        Starts its own event loop; use orchestrate_async() from code that is
        already running inside one.

        Raises:
            CycleDetectedError: If the requested suites contain a cycle.
        """
        return asyncio.run(self.orchestrate_async(suite_names, options))

    async def orchestrate_async(
        self,
        suite_names: Iterable[str],
        options: OrchestrationOptions | None = None,
    ) -> OrchestrationResult:
        """Async implementation of orchestrate()."""
        options = options or OrchestrationOptions()
        start_time = time.monotonic()
        result = OrchestrationResult()

        result.state = STATE_RESOLVING
        ordered = self.resolver.resolve(list(suite_names))

        result.state = STATE_FILTERING
        suites = [s for s in (self.registry.get(n) for n in ordered) if s is not None]
        filtered = filter_tests(suites, options.criteria())

        # A file shared by several suites is sharded once
        working_files = list(dict.fromkeys(f for s in filtered for f in s.files))

        if options.sharding:
            result.state = STATE_SHARDING
            shard = self._select_shard(working_files, options, result)
            working_files = shard.files
            result.sharding = ShardingInfo(
                shard_index=shard.index,
                total_shards=shard.total,
                shard_files=list(shard.files),
            )
            filtered = [replace(s, env={**s.env, **shard.env}) for s in filtered]

        selected = set(working_files)
        work = [(s, f) for s in filtered for f in s.files if f in selected]

        result.state = STATE_DISPATCHING
        await self._dispatch(work, options, result)

        result.state = STATE_AGGREGATING
        self._aggregate(result, options, start_time)

        result.state = STATE_DONE
        if not options.continue_on_error and result.summary.failed > 0:
            result.state = STATE_FAILED
        return result

    def _warn(self, result: OrchestrationResult, message: str) -> None:
        print(f"Warning: {message}", file=sys.stderr)
        result.warnings.append(message)

    def _select_shard(
        self,
        files: list[str],
        options: OrchestrationOptions,
        result: OrchestrationResult,
    ) -> TestShard:
        shard_count = options.shard_count
        if shard_count < 1:
            self._warn(result, f"shard_count must be >= 1, got {shard_count}; using 1")
            shard_count = 1

        shards = create_shards(files, shard_count)
        shard_index = options.shard_index
        if not 0 <= shard_index < shard_count:
            self._warn(
                result,
                f"shard_index {shard_index} out of range for {shard_count} shards; "
                f"using shard 0",
            )
            shard_index = 0
        return shards[shard_index]

    async def _dispatch(
        self,
        work: list[tuple[TestSuite, str]],
        options: OrchestrationOptions,
        result: OrchestrationResult,
    ) -> None:
        """Run one task per (suite, file) pair and record every outcome.

        Tasks are created in enumeration order and the limiter grants
        permits first-come first-served, so they start in that order. Once
        a failure is observed with continue_on_error disabled, tasks that
        have not started yet are skipped; tasks already running finish.
        """
        concurrency = options.concurrency
        if concurrency < 1:
            self._warn(result, f"concurrency must be >= 1, got {concurrency}; using 1")
            concurrency = 1

        limiter = ConcurrencyLimiter(concurrency)
        lock = asyncio.Lock()
        stop_event = asyncio.Event()

        async def run_one(suite: TestSuite, file: str) -> None:
            async with limiter.hold():
                if stop_event.is_set():
                    async with lock:
                        result.summary.skipped += 1
                    return

                test_result, error = await self._invoke(suite, file)

                async with lock:
                    result.results.append(test_result)
                    if error is not None:
                        result.errors.append(error)
                    if not test_result.passed and not options.continue_on_error:
                        stop_event.set()

        tasks = [asyncio.create_task(run_one(suite, file)) for suite, file in work]
        if tasks:
            await asyncio.gather(*tasks)

        if stop_event.is_set() and result.summary.skipped:
            result.errors.append(OrchestrationError(
                f"Orchestration aborted after a failure: "
                f"{result.summary.skipped} file(s) not run"
            ))

    async def _invoke(
        self, suite: TestSuite, file: str
    ) -> tuple[TestResult, OrchestrationError | None]:
        """Call the runner, turning an exception into a failed result."""
        start_time = time.monotonic()
        try:
            return await self._run_test(suite, file), None
        except Exception as e:
            message = str(e) or type(e).__name__
            failed = TestResult(
                suite=suite.name,
                file=file,
                name=result_name(file),
                passed=False,
                duration=time.monotonic() - start_time,
                error=message,
                stack_trace=traceback.format_exc(),
            )
            return failed, OrchestrationError(f"{suite.name}:{file}: {message}")

    def _aggregate(
        self,
        result: OrchestrationResult,
        options: OrchestrationOptions,
        start_time: float,
    ) -> None:
        summary = result.summary
        summary.total = len(result.results)
        summary.passed = sum(1 for r in result.results if r.passed)
        summary.failed = summary.total - summary.passed
        summary.duration = time.monotonic() - start_time
        result.total_duration = summary.duration
        result.success = summary.failed == 0 and not result.errors

        if options.enable_cache:
            result.cache_stats = CacheStats(hits=0, misses=summary.total)

        self.failure_counts.update(count_failures(result.results))
        quarantine_failures(self.failure_counts, self.quarantine, self.failure_threshold)
        result.quarantined = sorted({
            r.test_id for r in result.results
            if self.quarantine.is_quarantined(r.test_id)
        })


def orchestrate_tests(
    suites: Iterable[TestSuite],
    runner: TestRunner | RunTestFn,
    options: OrchestrationOptions | None = None,
) -> OrchestrationResult:
    """Register the suites on a fresh orchestrator and run all of them."""
    orchestrator = Orchestrator(runner)
    names: list[str] = []
    for suite in suites:
        orchestrator.register_suite(suite)
        names.append(suite.name)
    return orchestrator.orchestrate(names, options)
