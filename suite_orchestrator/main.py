"""Entry point for the suite orchestrator.

Loads a JSON suite manifest, runs the requested suites in dependency order
with the subprocess runner, prints a summary, and optionally writes a
JSON/YAML report and a Markdown summary.
"""

from __future__ import annotations

import argparse
import json
import subprocess
import sys
from pathlib import Path

from suite_orchestrator.config import OrchestratorConfig
from suite_orchestrator.discovery.registry import SuiteRegistry
from suite_orchestrator.errors import StructuralError
from suite_orchestrator.execution.orchestrator import (
    OrchestrationOptions,
    OrchestrationResult,
    Orchestrator,
)
from suite_orchestrator.execution.runner import SubprocessRunner
from suite_orchestrator.reporting.reporter import Reporter


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Suite orchestrator - runs test suites in dependency order"
    )
    parser.add_argument(
        "--manifest",
        required=True,
        type=Path,
        help="Path to the JSON suite manifest",
    )
    parser.add_argument(
        "--suite",
        dest="suites",
        action="append",
        default=None,
        help="Suite to run (repeatable; default: all registered suites)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum number of test files running at once (default: from config, 4)",
    )
    parser.add_argument(
        "--shard-index",
        type=int,
        default=None,
        help="Zero-based shard to run; enables sharding",
    )
    parser.add_argument(
        "--shard-count",
        type=int,
        default=None,
        help="Total number of shards; enables sharding",
    )
    parser.add_argument(
        "--include",
        action="append",
        default=[],
        help="Only run files matching this pattern (repeatable, '*' wildcard)",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Skip files matching this pattern (repeatable, '*' wildcard)",
    )
    parser.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=[],
        help="Only run suites carrying one of these tags (repeatable)",
    )
    parser.add_argument(
        "--exclude-tag",
        dest="exclude_tags",
        action="append",
        default=[],
        help="Skip suites carrying any of these tags (repeatable)",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        default=False,
        help="Stop dispatching new test files after the first failure",
    )
    parser.add_argument(
        "--enable-cache",
        action="store_true",
        default=None,
        help="Include cache statistics in the result",
    )
    parser.add_argument(
        "--failure-threshold",
        type=int,
        default=None,
        help="Failures before a test is quarantined (default: from config, 3)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write the report (.yaml/.yml for YAML, JSON otherwise)",
    )
    parser.add_argument(
        "--markdown",
        type=Path,
        default=None,
        help="Path to write a Markdown summary",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="Path to the orchestrator JSON config file",
    )
    return parser.parse_args(argv)


def build_options(
    args: argparse.Namespace, config: OrchestratorConfig
) -> OrchestrationOptions:
    """Merge CLI flags over config values."""
    sharding = args.shard_index is not None or args.shard_count is not None
    return config.to_options(
        concurrency=args.concurrency,
        sharding=sharding,
        shard_count=args.shard_count,
        shard_index=args.shard_index,
        include=list(args.include),
        exclude=list(args.exclude),
        tags=list(args.tags),
        exclude_tags=list(args.exclude_tags),
        continue_on_error=False if args.fail_fast else None,
        enable_cache=args.enable_cache,
    )


def _resolve_commit_sha() -> str | None:
    """Best-effort lookup of the HEAD commit SHA for tagging reports."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        print("Warning: git not found, commit SHA will not be recorded",
              file=sys.stderr)
        return None

    if result.returncode != 0:
        print("Warning: not a git repository, commit SHA will not be recorded",
              file=sys.stderr)
        return None
    return result.stdout.strip()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = OrchestratorConfig(args.config_file)

    try:
        registry = SuiteRegistry.load(args.manifest)
    except FileNotFoundError:
        print(f"Error: Manifest file not found: {args.manifest}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in manifest: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error loading manifest: {e}", file=sys.stderr)
        return 1

    suite_names = args.suites or registry.names()
    unknown = [name for name in suite_names if name not in registry]
    if unknown:
        print(f"Error: Unknown suite(s): {', '.join(unknown)}", file=sys.stderr)
        return 1

    threshold = args.failure_threshold
    if threshold is None:
        threshold = config.failure_threshold

    orchestrator = Orchestrator(
        SubprocessRunner(cwd=args.manifest.parent.resolve()),
        registry=registry,
        failure_threshold=threshold,
    )
    options = build_options(args, config)

    try:
        result = orchestrator.orchestrate(suite_names, options)
    except StructuralError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_results(result)

    if args.output or args.markdown:
        reporter = Reporter(result)
        commit_sha = _resolve_commit_sha()
        if commit_sha:
            reporter.set_commit_hash(commit_sha)
        if args.output:
            reporter.write_report(args.output)
            print(f"Report written to: {args.output}")
        if args.markdown:
            args.markdown.parent.mkdir(parents=True, exist_ok=True)
            args.markdown.write_text(reporter.format_markdown() + "\n")
            print(f"Markdown summary written to: {args.markdown}")

    return 0 if result.success else 1


def _print_results(result: OrchestrationResult) -> None:
    """Print a per-file listing and the summary line."""
    if result.sharding is not None:
        print(
            f"Shard {result.sharding.shard_index + 1}/{result.sharding.total_shards}: "
            f"{len(result.sharding.shard_files)} files"
        )
    print(f"Tests executed: {result.summary.total}")
    print()

    for r in result.results:
        icon = "PASS" if r.passed else "FAIL"
        print(f"  [{icon}] {r.suite} > {r.file} ({r.duration:.2f}s)")
        if not r.passed and r.error:
            for line in r.error.strip().splitlines():
                print(f"         {line}")

    print()
    summary = result.summary
    print(
        f"Results: {summary.passed} passed, {summary.failed} failed, "
        f"{summary.skipped} skipped ({summary.duration:.2f}s)"
    )

    if result.errors:
        print()
        print("Errors:")
        for error in result.errors:
            print(f"  {error.message}")

    if result.quarantined:
        print()
        print("Quarantined:")
        for tid in result.quarantined:
            print(f"  {tid}")


if __name__ == "__main__":
    sys.exit(main())
