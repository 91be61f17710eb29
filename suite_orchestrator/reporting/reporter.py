"""Report generation for orchestration results.

Turns an OrchestrationResult into a plain dict and writes it as JSON or
YAML, or renders a Markdown summary for CI logs and pull request comments.
"""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any

import yaml

from suite_orchestrator.execution.orchestrator import OrchestrationResult
from suite_orchestrator.execution.runner import TestResult


class Reporter:
    """Collects an orchestration result and generates reports.

    Optional commit hash and extra metadata are attached to the report
    when set.
    """

    def __init__(self, result: OrchestrationResult | None = None) -> None:
        self.result = result
        self.commit_hash: str | None = None
        self.metadata: dict[str, Any] = {}

    def set_result(self, result: OrchestrationResult) -> None:
        self.result = result

    def set_commit_hash(self, commit_hash: str) -> None:
        """Set the commit hash to tag results with."""
        self.commit_hash = commit_hash

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def generate_report(self) -> dict[str, Any]:
        """Generate the report data structure.

        Returns:
            Dictionary representing the full report, suitable for JSON
            or YAML serialization.

        Raises:
            ValueError: If no result has been set.
        """
        if self.result is None:
            raise ValueError("No orchestration result to report")
        result = self.result
        now = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()

        report: dict[str, Any] = {
            "generated_at": now,
            "timestamp": result.timestamp,
            "success": result.success,
            "state": result.state,
            "total_duration_seconds": round(result.total_duration, 3),
            "summary": {
                "total": result.summary.total,
                "passed": result.summary.passed,
                "failed": result.summary.failed,
                "skipped": result.summary.skipped,
                "duration_seconds": round(result.summary.duration, 3),
            },
            "tests": [self._format_result(r) for r in result.results],
            "errors": [
                {"message": e.message, "timestamp": e.timestamp}
                for e in result.errors
            ],
        }

        if self.commit_hash:
            report["commit"] = self.commit_hash

        if result.sharding is not None:
            report["sharding"] = {
                "shard_index": result.sharding.shard_index,
                "total_shards": result.sharding.total_shards,
                "shard_files": list(result.sharding.shard_files),
            }

        if result.cache_stats is not None:
            report["cache_stats"] = {
                "hits": result.cache_stats.hits,
                "misses": result.cache_stats.misses,
                "saved_time_seconds": result.cache_stats.saved_time,
            }

        if result.warnings:
            report["warnings"] = list(result.warnings)

        if result.quarantined:
            report["quarantined"] = list(result.quarantined)

        if self.metadata:
            report["metadata"] = dict(self.metadata)

        return {"report": report}

    def write_json(self, path: Path) -> None:
        """Write the report as a JSON file."""
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(report, f, indent=2)

    def write_yaml(self, path: Path) -> None:
        """Write the report as a YAML file."""
        report = self.generate_report()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(report, f, sort_keys=False)

    def write_report(self, path: Path) -> None:
        """Write the report, choosing YAML for .yaml/.yml paths and JSON otherwise."""
        if path.suffix.lower() in (".yaml", ".yml"):
            self.write_yaml(path)
        else:
            self.write_json(path)

    def format_markdown(self) -> str:
        """Render a Markdown summary of the result."""
        if self.result is None:
            raise ValueError("No orchestration result to report")
        result = self.result
        summary = result.summary

        lines = [
            "# Test Orchestration Report",
            "",
            "## Summary",
            f"- **Status**: {'PASSED' if result.success else 'FAILED'}",
            f"- **Total Tests**: {summary.total}",
            f"- **Passed**: {summary.passed}",
            f"- **Failed**: {summary.failed}",
            f"- **Skipped**: {summary.skipped}",
            f"- **Duration**: {summary.duration:.2f}s",
            f"- **Timestamp**: {result.timestamp}",
        ]

        if result.sharding is not None:
            lines.append(
                f"- **Shard**: {result.sharding.shard_index + 1}/"
                f"{result.sharding.total_shards}"
            )
            lines.append(f"- **Shard Files**: {len(result.sharding.shard_files)}")

        if result.cache_stats is not None:
            lines.append(f"- **Cache Hits**: {result.cache_stats.hits}")
            lines.append(f"- **Cache Misses**: {result.cache_stats.misses}")
            lines.append(f"- **Time Saved**: {result.cache_stats.saved_time:.2f}s")

        lines.append("")

        if result.errors:
            lines.extend(["## Errors", ""])
            for i, error in enumerate(result.errors, start=1):
                lines.append(f"{i}. {error.message} ({error.timestamp})")
            lines.append("")

        if result.quarantined:
            lines.extend(["## Quarantined", ""])
            lines.extend(f"- {tid}" for tid in result.quarantined)
            lines.append("")

        failed = [r for r in result.results if not r.passed]
        if failed:
            lines.extend(["## Failed Tests", ""])
            for i, r in enumerate(failed, start=1):
                lines.append(f"### {i}. {r.suite} > {r.file}")
                lines.append(f"- **Test**: {r.name}")
                lines.append(f"- **Duration**: {r.duration:.2f}s")
                if r.error:
                    lines.append(f"- **Error**: {r.error}")
                lines.append("")

        return "\n".join(lines)

    def _format_result(self, result: TestResult) -> dict[str, Any]:
        """Format a single TestResult for the report."""
        entry: dict[str, Any] = {
            "id": result.test_id,
            "suite": result.suite,
            "file": result.file,
            "name": result.name,
            "passed": result.passed,
            "duration_seconds": round(result.duration, 3),
        }
        if result.error:
            entry["error"] = result.error
        if result.stack_trace:
            entry["stack_trace"] = result.stack_trace
        # Captured output is too bulky for the report
        metadata = {
            k: v for k, v in result.metadata.items() if k not in ("stdout", "stderr")
        }
        if metadata:
            entry["metadata"] = metadata
        return entry
