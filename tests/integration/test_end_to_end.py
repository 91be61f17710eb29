"""End-to-end integration tests exercising the full pipeline.

Tests the complete flow from manifest -> registry -> resolver -> filter ->
shard -> subprocess runner -> reporter, covering dependency order, sharded
runs across all shards, fail-fast aborts, and quarantine over repeated runs.
"""

from __future__ import annotations

import json
import stat
import tempfile
from pathlib import Path
from typing import Any

import yaml

from suite_orchestrator.discovery.registry import SuiteRegistry
from suite_orchestrator.execution.orchestrator import OrchestrationOptions, Orchestrator
from suite_orchestrator.execution.runner import SubprocessRunner
from suite_orchestrator.main import main
from suite_orchestrator.reporting.reporter import Reporter


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_script(tmpdir: Path, name: str, content: str) -> str:
    """Create an executable script and return its path."""
    script_path = tmpdir / name
    script_path.write_text(content)
    script_path.chmod(script_path.stat().st_mode | stat.S_IEXEC)
    return str(script_path)


def _logging_script(tmpdir: Path, name: str, log: Path, exit_code: int = 0) -> str:
    """Script that appends its name and shard index to a log file."""
    return _make_script(tmpdir, name, (
        "#!/bin/bash\n"
        f'echo "{name} ${{TEST_SHARD_INDEX:-none}}" >> {log}\n'
        f"exit {exit_code}\n"
    ))


def _make_manifest(tmpdir: Path, suites: dict[str, dict[str, Any]]) -> Path:
    manifest_path = tmpdir / "suites.json"
    manifest_path.write_text(json.dumps({"suites": suites}))
    return manifest_path


def _log_lines(log: Path) -> list[str]:
    return log.read_text().splitlines() if log.exists() else []


# ---------------------------------------------------------------------------
# Dependency order
# ---------------------------------------------------------------------------


class TestDependencyOrderEndToEnd:
    """Full pipeline with real subprocesses."""

    def test_sequential_run_follows_dependencies(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir = Path(tmpdir)
            log = tmpdir / "run.log"
            a1 = _logging_script(tmpdir, "a1.sh", log)
            a2 = _logging_script(tmpdir, "a2.sh", log)
            b1 = _logging_script(tmpdir, "b1.sh", log)

            registry = SuiteRegistry.load(_make_manifest(tmpdir, {
                "B": {"files": [b1], "dependencies": ["A"]},
                "A": {"files": [a1, a2]},
            }))
            orchestrator = Orchestrator(SubprocessRunner(), registry=registry)
            result = orchestrator.orchestrate(["B"], OrchestrationOptions(concurrency=1))

            assert result.success
            assert result.summary.total == 3
            assert _log_lines(log) == ["a1.sh none", "a2.sh none", "b1.sh none"]

    def test_parallel_run_collects_all_results(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir = Path(tmpdir)
            log = tmpdir / "run.log"
            files = [_logging_script(tmpdir, f"t{i}.sh", log) for i in range(8)]
            bad = _logging_script(tmpdir, "bad.sh", log, exit_code=1)

            registry = SuiteRegistry.load(_make_manifest(tmpdir, {
                "S": {"files": files + [bad]},
            }))
            result = Orchestrator(SubprocessRunner(), registry=registry).orchestrate(
                ["S"], OrchestrationOptions(concurrency=4)
            )

            assert result.summary.total == 9
            assert result.summary.failed == 1
            assert not result.success
            assert len(_log_lines(log)) == 9


# ---------------------------------------------------------------------------
# Sharding
# ---------------------------------------------------------------------------


class TestShardingEndToEnd:
    """Every shard of a sharded run, executed one after another."""

    def test_all_shards_cover_every_file_once(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir = Path(tmpdir)
            log = tmpdir / "run.log"
            suites = {
                "A": {"files": [_logging_script(tmpdir, f"a{i}.sh", log) for i in range(3)]},
                "B": {
                    "files": [_logging_script(tmpdir, f"b{i}.sh", log) for i in range(4)],
                    "dependencies": ["A"],
                },
            }
            registry = SuiteRegistry.load(_make_manifest(tmpdir, suites))

            shard_files: list[list[str]] = []
            for index in range(3):
                result = Orchestrator(SubprocessRunner(), registry=registry).orchestrate(
                    ["B"],
                    OrchestrationOptions(sharding=True, shard_count=3, shard_index=index),
                )
                assert result.success
                shard_files.append(result.sharding.shard_files)

            lines = _log_lines(log)
            names = sorted(line.split()[0] for line in lines)
            assert names == sorted([f"a{i}.sh" for i in range(3)] + [f"b{i}.sh" for i in range(4)])
            # Each script saw the index of the shard that ran it
            for index, files in enumerate(shard_files):
                for f in files:
                    assert f"{Path(f).name} {index}" in lines


# ---------------------------------------------------------------------------
# Fail-fast and quarantine
# ---------------------------------------------------------------------------


class TestFailureHandlingEndToEnd:

    def test_fail_fast_stops_dispatch(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir = Path(tmpdir)
            log = tmpdir / "run.log"
            first = _logging_script(tmpdir, "first.sh", log, exit_code=1)
            rest = [_logging_script(tmpdir, f"rest{i}.sh", log) for i in range(3)]

            registry = SuiteRegistry.load(_make_manifest(tmpdir, {
                "S": {"files": [first] + rest},
            }))
            result = Orchestrator(SubprocessRunner(), registry=registry).orchestrate(
                ["S"], OrchestrationOptions(concurrency=1, continue_on_error=False)
            )

            assert _log_lines(log) == ["first.sh none"]
            assert result.summary.skipped == 3
            assert result.state == "failed"

    def test_repeated_failures_quarantined(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir = Path(tmpdir)
            log = tmpdir / "run.log"
            flaky = _logging_script(tmpdir, "flaky.sh", log, exit_code=1)
            stable = _logging_script(tmpdir, "stable.sh", log)

            registry = SuiteRegistry.load(_make_manifest(tmpdir, {
                "S": {"files": [flaky, stable]},
            }))
            orchestrator = Orchestrator(SubprocessRunner(), registry=registry)

            for _ in range(2):
                assert orchestrator.orchestrate(["S"]).quarantined == []
            result = orchestrator.orchestrate(["S"])

            flaky_id = f"S:{flaky}:flaky"
            assert result.quarantined == [flaky_id]
            assert orchestrator.quarantine.list() == {flaky_id}

            report = Reporter(result).generate_report()["report"]
            assert report["quarantined"] == [flaky_id]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCliEndToEnd:

    def test_yaml_report(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir = Path(tmpdir)
            log = tmpdir / "run.log"
            manifest = _make_manifest(tmpdir, {
                "unit": {"files": [_logging_script(tmpdir, "u.sh", log)], "tags": ["fast"]},
                "e2e": {"files": [_logging_script(tmpdir, "e.sh", log)], "tags": ["slow"]},
            })
            output = tmpdir / "report.yaml"

            code = main([
                "--manifest", str(manifest),
                "--tag", "fast",
                "--output", str(output),
            ])

            assert code == 0
            assert _log_lines(log) == ["u.sh none"]
            report = yaml.safe_load(output.read_text())["report"]
            assert report["summary"]["total"] == 1
            assert report["tests"][0]["suite"] == "unit"
