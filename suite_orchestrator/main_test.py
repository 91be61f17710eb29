"""Tests for the orchestrator main entry point."""

from __future__ import annotations

import json
import stat
from pathlib import Path
from unittest.mock import patch

from suite_orchestrator.config import OrchestratorConfig
from suite_orchestrator.main import build_options, main, parse_args


def _make_script(tmpdir: Path, name: str, content: str) -> str:
    """Create an executable script and return its path."""
    script_path = tmpdir / name
    script_path.write_text(content)
    script_path.chmod(script_path.stat().st_mode | stat.S_IEXEC)
    return str(script_path)


def _write_manifest(tmpdir: Path, suites: dict) -> Path:
    path = tmpdir / "suites.json"
    path.write_text(json.dumps({"suites": suites}))
    return path


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = parse_args(["--manifest", "suites.json"])
        assert args.manifest == Path("suites.json")
        assert args.suites is None
        assert args.concurrency is None
        assert args.shard_index is None
        assert args.include == []
        assert args.fail_fast is False
        assert args.enable_cache is None

    def test_repeatable_flags(self):
        args = parse_args([
            "--manifest", "m.json",
            "--suite", "A", "--suite", "B",
            "--include", "*.sh", "--exclude", "slow",
            "--tag", "fast", "--exclude-tag", "flaky",
        ])
        assert args.suites == ["A", "B"]
        assert args.include == ["*.sh"]
        assert args.exclude == ["slow"]
        assert args.tags == ["fast"]
        assert args.exclude_tags == ["flaky"]


class TestBuildOptions:
    """Tests for merging CLI flags over config."""

    def test_config_values_used(self):
        cfg = OrchestratorConfig(None)
        cfg.set_config(concurrency=7, continue_on_error=False)
        options = build_options(parse_args(["--manifest", "m.json"]), cfg)
        assert options.concurrency == 7
        assert options.continue_on_error is False
        assert options.sharding is False

    def test_flags_override(self):
        args = parse_args([
            "--manifest", "m.json", "--concurrency", "2",
            "--shard-index", "1", "--shard-count", "3",
            "--fail-fast", "--enable-cache",
        ])
        options = build_options(args, OrchestratorConfig(None))
        assert options.concurrency == 2
        assert options.sharding is True
        assert options.shard_index == 1
        assert options.shard_count == 3
        assert options.continue_on_error is False
        assert options.enable_cache is True

    def test_shard_count_alone_enables_sharding(self):
        args = parse_args(["--manifest", "m.json", "--shard-count", "2"])
        options = build_options(args, OrchestratorConfig(None))
        assert options.sharding is True
        assert options.shard_index == 0


class TestMain:
    """Tests for main()."""

    def test_all_pass(self, tmp_path, capsys):
        ok = _make_script(tmp_path, "ok.sh", "#!/bin/bash\nexit 0\n")
        manifest = _write_manifest(tmp_path, {
            "A": {"files": [ok]},
            "B": {"files": [ok], "dependencies": ["A"]},
        })
        assert main(["--manifest", str(manifest)]) == 0
        out = capsys.readouterr().out
        assert "Results: 2 passed, 0 failed, 0 skipped" in out

    def test_failure_exit_code(self, tmp_path, capsys):
        bad = _make_script(tmp_path, "bad.sh", "#!/bin/bash\necho nope >&2\nexit 1\n")
        manifest = _write_manifest(tmp_path, {"A": {"files": [bad]}})
        assert main(["--manifest", str(manifest)]) == 1
        out = capsys.readouterr().out
        assert "[FAIL] A >" in out
        assert "nope" in out

    def test_missing_manifest(self, tmp_path, capsys):
        assert main(["--manifest", str(tmp_path / "missing.json")]) == 1
        assert "Manifest file not found" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path, capsys):
        path = tmp_path / "suites.json"
        path.write_text("{ not json")
        assert main(["--manifest", str(path)]) == 1
        assert "Invalid JSON" in capsys.readouterr().err

    def test_invalid_manifest_structure(self, tmp_path, capsys):
        path = tmp_path / "suites.json"
        path.write_text(json.dumps({"suites": ["A"]}))
        assert main(["--manifest", str(path)]) == 1
        assert "Error loading manifest" in capsys.readouterr().err

    def test_unknown_suite(self, tmp_path, capsys):
        manifest = _write_manifest(tmp_path, {"A": {"files": ["x"]}})
        assert main(["--manifest", str(manifest), "--suite", "Z"]) == 1
        assert "Unknown suite(s): Z" in capsys.readouterr().err

    def test_cycle_reported(self, tmp_path, capsys):
        manifest = _write_manifest(tmp_path, {
            "A": {"files": ["a"], "dependencies": ["B"]},
            "B": {"files": ["b"], "dependencies": ["A"]},
        })
        assert main(["--manifest", str(manifest)]) == 1
        assert "Circular dependency detected" in capsys.readouterr().err

    def test_writes_reports(self, tmp_path):
        ok = _make_script(tmp_path, "ok.sh", "#!/bin/bash\nexit 0\n")
        manifest = _write_manifest(tmp_path, {"A": {"files": [ok]}})
        output = tmp_path / "out" / "report.json"
        markdown = tmp_path / "out" / "summary.md"
        with patch("suite_orchestrator.main._resolve_commit_sha", return_value="abc123"):
            code = main([
                "--manifest", str(manifest),
                "--output", str(output),
                "--markdown", str(markdown),
            ])
        assert code == 0
        report = json.loads(output.read_text())["report"]
        assert report["commit"] == "abc123"
        assert report["summary"]["passed"] == 1
        assert "- **Status**: PASSED" in markdown.read_text()

    def test_fail_fast_skips(self, tmp_path, capsys):
        bad = _make_script(tmp_path, "bad.sh", "#!/bin/bash\nexit 1\n")
        ok = _make_script(tmp_path, "ok.sh", "#!/bin/bash\nexit 0\n")
        manifest = _write_manifest(tmp_path, {"A": {"files": [bad, ok]}})
        code = main([
            "--manifest", str(manifest), "--concurrency", "1", "--fail-fast",
        ])
        assert code == 1
        out = capsys.readouterr().out
        assert "0 passed, 1 failed, 1 skipped" in out

    def test_manifest_relative_file(self, tmp_path, capsys):
        """Bare file names in the manifest run from the manifest directory."""
        _make_script(tmp_path, "ok.sh", "#!/bin/bash\nexit 0\n")
        manifest = _write_manifest(tmp_path, {"A": {"files": ["ok.sh"]}})
        assert main(["--manifest", str(manifest)]) == 0
        assert "Results: 1 passed, 0 failed, 0 skipped" in capsys.readouterr().out

    def test_malformed_suite_entry(self, tmp_path, capsys):
        """A wrongly typed suite field is reported, not raised."""
        manifest = _write_manifest(tmp_path, {"A": {"files": 5}})
        assert main(["--manifest", str(manifest)]) == 1
        err = capsys.readouterr().err
        assert "Error loading manifest" in err
        assert "'files'" in err
