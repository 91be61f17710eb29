"""Test runner capability and the subprocess-based implementation.

The orchestrator never runs tests itself. It calls an injected runner
once per (suite, file) pair and records the TestResult it returns.
"""

from __future__ import annotations

import asyncio
import os
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from suite_orchestrator.discovery.registry import TestSuite


@dataclass
class TestResult:
    """Result of running a single test file."""

    suite: str
    file: str
    name: str
    passed: bool
    duration: float = 0.0
    error: str | None = None
    stack_trace: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def test_id(self) -> str:
        """Identifier used by the quarantine: ``suite:file:name``."""
        return f"{self.suite}:{self.file}:{self.name}"


class TestRunner(Protocol):
    """Anything that can run one test file of a suite."""

    async def run_test(self, suite: TestSuite, file: str) -> TestResult:
        ...


def result_name(file: str) -> str:
    """Default test name for a file: its base name without extension."""
    return Path(file).stem


class SubprocessRunner:
    """Runs each test file as a subprocess and maps its exit code.

    The command is ``[*suite.command, file]``, or just ``[file]`` when the
    suite has no command, in which case a bare file name is resolved against
    cwd. The suite's env is merged over os.environ. The
    suite's timeout and retry policy are honoured here.
    """

    def __init__(self, cwd: Path | None = None) -> None:
        self.cwd = cwd

    async def run_test(self, suite: TestSuite, file: str) -> TestResult:
        """Run one file in a worker thread.

        Uses subprocess.run in a thread executor to avoid asyncio subprocess
        child watcher issues in containerized environments.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.run_test_sync, suite, file)

    def run_test_sync(self, suite: TestSuite, file: str) -> TestResult:
        """Run one file, retrying failures according to suite.retry."""
        attempts = max(1, suite.retry.attempts)
        start_time = time.monotonic()
        result = self._run_once(suite, file)
        attempt = 1
        while not result.passed and attempt < attempts:
            if suite.retry.delay > 0:
                time.sleep(suite.retry.delay)
            attempt += 1
            result = self._run_once(suite, file)

        result.duration = time.monotonic() - start_time
        result.metadata["attempts"] = attempt
        return result

    def _run_once(self, suite: TestSuite, file: str) -> TestResult:
        executable = file
        if not suite.command and os.sep not in file:
            # A bare name would be searched on PATH instead of in cwd
            executable = os.path.join(os.curdir, file)
        argv = [*suite.command, executable]
        env = {**os.environ, **suite.env}
        name = result_name(file)

        start_time = time.monotonic()
        try:
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=suite.timeout,
                env=env,
                cwd=self.cwd,
            )
        except subprocess.TimeoutExpired:
            return TestResult(
                suite=suite.name,
                file=file,
                name=name,
                passed=False,
                duration=time.monotonic() - start_time,
                error=f"Test timed out after {suite.timeout} seconds",
                metadata={"exit_code": -1},
            )
        except FileNotFoundError:
            return TestResult(
                suite=suite.name,
                file=file,
                name=name,
                passed=False,
                duration=time.monotonic() - start_time,
                error=f"Executable not found: {argv[0]}",
                metadata={"exit_code": -1},
            )
        except OSError as e:
            return TestResult(
                suite=suite.name,
                file=file,
                name=name,
                passed=False,
                duration=time.monotonic() - start_time,
                error=f"OS error running test: {e}",
                metadata={"exit_code": -1},
            )

        passed = proc.returncode == 0
        error = None
        if not passed:
            error = proc.stderr.strip() or f"Exited with code {proc.returncode}"
        return TestResult(
            suite=suite.name,
            file=file,
            name=name,
            passed=passed,
            duration=time.monotonic() - start_time,
            error=error,
            metadata={
                "exit_code": proc.returncode,
                "stdout": proc.stdout,
                "stderr": proc.stderr,
            },
        )
