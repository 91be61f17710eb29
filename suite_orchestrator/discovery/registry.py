"""Suite definitions and the registry that stores them.

Provides TestSuite (one named group of test files), RetryPolicy, and
SuiteRegistry (name -> suite lookup with duplicate protection). Suites can
be registered one at a time or loaded from a JSON manifest.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from suite_orchestrator.errors import DuplicateSuiteError


@dataclass(frozen=True)
class RetryPolicy:
    """How often the runner retries a failing file, and how long it waits."""

    attempts: int = 1
    delay: float = 0.0


@dataclass(frozen=True)
class TestSuite:
    """A named group of test files with dependencies and tags."""

    name: str
    files: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    timeout: float | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    # Left out of the hash so suites can live in sets and dict keys
    env: dict[str, str] = field(default_factory=dict, hash=False)
    # argv prefix used by the subprocess runner, e.g. ("python", "-m", "pytest")
    command: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples
        object.__setattr__(self, "files", tuple(self.files))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "command", tuple(self.command))
        object.__setattr__(self, "env", dict(self.env))

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> TestSuite:
        """Build a suite from one manifest entry.

        Unknown keys are ignored for forward compatibility.

        Raises:
            ValueError: If a known key has the wrong type.
        """
        for key in ("files", "dependencies", "tags", "command"):
            value = data.get(key, [])
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"Suite '{name}': '{key}' must be a list of strings")
        for key in ("retry", "env"):
            if not isinstance(data.get(key) or {}, dict):
                raise ValueError(f"Suite '{name}': '{key}' must be a mapping")

        retry_data = data.get("retry") or {}
        timeout = data.get("timeout")
        try:
            return cls(
                name=name,
                files=tuple(data.get("files", [])),
                dependencies=tuple(data.get("dependencies", [])),
                tags=tuple(data.get("tags", [])),
                timeout=float(timeout) if timeout is not None else None,
                retry=RetryPolicy(
                    attempts=int(retry_data.get("attempts", 1)),
                    delay=float(retry_data.get("delay", 0.0)),
                ),
                env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
                command=tuple(data.get("command", [])),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Suite '{name}': {e}") from e


class SuiteRegistry:
    """Stores suite definitions by name.

    Suites are immutable once registered; registering a second suite under
    an existing name raises DuplicateSuiteError.
    """

    def __init__(self, suites: Iterable[TestSuite] = ()) -> None:
        self._suites: dict[str, TestSuite] = {}
        for suite in suites:
            self.register(suite)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> SuiteRegistry:
        """Construct a registry from a parsed manifest.

        Args:
            manifest: Dict with a 'suites' mapping of name -> suite data.

        Returns:
            A populated SuiteRegistry.

        Raises:
            ValueError: If 'suites' is not a mapping or an entry is malformed.
        """
        registry = cls()
        suites = manifest.get("suites", {})
        if not isinstance(suites, dict):
            raise ValueError("Manifest 'suites' must be a mapping of name to suite")

        for name, data in suites.items():
            if not isinstance(data, dict):
                raise ValueError(f"Suite '{name}' must be a mapping")
            registry.register(TestSuite.from_dict(name, data))
        return registry

    @classmethod
    def load(cls, path: Path) -> SuiteRegistry:
        """Load a registry from a JSON manifest file.

        Raises:
            FileNotFoundError: If the manifest does not exist.
            json.JSONDecodeError: If the manifest is not valid JSON.
            ValueError: If the manifest structure is invalid.
        """
        manifest = json.loads(Path(path).read_text())
        if not isinstance(manifest, dict):
            raise ValueError("Manifest must be a JSON object")
        return cls.from_manifest(manifest)

    def register(self, suite: TestSuite) -> None:
        """Register a suite.

        Raises:
            DuplicateSuiteError: If the name is already registered.
        """
        if suite.name in self._suites:
            raise DuplicateSuiteError(suite.name)
        self._suites[suite.name] = suite

    def get(self, name: str) -> TestSuite | None:
        """Look up a suite by name."""
        return self._suites.get(name)

    def suites(self) -> list[TestSuite]:
        """All registered suites in registration order."""
        return list(self._suites.values())

    def names(self) -> list[str]:
        return list(self._suites)

    def __contains__(self, name: object) -> bool:
        return name in self._suites

    def __len__(self) -> int:
        return len(self._suites)
