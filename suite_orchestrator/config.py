"""Orchestrator configuration file management.

Reads and writes the JSON configuration file that stores default
execution parameters. Command-line flags override these values.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from suite_orchestrator.execution.orchestrator import OrchestrationOptions
from suite_orchestrator.lifecycle.quarantine import DEFAULT_FAILURE_THRESHOLD

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "concurrency": 4,
    "shard_count": 4,
    "continue_on_error": True,
    "enable_cache": False,
    "failure_threshold": DEFAULT_FAILURE_THRESHOLD,
}


class OrchestratorConfig:
    """Manages the orchestrator JSON configuration file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    def save(self) -> None:
        """Write config to the file."""
        if self.path is None:
            raise ValueError("No config file path specified")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
            f.write("\n")

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    @property
    def concurrency(self) -> int:
        """Get the maximum number of concurrently running test files."""
        return int(self._data.get("concurrency", DEFAULT_CONFIG["concurrency"]))

    @property
    def shard_count(self) -> int:
        """Get the default number of shards."""
        return int(self._data.get("shard_count", DEFAULT_CONFIG["shard_count"]))

    @property
    def continue_on_error(self) -> bool:
        return bool(
            self._data.get("continue_on_error", DEFAULT_CONFIG["continue_on_error"])
        )

    @property
    def enable_cache(self) -> bool:
        return bool(self._data.get("enable_cache", DEFAULT_CONFIG["enable_cache"]))

    @property
    def failure_threshold(self) -> int:
        """Get the failure count at which a test is quarantined."""
        return int(
            self._data.get("failure_threshold", DEFAULT_CONFIG["failure_threshold"])
        )

    def set_config(
        self,
        concurrency: int | None = None,
        shard_count: int | None = None,
        continue_on_error: bool | None = None,
        enable_cache: bool | None = None,
        failure_threshold: int | None = None,
    ) -> None:
        """Update configuration values."""
        updates = {
            "concurrency": concurrency,
            "shard_count": shard_count,
            "continue_on_error": continue_on_error,
            "enable_cache": enable_cache,
            "failure_threshold": failure_threshold,
        }
        for key, value in updates.items():
            if value is not None:
                self._data[key] = value

    def to_options(self, **overrides: Any) -> OrchestrationOptions:
        """Build OrchestrationOptions from the config.

        Keyword overrides whose value is None are ignored, so unset CLI
        flags fall through to the config values.
        """
        values: dict[str, Any] = {
            "concurrency": self.concurrency,
            "shard_count": self.shard_count,
            "continue_on_error": self.continue_on_error,
            "enable_cache": self.enable_cache,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return OrchestrationOptions(**values)
