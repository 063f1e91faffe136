"""Configuration file management.

Reads the optional ``.ft_config`` JSON file holding defaults for the
command line: report location, reporter sink path, concurrency and the
flutter executable.  Command-line flags override these values.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path(".ft_config")

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "output": "build/test_report.yaml",
    "temp_output": "build/test_report.output",
    "concurrency": None,
    "flutter_executable": "flutter",
    "timeout": None,
}


class FtConfig:
    """Manages the ``.ft_config`` JSON configuration file."""

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

    @property
    def output(self) -> Path:
        """Path of the YAML report."""
        return Path(self._data.get("output") or DEFAULT_CONFIG["output"])

    @property
    def temp_output(self) -> Path:
        """Reporter sink path, relative to each project directory."""
        return Path(
            self._data.get("temp_output") or DEFAULT_CONFIG["temp_output"]
        )

    @property
    def concurrency(self) -> int | None:
        """Value for ``flutter test -j`` (None = flutter's default)."""
        val = self._data.get("concurrency", DEFAULT_CONFIG["concurrency"])
        return int(val) if val is not None else None

    @property
    def flutter_executable(self) -> str:
        return str(
            self._data.get("flutter_executable")
            or DEFAULT_CONFIG["flutter_executable"]
        )

    @property
    def timeout(self) -> float | None:
        """Seconds before the flutter process is killed (None = no limit)."""
        val = self._data.get("timeout", DEFAULT_CONFIG["timeout"])
        return float(val) if val is not None else None
