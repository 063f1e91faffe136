"""Console summary and YAML report output."""

from __future__ import annotations

import sys
from pathlib import Path

import yaml

from flutter_report.analysis.categorize import Categories
from flutter_report.reporting.summary import TestSummary

# Long stack traces and messages stay on one line
YAML_LINE_WIDTH = 1024


def format_duration(seconds: float) -> str:
    """Format a run duration as ``"M mins S sec"``.

    Negative values mean the runner never reported a duration.
    """
    if seconds < 0:
        return "unknown"
    return f"{int(seconds // 60)} mins {int(seconds % 60)} sec"


def print_test_results(categories: Categories) -> None:
    """Print test counts and total duration to stderr."""
    print(f"All tests: {categories.total}", file=sys.stderr)
    print(f"Succeeded tests: {len(categories.succeeded)}", file=sys.stderr)
    print(f"Failed tests: {len(categories.failed)}", file=sys.stderr)
    print(f"Skipped tests: {len(categories.skipped)}", file=sys.stderr)
    if categories.incomplete:
        print(
            f"Incomplete tests: {len(categories.incomplete)} "
            "(started but never finished, not reported)",
            file=sys.stderr,
        )
    print(
        f"Total duration: {format_duration(categories.duration_seconds)}",
        file=sys.stderr,
    )


def write_yaml(summary: TestSummary, path: Path) -> None:
    """Write *summary* as YAML, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(
            summary.to_dict(),
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            width=YAML_LINE_WIDTH,
        )


def save_test_report(summary: TestSummary, path: Path) -> bool:
    """Write the report only if there are failed or skipped tests.

    Returns:
        True if the report file was written.
    """
    if not summary.has_entries:
        return False
    write_yaml(summary, path)
    print(f"Test report is saved to {path}", file=sys.stderr)
    return True
