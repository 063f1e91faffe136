"""Invocation of ``flutter test`` with a JSON file reporter.

Runs the flutter test command in a project directory, directing the
machine-readable event stream to a sink file, and turns that file into
categorized results once the process has exited.
"""

from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from flutter_report.analysis.categorize import Categories, categorize_tests
from flutter_report.analysis.tree import analyze_test_results


class MissingOutputError(RuntimeError):
    """The reporter sink file did not appear after flutter exited."""

    def __init__(self, path: Path, exit_code: int | None) -> None:
        super().__init__(f"There was no test result at {path}")
        self.path = path
        self.exit_code = exit_code


@dataclass
class FlutterRun:
    """Outcome of one ``flutter test`` process."""

    project_dir: Path
    sink: Path
    exit_code: int | None  # None when the process could not run to completion
    error: str = ""

    @property
    def output_path(self) -> Path:
        """Absolute location of the reporter sink."""
        return self.project_dir / self.sink


def build_flutter_args(
    sink: Path,
    concurrency: int | None = None,
    update_goldens: bool = False,
    golden: bool | None = None,
    extra_args: Sequence[str] = (),
) -> list[str]:
    """Build the ``flutter`` argument list (without the executable).

    Args:
        sink: Path the JSON reporter writes to, relative to the project.
        concurrency: Value for ``-j``; omitted when None.
        update_goldens: Add ``--update-goldens``.
        golden: True adds ``--tags golden``, False adds
            ``--exclude-tags golden``, None adds neither.
        extra_args: Raw arguments appended verbatim.

    Returns:
        Argument list starting with ``test``.
    """
    args = ["test"]
    if concurrency is not None:
        args.extend(["-j", str(concurrency)])
    args.append(f"--file-reporter=json:{sink}")
    if update_goldens:
        args.append("--update-goldens")
    if golden is True:
        args.extend(["--tags", "golden"])
    elif golden is False:
        args.extend(["--exclude-tags", "golden"])
    args.extend(extra_args)
    return args


def run_flutter_test(
    project_dir: Path,
    sink: Path,
    args: list[str],
    executable: str = "flutter",
    timeout: float | None = None,
) -> FlutterRun:
    """Run flutter in *project_dir* and wait for it to exit.

    A stale sink from an earlier run is removed first so that a crashed
    process cannot be mistaken for a fresh result.  Test output is not
    captured; it goes straight to the terminal.

    Args:
        project_dir: Working directory of the flutter process.
        sink: Reporter sink path relative to *project_dir* (also embedded
            in *args*).
        args: Arguments from ``build_flutter_args``.
        executable: Name or path of the flutter executable.
        timeout: Seconds before the process is killed (None = no limit).

    Returns:
        FlutterRun with the process exit code.
    """
    output_path = project_dir / sink
    output_path.unlink(missing_ok=True)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        proc = subprocess.run(
            [executable, *args],
            cwd=project_dir,
            timeout=timeout,
        )
        return FlutterRun(
            project_dir=project_dir,
            sink=sink,
            exit_code=proc.returncode,
        )
    except subprocess.TimeoutExpired:
        error = f"flutter test timed out after {timeout} seconds"
    except FileNotFoundError:
        error = f"Executable not found: {executable}"
    except OSError as e:
        error = f"OS error running flutter: {e}"

    print(f"Error: {error}", file=sys.stderr)
    return FlutterRun(
        project_dir=project_dir,
        sink=sink,
        exit_code=None,
        error=error,
    )


def collect_results(run: FlutterRun) -> Categories:
    """Parse and categorize the reporter output of a finished run.

    Raises:
        MissingOutputError: If the sink file does not exist.
        MalformedEventError: If the sink contains an undecodable line.
    """
    if not run.output_path.exists():
        raise MissingOutputError(run.output_path, run.exit_code)
    return categorize_tests(analyze_test_results(run.output_path))
