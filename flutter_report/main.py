"""Entry point for ``ft``: run flutter tests and generate a report.

Runs ``flutter test`` with a JSON file reporter in one or more project
directories, rebuilds the suite/group/test tree from the event stream, and
writes a YAML report of failed and skipped tests.  The report is only
written when there is something to report.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterator

from flutter_report.analysis.categorize import (
    Categories,
    analyze_projects,
    categorize_file,
    merge_categories,
)
from flutter_report.analysis.events import MalformedEventError
from flutter_report.config import DEFAULT_CONFIG_PATH, FtConfig
from flutter_report.execution.runner import (
    FlutterRun,
    MissingOutputError,
    build_flutter_args,
    collect_results,
    run_flutter_test,
)
from flutter_report.reporting.reporter import print_test_results, save_test_report
from flutter_report.reporting.summary import generate_test_summary

EPILOG = """\
examples:
  ft -j 4 -o build/test_report.yaml -- --timeout 60s
      Run with concurrency 4 and a 60 second timeout per test.
  ft -ug -- test/path/to/flutter_test.dart
      Run with `--tags golden --update-goldens` for one test file.
  ft --project packages/a --project packages/b
      Run in two projects and merge their results into one report.
"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="ft",
        description="Run flutter tests and generate a report.",
        usage="%(prog)s [options] -- [flutter args]",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-j", "--concurrency",
        type=int,
        default=None,
        help="Number of concurrent test processes passed to flutter (-j)",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Path to write the YAML report (default: build/test_report.yaml)",
    )
    parser.add_argument(
        "-u", "--update-goldens",
        action="store_true",
        default=False,
        help="Update golden files",
    )
    golden = parser.add_mutually_exclusive_group()
    golden.add_argument(
        "-g", "--golden",
        dest="golden",
        action="store_true",
        default=None,
        help="Add `--tags golden` to flutter test",
    )
    golden.add_argument(
        "--no-golden",
        dest="golden",
        action="store_false",
        default=None,
        help="Add `--exclude-tags golden` to flutter test",
    )
    parser.add_argument(
        "--project",
        type=Path,
        action="append",
        default=None,
        help="Project directory to run tests in (repeatable; default: .)",
    )
    parser.add_argument(
        "--debug-parse",
        type=Path,
        action="append",
        default=None,
        metavar="FILE",
        help="Parse an existing reporter output file instead of running flutter",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="Path to the JSON config file (default: .ft_config)",
    )
    parser.add_argument(
        "flutter_args",
        nargs="*",
        help="Raw arguments passed to flutter test (after --)",
    )
    return parser.parse_args(argv)


def _combined_exit_code(runs: list[FlutterRun]) -> int:
    """Largest exit code over all runs; runs without a status count as 1."""
    codes = [
        1 if r.exit_code is None or r.exit_code < 0 else r.exit_code
        for r in runs
    ]
    return max(codes, default=0)


def _run_flutter(
    args: argparse.Namespace, config: FtConfig, projects: list[Path],
) -> Iterator[FlutterRun]:
    """Run flutter in every project directory, one after another.

    Runs are yielded as they finish so that each reporter output can be
    read before the next run overwrites a shared sink.
    """
    concurrency = (
        args.concurrency if args.concurrency is not None else config.concurrency
    )
    if concurrency is not None:
        print(f"Run with {concurrency} concurrency.", file=sys.stderr)

    sink = config.temp_output
    flutter_args = build_flutter_args(
        sink,
        concurrency=concurrency,
        update_goldens=args.update_goldens,
        golden=args.golden,
        extra_args=args.flutter_args,
    )

    if len(projects) > 1:
        print(f"Running tests for {len(projects)} projects.", file=sys.stderr)

    for project in projects:
        yield run_flutter_test(
            project,
            sink,
            flutter_args,
            executable=config.flutter_executable,
            timeout=config.timeout,
        )


def _collect(run: FlutterRun, single: bool) -> Categories:
    """Categorize the reporter output of one finished run.

    Raises:
        MissingOutputError: Single project only, if no output appeared.
        MalformedEventError: If the reporter output is malformed.
    """
    if single:
        return collect_results(run)
    # A project without output contributes nothing; the others still count
    return categorize_file(run.output_path)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = FtConfig(args.config_file or DEFAULT_CONFIG_PATH)
    output: Path = args.output or config.output

    exit_code = 0
    try:
        if args.debug_parse:
            missing = [p for p in args.debug_parse if not p.exists()]
            if missing:
                print(
                    f"Error: Reporter output not found: {missing[0]}",
                    file=sys.stderr,
                )
                return 1
            categories = analyze_projects(args.debug_parse)
        else:
            output.unlink(missing_ok=True)
            projects: list[Path] = args.project or [Path(".")]
            runs: list[FlutterRun] = []
            results: list[Categories] = []
            for run in _run_flutter(args, config, projects):
                runs.append(run)
                exit_code = _combined_exit_code(runs)
                results.append(_collect(run, single=len(projects) == 1))
            categories = merge_categories(results)
    except MissingOutputError:
        print("There was no test result", file=sys.stderr)
        return exit_code or 1
    except MalformedEventError as e:
        print(f"Error: Invalid test result: {e}", file=sys.stderr)
        return exit_code or 1

    print_test_results(categories)
    summary = generate_test_summary(categories.failed, categories.skipped)
    save_test_report(summary, output)

    if exit_code:
        print("Test failed", file=sys.stderr)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
