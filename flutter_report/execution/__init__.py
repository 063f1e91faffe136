"""Flutter process invocation."""

from flutter_report.execution.runner import (
    FlutterRun,
    MissingOutputError,
    build_flutter_args,
    collect_results,
    run_flutter_test,
)

__all__ = [
    "FlutterRun",
    "MissingOutputError",
    "build_flutter_args",
    "collect_results",
    "run_flutter_test",
]
