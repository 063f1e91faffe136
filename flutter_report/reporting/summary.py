"""Project failed and skipped tests into a flat report record.

Each entry points at the test's source file and position, plus the BDD
``.feature`` file that sits next to the test file when one exists.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse
from urllib.request import url2pathname

from flutter_report.analysis.tree import TestNode

# Naming convention linking a test file to its companion feature file
TEST_FILE_SUFFIX = "_test.dart"
FEATURE_FILE_SUFFIX = ".feature"


@dataclass
class ErrorEntry:
    error: str
    stack_trace: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "stackTrace": self.stack_trace}


@dataclass
class FailedTestEntry:
    file: str | None
    line: int | None
    column: int | None
    feature: str | None
    name: str
    messages: str
    errors: list[ErrorEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "feature": self.feature,
            "name": self.name,
            "messages": self.messages,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class SkippedTestEntry:
    file: str | None
    line: int | None
    column: int | None
    feature: str | None
    name: str
    reason: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "feature": self.feature,
            "name": self.name,
            "reason": self.reason,
        }


@dataclass
class TestSummary:
    """Failure and skip report for one run.

    The counts are derived from the entry lists and cannot drift from them.
    """

    failed: list[FailedTestEntry] = field(default_factory=list)
    skipped: list[SkippedTestEntry] = field(default_factory=list)

    @property
    def failed_test_count(self) -> int:
        return len(self.failed)

    @property
    def skipped_test_count(self) -> int:
        return len(self.skipped)

    @property
    def has_entries(self) -> bool:
        """True if the report has anything worth writing."""
        return bool(self.failed or self.skipped)

    def to_dict(self) -> dict[str, Any]:
        """Serialization-ready dict in report key order."""
        return {
            "failedTestCount": self.failed_test_count,
            "failed": [e.to_dict() for e in self.failed],
            "skippedTestCount": self.skipped_test_count,
            "skipped": [e.to_dict() for e in self.skipped],
        }


def url_to_filepath(url: str | None) -> str | None:
    """Convert a ``file:`` URL to a filesystem path.

    Strings without the ``file`` scheme are returned unchanged, so plain
    paths can be passed through.
    """
    if not url:
        return url
    parsed = urlparse(url)
    if parsed.scheme != "file":
        return url
    return url2pathname(parsed.path)


def feature_file(test_file: str | None) -> str | None:
    """Return the companion feature file of *test_file* if it exists.

    ``foo_test.dart`` maps to ``foo.feature`` in the same directory.
    Files not following the test naming convention have no feature file.
    """
    if not test_file or not test_file.endswith(TEST_FILE_SUFFIX):
        return None
    candidate = test_file[: -len(TEST_FILE_SUFFIX)] + FEATURE_FILE_SUFFIX
    return candidate if Path(candidate).exists() else None


def source_file(test: TestNode) -> str | None:
    """Filesystem path of the file declaring *test*.

    The root url wins; otherwise the owning suite's path is used.
    """
    if test.root_url is not None:
        return url_to_filepath(test.root_url)
    if test.suite is None:
        return None
    return url_to_filepath(test.suite.path)


def _failed_entry(test: TestNode) -> FailedTestEntry:
    path = source_file(test)
    return FailedTestEntry(
        file=path,
        line=test.source_line,
        column=test.source_column,
        feature=feature_file(path),
        name=test.name,
        messages="\n".join(test.prints),
        errors=[
            ErrorEntry(error=e.error, stack_trace=e.stack_trace)
            for e in test.errors
        ],
    )


def _skipped_entry(test: TestNode) -> SkippedTestEntry:
    path = source_file(test)
    return SkippedTestEntry(
        file=path,
        line=test.source_line,
        column=test.source_column,
        feature=feature_file(path),
        name=test.name,
        reason=test.skip_reason,
    )


def generate_test_summary(
    failed_tests: list[TestNode],
    skipped_tests: list[TestNode],
) -> TestSummary:
    """Build the report for the given failed and skipped tests.

    Args:
        failed_tests: Tests categorized as failed, in report order.
        skipped_tests: Tests categorized as skipped, in report order.

    Returns:
        TestSummary with one entry per test.
    """
    return TestSummary(
        failed=[_failed_entry(t) for t in failed_tests],
        skipped=[_skipped_entry(t) for t in skipped_tests],
    )
