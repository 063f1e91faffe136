"""Test categorization and multi-stream aggregation.

Partitions the tests of a ``TestTree`` into succeeded, failed and skipped
by their outcome, and merges the categories of several independent
streams (one per project) into one.
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path

from flutter_report.analysis.tree import (
    UNKNOWN_DURATION,
    TestNode,
    TestTree,
    analyze_test_results,
)


@dataclass
class Categories:
    """Tests of one or more streams grouped by outcome.

    ``incomplete`` holds tests that started but never reported a
    ``testDone`` event.  They are not part of the report.
    """

    succeeded: list[TestNode] = field(default_factory=list)
    failed: list[TestNode] = field(default_factory=list)
    skipped: list[TestNode] = field(default_factory=list)
    incomplete: list[TestNode] = field(default_factory=list)
    duration_seconds: float = UNKNOWN_DURATION

    @property
    def total(self) -> int:
        """Number of completed tests."""
        return len(self.succeeded) + len(self.failed) + len(self.skipped)


def categorize_tests(tree: TestTree) -> Categories:
    """Classify every test of *tree* in registry order.

    An ``error`` or ``failure`` result always counts as failed, even when
    the outcome is also flagged as skipped.  Otherwise a skipped outcome is
    skipped and anything else succeeded.

    Args:
        tree: Fully built tree for one stream.

    Returns:
        Categories carrying the stream's duration.
    """
    categories = Categories(duration_seconds=tree.duration_seconds)
    for test in tree.tests():
        outcome = test.outcome
        if outcome is None:
            categories.incomplete.append(test)
        elif outcome.is_failure:
            categories.failed.append(test)
        elif outcome.skipped:
            categories.skipped.append(test)
        else:
            categories.succeeded.append(test)
    return categories


def merge_categories(results: list[Categories]) -> Categories:
    """Concatenate per-stream categories in the given order.

    Durations are summed over the streams that reported one.  Merging no
    streams gives an empty result with zero duration; if every stream's
    duration is unknown the merged duration is unknown too.  Tests are not
    de-duplicated: streams are assumed to be disjoint.
    """
    merged = Categories(duration_seconds=0.0)
    known = [r.duration_seconds for r in results if r.duration_seconds >= 0]
    if results and not known:
        merged.duration_seconds = UNKNOWN_DURATION
    else:
        merged.duration_seconds = sum(known)

    for result in results:
        merged.succeeded.extend(result.succeeded)
        merged.failed.extend(result.failed)
        merged.skipped.extend(result.skipped)
        merged.incomplete.extend(result.incomplete)
    return merged


def categorize_file(path: Path) -> Categories:
    """Build and categorize the tree for one reporter output file.

    A missing file yields empty categories with unknown duration.
    """
    if not path.exists():
        print(f"Warning: no test result at {path}", file=sys.stderr)
        return Categories()
    return categorize_tests(analyze_test_results(path))


def analyze_projects(paths: list[Path]) -> Categories:
    """Categorize several reporter outputs concurrently and merge them.

    Each file is folded on the default thread pool; the merge waits for all
    of them and keeps the order of *paths*.

    Raises:
        MalformedEventError: If any of the files contains a malformed line.
    """
    return asyncio.run(_analyze_projects_async(paths))


async def _analyze_projects_async(paths: list[Path]) -> Categories:
    loop = asyncio.get_running_loop()
    results = await asyncio.gather(*(
        loop.run_in_executor(None, categorize_file, path) for path in paths
    ))
    return merge_categories(list(results))
