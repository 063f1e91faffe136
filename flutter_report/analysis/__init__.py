"""Event stream analysis: decoding, tree reconstruction, and categorization."""

from flutter_report.analysis.categorize import (
    Categories,
    analyze_projects,
    categorize_file,
    categorize_tests,
    merge_categories,
)
from flutter_report.analysis.events import MalformedEventError, decode_event, read_events
from flutter_report.analysis.tree import (
    UNKNOWN_DURATION,
    GroupNode,
    SuiteNode,
    TestNode,
    TestTree,
    analyze_test_results,
    build_tree,
)

__all__ = [
    "UNKNOWN_DURATION",
    "Categories",
    "GroupNode",
    "MalformedEventError",
    "SuiteNode",
    "TestNode",
    "TestTree",
    "analyze_projects",
    "analyze_test_results",
    "build_tree",
    "categorize_file",
    "categorize_tests",
    "decode_event",
    "merge_categories",
    "read_events",
]
