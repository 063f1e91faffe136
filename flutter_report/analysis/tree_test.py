"""Unit tests for rebuilding the test tree from reporter events."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest

from flutter_report.analysis.events import (
    DoneEvent,
    ErrorEvent,
    GroupEvent,
    IgnoredEvent,
    MalformedEventError,
    Metadata,
    PrintEvent,
    StartEvent,
    SuiteEvent,
    TestDoneEvent,
    TestStartEvent,
)
from flutter_report.analysis.tree import (
    UNKNOWN_DURATION,
    GroupNode,
    SuiteNode,
    TestNode,
    TestTree,
    analyze_test_results,
    build_tree,
)


def _suite(id: int = 1, path: str = "/app/test/a_test.dart") -> SuiteEvent:
    return SuiteEvent(id=id, platform="vm", path=path)


def _group(id: int, suite_id: int = 1, parent_id: int | None = None,
           name: str = "group") -> GroupEvent:
    return GroupEvent(
        id=id, suite_id=suite_id, parent_id=parent_id, name=name,
        metadata=Metadata(), test_count=1,
    )


def _test(id: int, name: str = "t", suite_id: int = 1,
          group_ids: tuple[int, ...] = (), **kwargs) -> TestStartEvent:
    return TestStartEvent(
        id=id, name=name, suite_id=suite_id, group_ids=group_ids,
        metadata=kwargs.pop("metadata", Metadata()), **kwargs,
    )


def _done(test_id: int, result: str = "success", skipped: bool = False) -> TestDoneEvent:
    return TestDoneEvent(test_id=test_id, result=result, skipped=skipped)


def _sample_events() -> list:
    return [
        StartEvent(protocol_version="0.1.1", runner_version=None, pid=1),
        _suite(1),
        _group(2, parent_id=None, name=""),
        _group(3, parent_id=2, name="login"),
        _test(10, "t1", group_ids=(2, 3), line=4, column=5),
        PrintEvent(test_id=10, message="first"),
        PrintEvent(test_id=10, message="second"),
        ErrorEvent(test_id=10, error="boom", stack_trace="#0"),
        _done(10, "failure"),
        _test(11, "t2", group_ids=(2,)),
        _done(11),
        DoneEvent(success=False, time=2500),
    ]


class TestSuitesAndGroups:
    """Tests for suite creation and group attachment."""

    def test_suite_created_with_no_children(self):
        """A suite event registers an empty suite."""
        tree = build_tree([_suite(1)])
        suite = tree.nodes[1]
        assert isinstance(suite, SuiteNode)
        assert suite.path == "/app/test/a_test.dart"
        assert suite.children == []

    def test_root_group_attaches_to_suite(self):
        """A group without parentID attaches to its owning suite."""
        tree = build_tree([_suite(1), _group(2)])
        suite, group = tree.nodes[1], tree.nodes[2]
        assert group.parent is suite
        assert suite.children == [group]

    def test_nested_group_attaches_to_parent_group(self):
        """A group with parentID attaches to that group, not the suite."""
        tree = build_tree([_suite(1), _group(2), _group(3, parent_id=2)])
        suite, outer, inner = tree.nodes[1], tree.nodes[2], tree.nodes[3]
        assert inner.parent is outer
        assert outer.children == [inner]
        assert suite.children == [outer]

    def test_children_keep_first_seen_order(self):
        """Sibling groups are kept in discovery order."""
        tree = build_tree([
            _suite(1), _group(2), _group(5, parent_id=2, name="b"),
            _group(4, parent_id=2, name="a"),
        ])
        assert [c.name for c in tree.nodes[2].children] == ["b", "a"]

    def test_group_with_unknown_parent_is_orphaned(self):
        """A group whose parent id is unknown is registered but unattached."""
        tree = build_tree([_suite(1), _group(3, parent_id=99)])
        group = tree.nodes[3]
        assert isinstance(group, GroupNode)
        assert group.parent is None
        assert tree.nodes[1].children == []

    def test_group_with_unknown_suite_is_orphaned(self):
        """A root group referencing an unknown suite stays unattached."""
        tree = build_tree([_group(2, suite_id=7)])
        assert tree.nodes[2].parent is None

    def test_group_parent_of_wrong_kind_is_ignored(self):
        """A parent id that names a test does not become a parent."""
        tree = build_tree([_suite(1), _test(10), _group(3, parent_id=10)])
        assert tree.nodes[3].parent is None


class TestTests:
    """Tests for test creation and event attachment."""

    def test_test_resolves_suite_and_groups(self):
        """testStart links the suite and every known group."""
        tree = build_tree([_suite(1), _group(2), _test(10, group_ids=(2,))])
        test = tree.nodes[10]
        assert isinstance(test, TestNode)
        assert test.suite is tree.nodes[1]
        assert test.groups == [tree.nodes[2]]
        assert test.outcome is None
        assert test.prints == []
        assert test.errors == []

    def test_unknown_and_wrong_kind_group_ids_skipped(self):
        """Only ids that resolve to groups are kept as parents."""
        tree = build_tree([
            _suite(1), _group(2), _test(10),
            _test(11, group_ids=(2, 99, 1, 10)),
        ])
        assert tree.nodes[11].groups == [tree.nodes[2]]

    def test_missing_suite_is_tolerated(self):
        """A test whose suite is unknown has no suite reference."""
        tree = build_tree([_test(10, suite_id=42)])
        assert tree.nodes[10].suite is None

    def test_tests_are_not_suite_children(self):
        """Suite children only hold groups."""
        tree = build_tree([_suite(1), _group(2), _test(10, group_ids=(2,))])
        assert tree.nodes[1].children == [tree.nodes[2]]
        assert tree.nodes[2].children == []

    def test_done_attaches_outcome(self):
        """testDone attaches the outcome to its test."""
        tree = build_tree([_suite(1), _test(10), _done(10, "error", skipped=True)])
        outcome = tree.nodes[10].outcome
        assert outcome.result == "error"
        assert outcome.skipped is True
        assert outcome.is_failure

    def test_prints_and_errors_accumulate_in_order(self):
        """print and error events append in arrival order."""
        tree = build_tree(_sample_events())
        test = tree.nodes[10]
        assert test.prints == ["first", "second"]
        assert [e.error for e in test.errors] == ["boom"]
        assert test.errors[0].stack_trace == "#0"

    def test_root_location_wins(self):
        """source_* properties prefer root values."""
        tree = build_tree([_test(
            10, line=100, column=2, url="package:wrapper.dart",
            root_line=7, root_column=3, root_url="file:///app/test/x_test.dart",
        )])
        test = tree.nodes[10]
        assert test.source_line == 7
        assert test.source_column == 3
        assert test.source_url == "file:///app/test/x_test.dart"

    def test_plain_location_used_without_root(self):
        """source_* properties fall back to plain values."""
        tree = build_tree([_test(10, line=100, column=2, url="file:///a.dart")])
        test = tree.nodes[10]
        assert (test.source_line, test.source_column) == (100, 2)
        assert test.source_url == "file:///a.dart"

    def test_root_line_zero_still_wins(self):
        """A root value of 0 is present, not absent."""
        tree = build_tree([_test(10, line=100, root_line=0)])
        assert tree.nodes[10].source_line == 0


class TestDanglingReferences:
    """Tests that unknown ids are absorbed without side effects."""

    def test_print_before_test_start_is_dropped(self):
        """A print for an unknown test raises nothing and creates nothing."""
        tree = build_tree([PrintEvent(test_id=999, message="lost")])
        assert tree.nodes == {}

    def test_dangling_events_do_not_alter_existing_nodes(self):
        """Events for unknown ids leave the tree as if they never arrived."""
        base = _sample_events()
        noisy = list(base)
        noisy.insert(5, PrintEvent(test_id=999, message="x"))
        noisy.insert(6, ErrorEvent(test_id=999, error="e", stack_trace=""))
        noisy.insert(7, _done(999, "failure"))
        assert build_tree(noisy).nodes == build_tree(base).nodes

    def test_events_naming_non_tests_are_dropped(self):
        """testDone/print/error naming a suite or group are ignored."""
        tree = build_tree([
            _suite(1), _group(2),
            _done(1, "failure"), PrintEvent(test_id=2, message="m"),
            ErrorEvent(test_id=1, error="e", stack_trace=""),
        ])
        assert tree.nodes[1] == SuiteNode(
            id=1, platform="vm", path="/app/test/a_test.dart",
            children=[tree.nodes[2]],
        )
        assert list(tree.tests()) == []


class TestDuration:
    """Tests for the run duration."""

    def test_unknown_without_done(self):
        """Without a done event the duration is the unknown sentinel."""
        tree = build_tree([_suite(1)])
        assert tree.duration_seconds == UNKNOWN_DURATION

    def test_done_converts_milliseconds(self):
        """done time is converted to seconds."""
        tree = build_tree([DoneEvent(success=True, time=1500)])
        assert tree.duration_seconds == 1.5

    def test_fractional_milliseconds_are_kept(self):
        """Sub-millisecond precision survives the conversion."""
        tree = build_tree([DoneEvent(success=True, time=1500.5)])
        assert tree.duration_seconds == pytest.approx(1.5005)

    def test_last_done_wins(self):
        """Multiple done events: the last one wins."""
        tree = build_tree([
            DoneEvent(success=True, time=1000),
            DoneEvent(success=True, time=3000),
        ])
        assert tree.duration_seconds == 3.0

    def test_ignored_events_have_no_effect(self):
        """Unknown event kinds change nothing."""
        tree = build_tree([_suite(1), IgnoredEvent(type="debug")])
        assert list(tree.nodes) == [1]
        assert tree.duration_seconds == UNKNOWN_DURATION


class TestDeterminism:
    """Tests that building is free of hidden state."""

    def test_same_events_build_identical_trees(self):
        """Two fresh trees from the same events are equal."""
        first = build_tree(_sample_events())
        second = build_tree(_sample_events())
        assert first.nodes == second.nodes
        assert list(first.nodes) == list(second.nodes)
        assert first.duration_seconds == second.duration_seconds

    def test_tests_in_registry_order(self):
        """tests() yields in first-seen order."""
        tree = build_tree(_sample_events())
        assert [t.name for t in tree.tests()] == ["t1", "t2"]


class TestAnalyzeTestResults:
    """Tests for building a tree from a file."""

    def test_reads_file(self):
        """A reporter file is folded into a tree."""
        lines = [
            {"type": "suite", "suite": {"id": 1, "platform": "vm", "path": "a_test.dart"}},
            {"type": "testStart", "test": {"id": 10, "name": "t1", "suiteID": 1, "groupIDs": []}},
            {"type": "testDone", "testID": 10, "result": "success", "skipped": False},
            {"type": "done", "success": True, "time": 1500},
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out.json"
            path.write_text("\n".join(json.dumps(line) for line in lines) + "\n")
            tree = analyze_test_results(path)
        assert isinstance(tree, TestTree)
        assert [t.name for t in tree.tests()] == ["t1"]
        assert tree.duration_seconds == 1.5

    def test_malformed_file_propagates(self):
        """Malformed lines are fatal for the stream."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out.json"
            path.write_text('{"type": "done", "time": 1}\n{oops\n')
            with pytest.raises(MalformedEventError):
                analyze_test_results(path)
