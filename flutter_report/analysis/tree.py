"""Reconstruct the suite/group/test hierarchy from reporter events.

The JSON reporter only emits flat events linked by integer ids.  A
``TestTree`` keeps a registry of every suite, group and test seen so far,
keyed by id, and wires parent/child links as soon as they can be resolved.

Lookups are lenient: an event that references an unknown id, or an id of
the wrong kind, is dropped without error.  The protocol does not promise
that every referenced id was announced earlier, and one dangling reference
must not abort an otherwise valid run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Union

from flutter_report.analysis.events import (
    DoneEvent,
    ErrorEvent,
    Event,
    GroupEvent,
    Metadata,
    PrintEvent,
    SuiteEvent,
    TestDoneEvent,
    TestStartEvent,
    read_events,
)

# Duration reported when the stream has no ``done`` event
UNKNOWN_DURATION = -1.0


@dataclass
class SuiteNode:
    """One executed test file."""

    id: int
    platform: str | None
    path: str | None
    children: list[GroupNode] = field(default_factory=list)


@dataclass
class GroupNode:
    """A ``group()`` block, attached to its suite or enclosing group."""

    id: int
    suite_id: int
    parent_id: int | None
    name: str
    metadata: Metadata
    test_count: int | None = None
    line: int | None = None
    column: int | None = None
    url: str | None = None
    parent: SuiteNode | GroupNode | None = field(
        default=None, repr=False, compare=False,
    )
    children: list[GroupNode] = field(default_factory=list)


@dataclass
class TestOutcome:
    """Terminal state of a test, taken from its ``testDone`` event."""

    result: str
    skipped: bool
    hidden: bool = False
    time: float = 0

    @property
    def is_failure(self) -> bool:
        return self.result in ("error", "failure")


@dataclass
class TestError:
    error: str
    stack_trace: str
    is_failure: bool = False


@dataclass
class TestNode:
    """A single test case with its accumulated output and outcome."""

    id: int
    name: str
    suite_id: int
    group_ids: tuple[int, ...]
    metadata: Metadata
    line: int | None = None
    column: int | None = None
    url: str | None = None
    root_line: int | None = None
    root_column: int | None = None
    root_url: str | None = None
    suite: SuiteNode | None = field(default=None, repr=False, compare=False)
    groups: list[GroupNode] = field(default_factory=list)
    prints: list[str] = field(default_factory=list)
    errors: list[TestError] = field(default_factory=list)
    outcome: TestOutcome | None = None

    # Root location, when reported, is the real declaration site and wins
    # over the (possibly synthetic) plain location.
    @property
    def source_line(self) -> int | None:
        return self.root_line if self.root_line is not None else self.line

    @property
    def source_column(self) -> int | None:
        return self.root_column if self.root_column is not None else self.column

    @property
    def source_url(self) -> str | None:
        return self.root_url if self.root_url is not None else self.url

    @property
    def skip_reason(self) -> str | None:
        return self.metadata.skip_reason


Node = Union[SuiteNode, GroupNode, TestNode]


class TestTree:
    """Registry of suites, groups and tests built from one event stream.

    Events must be applied in arrival order: later events refer to ids
    created by earlier ones.  The registry is append-only and is not
    safe for concurrent mutation.
    """

    def __init__(self) -> None:
        self.nodes: dict[int, Node] = {}
        self.duration_seconds: float = UNKNOWN_DURATION

    def apply(self, event: Event) -> None:
        """Fold one event into the registry."""
        if isinstance(event, SuiteEvent):
            self._add_suite(event)
        elif isinstance(event, GroupEvent):
            self._add_group(event)
        elif isinstance(event, TestStartEvent):
            self._add_test(event)
        elif isinstance(event, TestDoneEvent):
            test = self.get_test(event.test_id)
            if test is not None:
                test.outcome = TestOutcome(
                    result=event.result,
                    skipped=event.skipped,
                    hidden=event.hidden,
                    time=event.time,
                )
        elif isinstance(event, PrintEvent):
            test = self.get_test(event.test_id)
            if test is not None:
                test.prints.append(event.message)
        elif isinstance(event, ErrorEvent):
            test = self.get_test(event.test_id)
            if test is not None:
                test.errors.append(TestError(
                    error=event.error,
                    stack_trace=event.stack_trace,
                    is_failure=event.is_failure,
                ))
        elif isinstance(event, DoneEvent):
            self.duration_seconds = event.time / 1000
        # start, allSuites and unknown kinds carry no tree information

    def get_test(self, node_id: int) -> TestNode | None:
        """Return the test registered under *node_id*, or None."""
        node = self.nodes.get(node_id)
        return node if isinstance(node, TestNode) else None

    def get_group(self, node_id: int) -> GroupNode | None:
        """Return the group registered under *node_id*, or None."""
        node = self.nodes.get(node_id)
        return node if isinstance(node, GroupNode) else None

    def tests(self) -> Iterator[TestNode]:
        """Yield every test in registry (first-seen) order."""
        for node in self.nodes.values():
            if isinstance(node, TestNode):
                yield node

    def _add_suite(self, event: SuiteEvent) -> None:
        self.nodes[event.id] = SuiteNode(
            id=event.id, platform=event.platform, path=event.path,
        )

    def _add_group(self, event: GroupEvent) -> None:
        group = GroupNode(
            id=event.id,
            suite_id=event.suite_id,
            parent_id=event.parent_id,
            name=event.name,
            metadata=event.metadata,
            test_count=event.test_count,
            line=event.line,
            column=event.column,
            url=event.url,
        )
        self.nodes[event.id] = group

        parent_key = event.parent_id if event.parent_id is not None else event.suite_id
        parent = self.nodes.get(parent_key)
        if isinstance(parent, (SuiteNode, GroupNode)) and parent is not group:
            group.parent = parent
            parent.children.append(group)

    def _add_test(self, event: TestStartEvent) -> None:
        suite = self.nodes.get(event.suite_id)
        test = TestNode(
            id=event.id,
            name=event.name,
            suite_id=event.suite_id,
            group_ids=event.group_ids,
            metadata=event.metadata,
            line=event.line,
            column=event.column,
            url=event.url,
            root_line=event.root_line,
            root_column=event.root_column,
            root_url=event.root_url,
            suite=suite if isinstance(suite, SuiteNode) else None,
        )
        self.nodes[event.id] = test
        for group_id in event.group_ids:
            group = self.get_group(group_id)
            if group is not None:
                test.groups.append(group)


def build_tree(events: Iterable[Event]) -> TestTree:
    """Fold *events* into a fresh ``TestTree``."""
    tree = TestTree()
    for event in events:
        tree.apply(event)
    return tree


def analyze_test_results(path: Path) -> TestTree:
    """Build the tree for a reporter output file.

    Raises:
        MalformedEventError: If any line of the file cannot be decoded.
        OSError: If the file cannot be read.
    """
    return build_tree(read_events(path))
