"""Event model for the Flutter/Dart JSON test reporter protocol.

``flutter test --file-reporter=json:<path>`` writes one JSON object per
line.  Every object carries a ``type`` discriminant selecting one of the
event variants below.  Unknown discriminants decode to ``IgnoredEvent`` so
that newer protocol versions keep working; lines that are not JSON objects
or that lack the fields of their variant raise ``MalformedEventError``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Union


class MalformedEventError(ValueError):
    """A reporter line could not be decoded into an event."""


@dataclass(frozen=True)
class Metadata:
    """Skip metadata attached to groups and tests."""

    skip: bool = False
    skip_reason: str | None = None


@dataclass(frozen=True)
class StartEvent:
    protocol_version: str
    runner_version: str | None
    pid: int | None
    time: float = 0
    type: str = field(default="start", init=False)


@dataclass(frozen=True)
class AllSuitesEvent:
    count: int
    time: float = 0
    type: str = field(default="allSuites", init=False)


@dataclass(frozen=True)
class SuiteEvent:
    id: int
    platform: str | None
    path: str | None
    time: float = 0
    type: str = field(default="suite", init=False)


@dataclass(frozen=True)
class GroupEvent:
    id: int
    suite_id: int
    parent_id: int | None
    name: str
    metadata: Metadata
    test_count: int | None = None
    line: int | None = None
    column: int | None = None
    url: str | None = None
    time: float = 0
    type: str = field(default="group", init=False)


@dataclass(frozen=True)
class TestStartEvent:
    """A test is about to run.

    ``root_line``/``root_column``/``root_url`` are only present when the
    test was declared through a wrapper (e.g. a BDD step library) and point
    at the test's real declaration site.
    """

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
    time: float = 0
    type: str = field(default="testStart", init=False)


@dataclass(frozen=True)
class TestDoneEvent:
    test_id: int
    result: str  # success, error, failure
    skipped: bool
    hidden: bool = False
    time: float = 0
    type: str = field(default="testDone", init=False)


@dataclass(frozen=True)
class PrintEvent:
    test_id: int
    message: str
    message_type: str = "print"
    time: float = 0
    type: str = field(default="print", init=False)


@dataclass(frozen=True)
class ErrorEvent:
    test_id: int
    error: str
    stack_trace: str
    is_failure: bool = False
    time: float = 0
    type: str = field(default="error", init=False)


@dataclass(frozen=True)
class DoneEvent:
    """The whole run finished; ``time`` is milliseconds since start."""

    success: bool | None
    time: float = 0
    type: str = field(default="done", init=False)


@dataclass(frozen=True)
class IgnoredEvent:
    """An event kind this consumer does not interpret (e.g. ``debug``)."""

    type: str
    payload: dict[str, Any] = field(default_factory=dict, compare=False)


Event = Union[
    StartEvent,
    AllSuitesEvent,
    SuiteEvent,
    GroupEvent,
    TestStartEvent,
    TestDoneEvent,
    PrintEvent,
    ErrorEvent,
    DoneEvent,
    IgnoredEvent,
]


def _require(entry: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    """Return ``entry[key]``, raising MalformedEventError if absent or mistyped."""
    if key not in entry:
        raise MalformedEventError(
            f"'{entry.get('type')}' event is missing field '{key}'"
        )
    value = entry[key]
    # bool is a subclass of int; ids and counts must be real integers
    if isinstance(value, bool) and bool not in _as_tuple(kind):
        raise MalformedEventError(
            f"'{entry.get('type')}' event field '{key}' has invalid value {value!r}"
        )
    if not isinstance(value, kind):
        raise MalformedEventError(
            f"'{entry.get('type')}' event field '{key}' has invalid value {value!r}"
        )
    return value


def _optional(entry: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    """Return ``entry[key]`` or None; a present non-null value must match *kind*."""
    if entry.get(key) is None:
        return None
    return _require(entry, key, kind)


def _as_tuple(kind: type | tuple[type, ...]) -> tuple[type, ...]:
    return kind if isinstance(kind, tuple) else (kind,)


def _time(entry: dict[str, Any]) -> float:
    value = _optional(entry, "time", (int, float))
    return value if value is not None else 0


def _metadata(entry: dict[str, Any]) -> Metadata:
    raw = entry.get("metadata")
    if raw is None:
        return Metadata()
    if not isinstance(raw, dict):
        raise MalformedEventError(
            f"'{entry.get('type')}' event field 'metadata' is not an object"
        )
    return Metadata(
        skip=bool(raw.get("skip", False)),
        skip_reason=_optional(raw, "skipReason", str),
    )


def _decode_start(entry: dict[str, Any]) -> StartEvent:
    return StartEvent(
        protocol_version=str(entry.get("protocolVersion", "")),
        runner_version=_optional(entry, "runnerVersion", str),
        pid=_optional(entry, "pid", int),
        time=_time(entry),
    )


def _decode_all_suites(entry: dict[str, Any]) -> AllSuitesEvent:
    return AllSuitesEvent(count=_require(entry, "count", int), time=_time(entry))


def _decode_suite(entry: dict[str, Any]) -> SuiteEvent:
    suite = _require(entry, "suite", dict)
    return SuiteEvent(
        id=_require(suite, "id", int),
        platform=_optional(suite, "platform", str),
        path=_optional(suite, "path", str),
        time=_time(entry),
    )


def _decode_group(entry: dict[str, Any]) -> GroupEvent:
    group = _require(entry, "group", dict)
    return GroupEvent(
        id=_require(group, "id", int),
        suite_id=_require(group, "suiteID", int),
        parent_id=_optional(group, "parentID", int),
        name=str(group.get("name") or ""),
        metadata=_metadata(group),
        test_count=_optional(group, "testCount", int),
        line=_optional(group, "line", int),
        column=_optional(group, "column", int),
        url=_optional(group, "url", str),
        time=_time(entry),
    )


def _decode_test_start(entry: dict[str, Any]) -> TestStartEvent:
    test = _require(entry, "test", dict)
    group_ids = test.get("groupIDs") or []
    if not isinstance(group_ids, list) or not all(
        isinstance(g, int) and not isinstance(g, bool) for g in group_ids
    ):
        raise MalformedEventError(
            f"'testStart' event field 'groupIDs' has invalid value {group_ids!r}"
        )
    return TestStartEvent(
        id=_require(test, "id", int),
        name=_require(test, "name", str),
        suite_id=_require(test, "suiteID", int),
        group_ids=tuple(group_ids),
        metadata=_metadata(test),
        line=_optional(test, "line", int),
        column=_optional(test, "column", int),
        url=_optional(test, "url", str),
        root_line=_optional(test, "root_line", int),
        root_column=_optional(test, "root_column", int),
        root_url=_optional(test, "root_url", str),
        time=_time(entry),
    )


def _decode_test_done(entry: dict[str, Any]) -> TestDoneEvent:
    return TestDoneEvent(
        test_id=_require(entry, "testID", int),
        result=_require(entry, "result", str),
        skipped=bool(entry.get("skipped", False)),
        hidden=bool(entry.get("hidden", False)),
        time=_time(entry),
    )


def _decode_print(entry: dict[str, Any]) -> PrintEvent:
    return PrintEvent(
        test_id=_require(entry, "testID", int),
        message=_require(entry, "message", str),
        message_type=str(entry.get("messageType") or "print"),
        time=_time(entry),
    )


def _decode_error(entry: dict[str, Any]) -> ErrorEvent:
    return ErrorEvent(
        test_id=_require(entry, "testID", int),
        error=_require(entry, "error", str),
        stack_trace=str(entry.get("stackTrace") or ""),
        is_failure=bool(entry.get("isFailure", False)),
        time=_time(entry),
    )


def _decode_done(entry: dict[str, Any]) -> DoneEvent:
    success = entry.get("success")
    return DoneEvent(
        success=success if isinstance(success, bool) else None,
        time=_time(entry),
    )


_DECODERS = {
    "start": _decode_start,
    "allSuites": _decode_all_suites,
    "suite": _decode_suite,
    "group": _decode_group,
    "testStart": _decode_test_start,
    "testDone": _decode_test_done,
    "print": _decode_print,
    "error": _decode_error,
    "done": _decode_done,
}


def decode_event(line: str) -> Event:
    """Decode one reporter line into an event.

    Args:
        line: A single JSON object serialized on one line.

    Returns:
        The typed event, or ``IgnoredEvent`` for unknown ``type`` values.

    Raises:
        MalformedEventError: If the line is not a JSON object, has no
            string ``type``, or lacks the fields of its variant.
    """
    try:
        entry = json.loads(line)
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"Invalid JSON: {e}") from e

    if not isinstance(entry, dict):
        raise MalformedEventError(
            f"Expected a JSON object, got {type(entry).__name__}"
        )

    event_type = entry.get("type")
    if not isinstance(event_type, str):
        raise MalformedEventError("Event has no 'type' discriminant")

    decoder = _DECODERS.get(event_type)
    if decoder is None:
        return IgnoredEvent(type=event_type, payload=entry)
    return decoder(entry)


def read_events(path: Path) -> Iterator[Event]:
    """Yield decoded events from a reporter output file in order.

    Blank lines are skipped.  A malformed line, including one that is not
    valid UTF-8, aborts iteration with a ``MalformedEventError`` naming the
    offending line number.
    """
    with open(path, "rb") as f:
        for lineno, raw in enumerate(f, start=1):
            try:
                line = raw.decode("utf-8")
                if not line.strip():
                    continue
                event = decode_event(line)
            except UnicodeDecodeError as e:
                raise MalformedEventError(f"{path}:{lineno}: {e}") from e
            except MalformedEventError as e:
                raise MalformedEventError(f"{path}:{lineno}: {e}") from e
            yield event
