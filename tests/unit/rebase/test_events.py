"""Tests for the progress event log."""

import dataclasses

import pytest

from rebasecat.rebase.context import Stage
from rebasecat.rebase.events import EventLog


def test_entries_are_ordered_and_frozen():
    events = EventLog()
    events.append(Stage.INITIALIZING, "first", 10)
    events.append(Stage.DETECTING_CONFLICTS, "second", 20, files=["a.py"])

    assert [e.details for e in events] == ["first", "second"]
    assert events.entries[1].files == ("a.py",)
    with pytest.raises(dataclasses.FrozenInstanceError):
        events.entries[0].details = "changed"


def test_progress_is_clamped():
    events = EventLog()
    assert events.append(Stage.COMPLETED, "done", 150).progress == 100
    assert events.append(Stage.FAILED, "odd", -5).progress == 0


def test_subscriber_receives_each_entry():
    received = []
    events = EventLog(on_log=received.append)

    entry = events.append(Stage.FAILED, "bad", 100, errors=["boom"])

    assert received == [entry]
    assert entry.errors == ("boom",)


def test_failing_subscriber_is_ignored():
    def subscriber(entry):
        raise RuntimeError("display went away")

    events = EventLog(on_log=subscriber)
    events.append(Stage.INITIALIZING, "still recorded", 10)

    assert len(events) == 1
