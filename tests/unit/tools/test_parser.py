"""Tests for conflict parser."""

import pytest

from rebasecat.tools.parser import has_conflict_markers, parse


def test_parse_simple_conflict():
    """Test parsing a simple 2-way conflict."""
    content = """line 1
line 2
<<<<<<< HEAD
our change
=======
their change
>>>>>>> branch
line 3
"""
    conflicts = parse(content)

    assert len(conflicts) == 1
    conflict = conflicts[0]

    assert conflict.ours_content == "our change"
    assert conflict.theirs_content == "their change"
    assert conflict.base_content is None
    assert conflict.ours_ref == "HEAD"
    assert conflict.theirs_ref == "branch"
    assert conflict.start_line == 3
    assert conflict.end_line == 7


def test_parse_diff3_format():
    """Test parsing diff3 format with base section."""
    content = """line 1
<<<<<<< HEAD
our change
||||||| base
original code
=======
their change
>>>>>>> branch
line 2
"""
    conflicts = parse(content)

    assert len(conflicts) == 1
    assert conflicts[0].ours_content == "our change"
    assert conflicts[0].base_content == "original code"
    assert conflicts[0].theirs_content == "their change"


def test_parse_multiple_conflicts():
    content = """<<<<<<< HEAD
change 1 ours
=======
change 1 theirs
>>>>>>> branch
middle line
<<<<<<< HEAD
change 2 ours
second line
=======
>>>>>>> branch
"""
    conflicts = parse(content)

    assert [c.ours_content for c in conflicts] == [
        "change 1 ours",
        "change 2 ours\nsecond line",
    ]
    assert conflicts[1].theirs_content == ""
    assert conflicts[1].start_line == 7


def test_parse_missing_refs_get_defaults():
    content = "<<<<<<<\na\n=======\nb\n>>>>>>>\n"

    conflict = parse(content)[0]

    assert conflict.ours_ref == "ours"
    assert conflict.theirs_ref == "theirs"


def test_parse_no_conflicts():
    assert parse("just\nplain\ntext\n") == []


def test_parse_missing_separator():
    content = "ok\n<<<<<<< HEAD\nours\n>>>>>>> branch\n"

    with pytest.raises(ValueError, match="line 2: no separator found"):
        parse(content)


def test_parse_missing_end_marker():
    content = "<<<<<<< HEAD\nours\n=======\ntheirs\n"

    with pytest.raises(ValueError, match="line 1: no end marker found"):
        parse(content)


def test_has_conflict_markers():
    assert has_conflict_markers("a\n<<<<<<< HEAD\nb\n")
    assert not has_conflict_markers("a\n  <<<<<<< indented\nb\n")
    assert not has_conflict_markers("")
