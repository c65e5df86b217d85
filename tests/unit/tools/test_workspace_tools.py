"""Tests for the agent's file tools."""

from unittest.mock import Mock

import pytest
from pydantic_ai import RunContext
from pydantic_ai.exceptions import ModelRetry

from rebasecat.tools import workspace_tools
from rebasecat.tools.workspace import (
    DEFAULT_MAX_TOOL_USES,
    LARGE_LINE_COUNT,
    Workspace,
    read_file,
    submit_resolution,
    write_file,
)


def make_ctx(workdir, conflict_file="a.py"):
    ctx = Mock(spec=RunContext)
    ctx.deps = Workspace(workdir, conflict_file)
    return ctx


def test_read_file_numbers_lines(tmp_path):
    (tmp_path / "a.py").write_text("one\ntwo\nthree\nfour\n")
    ctx = make_ctx(tmp_path)

    assert read_file(ctx, "a.py", start_line=2, num_lines=2) == "2: two\n3: three"
    assert read_file(ctx, "a.py", start_line=3, num_lines=-1) == "3: three\n4: four"


def test_read_missing_file(tmp_path):
    with pytest.raises(ModelRetry, match="not found"):
        read_file(make_ctx(tmp_path), "nope.py")


def test_large_read_needs_confirmation(tmp_path):
    lines = "\n".join(str(i) for i in range(LARGE_LINE_COUNT + 10))
    (tmp_path / "big.txt").write_text(lines)
    ctx = make_ctx(tmp_path)

    with pytest.raises(ModelRetry, match="confirm_large=True"):
        read_file(ctx, "big.txt", num_lines=-1)

    result = read_file(ctx, "big.txt", num_lines=-1, confirm_large=True)
    assert result.endswith(f"{LARGE_LINE_COUNT + 10}: {LARGE_LINE_COUNT + 9}")


@pytest.mark.parametrize("path", ["../outside.txt", "/etc/passwd", "sub/../../x"])
def test_paths_cannot_escape_workdir(tmp_path, path):
    ctx = make_ctx(tmp_path / "repo")
    (tmp_path / "repo").mkdir()

    with pytest.raises(ModelRetry, match="outside the working directory"):
        write_file(ctx, path, "x")


def test_write_file_creates_parents(tmp_path):
    ctx = make_ctx(tmp_path)

    message = write_file(ctx, "src/new.txt", "hello\nworld\n")

    assert (tmp_path / "src" / "new.txt").read_text() == "hello\nworld\n"
    assert message == "Wrote 12 bytes (2 lines) to src/new.txt"


def test_submit_accepts_clean_file(tmp_path):
    (tmp_path / "a.py").write_text("x = 1\n")
    ctx = make_ctx(tmp_path)

    assert "Resolution accepted" in submit_resolution(ctx)
    assert ctx.deps.submitted


def test_submit_rejects_markers(tmp_path):
    (tmp_path / "a.py").write_text("x = 1\n=======\ny = 2\n")
    ctx = make_ctx(tmp_path)

    with pytest.raises(ModelRetry, match="conflict marker '======='"):
        submit_resolution(ctx)
    assert not ctx.deps.submitted


def test_submit_empty_needs_confirmation(tmp_path):
    (tmp_path / "a.py").write_text("\n")
    ctx = make_ctx(tmp_path)

    with pytest.raises(ModelRetry, match="is empty"):
        submit_resolution(ctx)
    submit_resolution(ctx, confirm_empty=True)
    assert ctx.deps.submitted


@pytest.mark.parametrize(
    "name,content,message",
    [
        ("a.py", "def broken(:\n", "Python syntax error"),
        ("a.json", '{"a": 1,}', "JSON syntax error"),
        ("a.yaml", "key: [unclosed\n", "YAML syntax error"),
    ],
)
def test_submit_checks_syntax(tmp_path, name, content, message):
    (tmp_path / name).write_text(content)
    ctx = make_ctx(tmp_path, name)

    with pytest.raises(ModelRetry, match=message):
        submit_resolution(ctx)
    submit_resolution(ctx, skip_syntax_check=True)
    assert ctx.deps.submitted


def test_submit_deleted_file(tmp_path):
    ctx = make_ctx(tmp_path, "gone.py")

    assert "deleted" in submit_resolution(ctx)
    assert ctx.deps.submitted


def test_tool_use_cap(tmp_path):
    (tmp_path / "a.py").write_text("x = 1\n")
    ctx = Mock(spec=RunContext)
    ctx.deps = Workspace(tmp_path, "a.py", max_tool_uses=2)
    tools = {tool.__name__: tool for tool in workspace_tools}

    tools["read_file"](ctx, "a.py")
    tools["read_file"](ctx, "a.py")
    with pytest.raises(ModelRetry, match=r"read_file exceeded maximum allowed uses \(2\)"):
        tools["read_file"](ctx, "a.py")

    # Each tool has its own count, and submitting is never capped
    assert "Platform:" in tools["list_allowed_commands"](ctx)
    for _ in range(3):
        tools["submit_resolution"](ctx)
    assert ctx.deps.tool_uses == {"read_file": 3, "list_allowed_commands": 1}


def test_tool_use_cap_from_config(tmp_path, test_config):
    assert Workspace(tmp_path, "a.py", test_config).max_tool_uses == 15
    assert Workspace(tmp_path, "a.py").max_tool_uses == DEFAULT_MAX_TOOL_USES
