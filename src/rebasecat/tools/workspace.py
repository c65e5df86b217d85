"""Sandboxed file tools the resolution agent works with."""

import json
from pathlib import Path

import yaml
from pydantic_ai import RunContext
from pydantic_ai.exceptions import ModelRetry

from rebasecat.tools.parser import END_MARKER, SEPARATOR, START_MARKER

# Reads and writes above this many lines need explicit confirmation
LARGE_LINE_COUNT = 200
DEFAULT_MAX_TOOL_USES = 15


class Workspace:
    """Agent dependencies for resolving one conflicted file.

    All paths the agent passes are relative to ``workdir`` and may
    not escape it.
    """

    def __init__(
        self,
        workdir: Path,
        conflict_file: str,
        config=None,
        max_tool_uses: int | None = None,
    ):
        self.workdir = Path(workdir)
        self.conflict_file = conflict_file
        self.config = config
        self.submitted = False
        self.tool_uses: dict[str, int] = {}
        if max_tool_uses is None:
            max_tool_uses = DEFAULT_MAX_TOOL_USES
            if config is not None:
                max_tool_uses = config.agent_setting(
                    "resolver", "max_tool_uses", DEFAULT_MAX_TOOL_USES
                )
        self.max_tool_uses = max_tool_uses

    def record_tool_use(self, tool_name: str) -> None:
        """Count one call of a tool.

        Raises:
            ModelRetry: If the tool was already called max_tool_uses times
        """
        uses = self.tool_uses.get(tool_name, 0) + 1
        self.tool_uses[tool_name] = uses
        if self.max_tool_uses is not None and uses > self.max_tool_uses:
            raise ModelRetry(
                f"Tool {tool_name} exceeded maximum allowed uses "
                f"({self.max_tool_uses}). Finish with the information "
                f"you have and call submit_resolution."
            )

    def resolve_path(self, filepath: str) -> Path:
        root = self.workdir.resolve()
        path = (root / filepath).resolve()
        if path != root and root not in path.parents:
            raise ModelRetry(
                f"Path '{filepath}' is outside the working directory."
            )
        return path


def read_file(
    ctx: RunContext[Workspace],
    filepath: str,
    start_line: int = 1,
    num_lines: int = 50,
    confirm_large: bool = False,
) -> str:
    """Read file with line numbers.

    Args:
        filepath: Path to file (relative to workspace)
        start_line: First line to read (1-indexed)
        num_lines: Number of lines to read (-1 for the rest of the file)
        confirm_large: Confirm reading more than 200 lines

    Returns:
        File content with line numbers: "1: content\\n2: content\\n..."
    """
    file_path = ctx.deps.resolve_path(filepath)
    if not file_path.is_file():
        raise ModelRetry(
            f"File '{filepath}' not found in workspace. "
            f"Use run_command('ls', ['-la']) to see available files."
        )

    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ModelRetry(f"Failed to read '{filepath}': {e}") from e

    start_line = max(start_line, 1)
    if num_lines == -1:
        selected = lines[start_line - 1:]
    else:
        selected = lines[start_line - 1:start_line - 1 + num_lines]

    if len(selected) > LARGE_LINE_COUNT and not confirm_large:
        raise ModelRetry(
            f"File '{filepath}' has {len(lines)} lines and you requested "
            f"{len(selected)} of them. Read a smaller range, or call "
            f"read_file with confirm_large=True."
        )

    return "\n".join(
        f"{i}: {line}" for i, line in enumerate(selected, start=start_line)
    )


def write_file(
    ctx: RunContext[Workspace],
    filepath: str,
    content: str,
    confirm_large: bool = False,
) -> str:
    """Create or completely replace a file.

    Args:
        filepath: Path to file (relative to workspace)
        content: Complete new file content
        confirm_large: Confirm writing more than 200 lines

    Returns:
        Confirmation message with file size
    """
    file_path = ctx.deps.resolve_path(filepath)

    line_count = len(content.splitlines())
    if line_count > LARGE_LINE_COUNT and not confirm_large:
        raise ModelRetry(
            f"Content has {line_count} lines. For large files prefer "
            f"'git checkout --ours/--theirs' or editing from "
            f"'git show :2:path'. If you really must write this much, "
            f"call write_file with confirm_large=True."
        )

    file_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        file_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ModelRetry(f"Failed to write '{filepath}': {e}") from e

    byte_count = len(content.encode("utf-8"))
    return f"Wrote {byte_count} bytes ({line_count} lines) to {filepath}"


def _check_syntax(filepath: str, content: str) -> None:
    if filepath.endswith(".py"):
        try:
            compile(content, filepath, "exec")
        except SyntaxError as e:
            raise ModelRetry(
                f"Python syntax error at line {e.lineno}: {e.msg}"
            ) from e
    elif filepath.endswith(".json"):
        try:
            json.loads(content)
        except json.JSONDecodeError as e:
            raise ModelRetry(
                f"JSON syntax error at line {e.lineno}: {e.msg}"
            ) from e
    elif filepath.endswith((".yaml", ".yml")):
        try:
            yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ModelRetry(f"YAML syntax error: {e}") from e


def submit_resolution(
    ctx: RunContext[Workspace],
    confirm_empty: bool = False,
    skip_syntax_check: bool = False,
) -> str:
    """Submit the resolved conflict file once it is written.

    Checks that no conflict markers remain, that the file is not
    accidentally empty and, for Python/JSON/YAML files, that it
    parses.

    Args:
        confirm_empty: Confirm an empty file is intentional
        skip_syntax_check: Skip syntax validation

    Returns:
        Confirmation message
    """
    workspace = ctx.deps
    filepath = workspace.conflict_file
    file_path = workspace.resolve_path(filepath)

    if not file_path.exists():
        workspace.submitted = True
        return f"File {filepath} does not exist (deleted)."

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ModelRetry(f"Failed to read '{filepath}': {e}") from e

    for marker in (START_MARKER, SEPARATOR, END_MARKER):
        if any(line.startswith(marker) for line in content.splitlines()):
            raise ModelRetry(
                f"Resolution still contains conflict marker '{marker}'. "
                f"Remove all conflict markers before submitting."
            )

    if not content.strip() and not confirm_empty:
        raise ModelRetry(
            f"Resolution file '{filepath}' is empty. If intentional, call "
            f"submit_resolution with confirm_empty=True. To delete the "
            f"file, use run_command('git', ['rm', '{filepath}'])."
        )

    if not skip_syntax_check:
        _check_syntax(filepath, content)

    workspace.submitted = True
    return (
        f"Resolution accepted for {filepath}: "
        f"{len(content.splitlines())} lines."
    )
