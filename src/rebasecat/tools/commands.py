"""Whitelisted shell commands for the resolution agent."""

import platform
import shlex
from collections.abc import Callable

from pydantic_ai import RunContext
from pydantic_ai.exceptions import ModelRetry

from rebasecat.core.runner import Runner
from rebasecat.tools.workspace import Workspace

DEFAULT_COMMAND_TIMEOUT = 30


def platform_key() -> str:
    return "windows" if platform.system() == "Windows" else "posix"


def command_policy(config) -> dict:
    """The ``tools.<platform>`` section of the configuration."""
    if config is None:
        return {}
    return config.tools.get(platform_key(), {})


def check_command(
    command: str,
    args: list[str],
    policy: dict,
    resolve_path: Callable[[str], object] | None = None,
) -> None:
    """Reject a command line the policy does not allow.

    A policy entry either lists ``allowed_flags``/``allowed_args``
    directly, or sets ``has_subcommands`` and lists them per
    subcommand under ``subcommands``. Only listed flags pass.

    Positional arguments are passed to ``resolve_path``, which raises
    for a path outside the working directory. The first
    ``pattern_args`` positionals of an entry are skipped, and with
    ``revision_args`` only the path part of ``rev:path`` is checked.

    Raises:
        ModelRetry: With a message telling the model what is allowed
    """
    if command in policy.get("blacklist", {}).get("commands", []):
        raise ModelRetry(
            f"Command '{command}' is blacklisted (dangerous operation)"
        )

    allowed = policy.get("allowed", {})
    if command not in allowed:
        raise ModelRetry(
            f"Command '{command}' not allowed. "
            f"Available: {', '.join(allowed)}. "
            f"Use list_allowed_commands() for details."
        )

    entry = allowed[command]
    if not entry.get("has_subcommands"):
        _check_args(command, args, entry, resolve_path)
        return

    if not args:
        raise ModelRetry(
            f"{command} requires a subcommand. "
            f"Use list_allowed_commands() for available subcommands."
        )

    subcommand, rest = args[0], args[1:]
    if subcommand in entry.get("blacklist", {}).get("subcommands", []):
        raise ModelRetry(
            f"{command} {subcommand} is blacklisted (dangerous operation)"
        )

    subcommands = entry.get("subcommands", {})
    if subcommand not in subcommands:
        raise ModelRetry(
            f"{command} {subcommand} not allowed. "
            f"Available subcommands: {', '.join(subcommands)}"
        )
    _check_args(
        f"{command} {subcommand}", rest, subcommands[subcommand], resolve_path
    )


def _is_flag(arg: str) -> bool:
    if platform_key() == "windows":
        return arg.startswith(("-", "/"))
    return arg.startswith("-")


def _check_args(
    name: str,
    args: list[str],
    entry: dict,
    resolve_path: Callable[[str], object] | None = None,
) -> None:
    allowed_flags = set(entry.get("allowed_flags", []))
    positional_ok = bool(entry.get("allowed_args"))
    # Leading positionals that are search patterns, not paths
    patterns = entry.get("pattern_args", 0)
    revisions = entry.get("revision_args", False)

    for arg in args:
        if _is_flag(arg):
            flag = arg.split("=")[0]
            if flag not in allowed_flags:
                allowed = ", ".join(sorted(allowed_flags)) or "none"
                raise ModelRetry(
                    f"{name}: flag '{flag}' not allowed. "
                    f"Allowed flags: {allowed}"
                )
            continue

        if not positional_ok:
            raise ModelRetry(f"{name} does not accept positional arguments")
        if patterns:
            patterns -= 1
            continue
        if resolve_path is None:
            continue

        path = arg
        if revisions and ":" in arg:
            # rev:path and :N:path name a path inside the repository
            path = arg.rsplit(":", 1)[1]
        if path:
            resolve_path(path)


def run_command(
    ctx: RunContext[Workspace],
    command: str,
    args: list[str],
) -> str:
    """Run a whitelisted command in the repository working directory.

    Args:
        command: Command to run (git, ls, cat, grep, ...)
        args: Arguments passed to the command

    Returns:
        Exit code, stdout and stderr of the command

    Examples:
        run_command('git', ['show', ':2:path/to/file.c'])
        run_command('git', ['checkout', '--theirs', 'path/to/file.c'])
        run_command('grep', ['-n', 'pattern', 'file.txt'])
    """
    workspace = ctx.deps
    check_command(
        command, args, command_policy(workspace.config), workspace.resolve_path
    )

    timeout = DEFAULT_COMMAND_TIMEOUT
    if workspace.config is not None:
        timeout = workspace.config.agent_setting(
            "resolver", "command_timeout", DEFAULT_COMMAND_TIMEOUT
        )

    cmd = " ".join(shlex.quote(part) for part in [command, *args])
    result = Runner().execute(
        cmd, cwd=workspace.workdir, timeout=timeout, check=False
    )

    output = f"Exit code: {result.exited}\n\n"
    if result.stdout:
        output += f"stdout:\n{result.stdout}\n"
    if result.stderr:
        output += f"stderr:\n{result.stderr}\n"
    return output


def list_allowed_commands(ctx: RunContext[Workspace]) -> str:
    """List the whitelisted commands and their subcommands."""
    allowed = command_policy(ctx.deps.config).get("allowed", {})

    lines = [f"Platform: {platform_key()}", "", "Available commands:", ""]
    for name, entry in allowed.items():
        lines.append(f"  {name}: {entry.get('description', 'No description')}")
        for sub, sub_entry in entry.get("subcommands", {}).items():
            lines.append(f"      {sub}: {sub_entry.get('description', '')}")
    return "\n".join(lines)
