"""Tools exposed to the resolution agent."""

import time
from functools import wraps

from pydantic_ai import RunContext
from pydantic_ai.exceptions import ModelRetry

from rebasecat.core.log import logger
from rebasecat.tools.commands import list_allowed_commands, run_command
from rebasecat.tools.workspace import (
    Workspace,
    read_file,
    submit_resolution,
    write_file,
)


# Always callable, so the agent can finish once other tools hit their cap
UNCAPPED_TOOLS = {'submit_resolution'}


def _log_tool_execution(func):
    """Log each tool call, its result, retries and failures.

    ModelRetry is logged as a warning and re-raised so pydantic-ai
    can hand the message back to the model. Calls are counted on the
    Workspace, which rejects a tool used more than max_tool_uses times.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        tool_name = func.__name__
        start_time = time.time()

        context = {}
        workspace = None
        if args and isinstance(args[0], RunContext):
            deps = args[0].deps
            if isinstance(deps, Workspace):
                workspace = deps
                context = {
                    'workdir': str(deps.workdir),
                    'conflict_file': deps.conflict_file,
                }
        call_args = list(args[1:])

        logger.info(
            f"Tool '{tool_name}' invoked",
            tool_name=tool_name,
            args=call_args,
            kwargs=kwargs,
            **context,
        )

        def elapsed_ms():
            return round((time.time() - start_time) * 1000, 2)

        try:
            if workspace is not None and tool_name not in UNCAPPED_TOOLS:
                workspace.record_tool_use(tool_name)
            result = func(*args, **kwargs)
        except ModelRetry as e:
            logger.warning(
                f"Tool '{tool_name}' raised ModelRetry",
                tool_name=tool_name,
                execution_time_ms=elapsed_ms(),
                retry_message=str(e),
                **context,
            )
            raise
        except Exception as e:
            logger.error(
                f"Tool '{tool_name}' raised unexpected exception",
                tool_name=tool_name,
                execution_time_ms=elapsed_ms(),
                exception_type=type(e).__name__,
                exception_message=str(e),
                _exc_info=e,
                **context,
            )
            raise

        text = str(result) if result else ""
        logger.info(
            f"Tool '{tool_name}' succeeded",
            tool_name=tool_name,
            execution_time_ms=elapsed_ms(),
            result_size=len(text),
            result_preview=text[:200],
        )
        logger.trace(f"Tool '{tool_name}' full result:\n{text}", tool_name=tool_name)
        return result

    return wrapper


# For Agent(tools=[...]); every tool is wrapped with call logging
workspace_tools = [
    _log_tool_execution(tool)
    for tool in (
        run_command,
        list_allowed_commands,
        read_file,
        write_file,
        submit_resolution,
    )
]

__all__ = [
    "Workspace",
    "workspace_tools",
    "run_command",
    "list_allowed_commands",
    "read_file",
    "write_file",
    "submit_resolution",
]
