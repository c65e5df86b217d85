"""Command execution on top of invoke."""

import contextlib
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from rebasecat.core.log import logger


class Runner(Context):
    """invoke.Context with a single explicit execute() entry point."""

    def kill(self) -> None:
        """Kill the running subprocess.

        invoke sends signal.SIGKILL, which Windows lacks; os.kill()
        there hands the number to TerminateProcess() as an exit code.
        """
        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return
        super().kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run a shell command with its output captured.

        Args:
            command: Shell command line, already quoted
            cwd: Working directory for the command
            timeout: Seconds before the command is killed
            check: Raise on non-zero exit when True
            env: Extra environment variables, merged into os.environ

        Returns:
            invoke.Result. A command that timed out reports exited == -1.

        Raises:
            invoke.UnexpectedExit: If check is True and the command
                exits non-zero
        """
        kwargs = {"hide": True, "warn": not check, "in_stream": False}
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        logger.spew("Executing command", command=command, cwd=str(cwd or ""))

        try:
            with self.cd(str(cwd)) if cwd else contextlib.nullcontext():
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            logger.warn(f"Command timed out after {timeout}s", command=command)
            result = e.result
            result.exited = -1

        logger.spew(
            f"Command exited {result.exited}",
            command=command,
            stdout_size=len(result.stdout),
            stderr_size=len(result.stderr),
        )
        return result
