#!/usr/bin/env python3
"""rebasecat CLI - LLM-assisted conflict resolution for git rebase."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from rebasecat.command.abort import AbortCommand
from rebasecat.command.rebase import RebaseCommand
from rebasecat.command.resume import ResumeCommand
from rebasecat.core.config import State


class CliState(State):
    """Rebase one branch onto another, resolving conflicts with LLM agents.

    Each conflicted file is resolved by one agent and checked by a
    second. Files that fail verification are retried with the
    verifier's feedback. If the rebase cannot be completed, the
    repository is rolled back to where it started.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.git.source_ref value)
    2. rebasecat.yaml in the current directory, then the user
       config directory, then the packaged defaults
    3. .env file for secrets
    4. Environment variables
       (REBASECAT_CONFIG__GIT__SOURCE_REF=value)

    The [JSON] options allow setting multiple values at once:
      --config.git '{"source_ref": "feature", "target_branch": "main"}'
    """

    rebase: CliSubCommand[RebaseCommand]
    resume: CliSubCommand[ResumeCommand]
    abort: CliSubCommand[AbortCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Closing the state closes the logger and its file sinks
        with self.config:
            exit_code = asyncio.run(subcommand.run_workflow(self))
        raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
