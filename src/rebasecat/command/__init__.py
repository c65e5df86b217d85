"""CLI command modules for rebasecat."""

from rebasecat.command.abort import AbortCommand
from rebasecat.command.rebase import RebaseCommand
from rebasecat.command.resume import ResumeCommand

__all__ = ["RebaseCommand", "ResumeCommand", "AbortCommand"]
