"""Version-control boundary used by the rebase orchestrator.

The orchestrator only talks to git through the VersionControl
protocol, which keeps the workflow testable against an in-memory
fake. Every mutating operation reports failure through
CommandResult instead of raising.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class CommandResult(BaseModel):
    """Outcome of one version-control command."""

    ok: bool
    output: str = ""

    model_config = ConfigDict(frozen=True)


class Snapshot(BaseModel):
    """Immutable reference to the repository state before a run.

    ``branch`` is the branch that was checked out (None for a
    detached HEAD); restoring checks it out again before resetting
    to ``revision``.
    """

    revision: str = Field(description="Commit id HEAD pointed at")
    branch: str | None = Field(default=None, description="Checked out branch")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        short = self.revision[:12]
        return f"{self.branch}@{short}" if self.branch else short


@runtime_checkable
class VersionControl(Protocol):
    """Synchronous command/result contract for the repository."""

    def is_valid_repository(self) -> bool:
        ...

    def branch_exists(self, name: str) -> bool:
        ...

    def is_clean_working_tree(self) -> bool:
        ...

    def current_revision(self) -> Snapshot:
        ...

    def start_or_continue_rebase(self, target: str, source: str) -> CommandResult:
        ...

    def list_unmerged_files(self) -> list[str]:
        ...

    def is_binary(self, path: str) -> bool:
        ...

    def read_file(self, path: str) -> str:
        """Raises OSError when the file cannot be read."""
        ...

    def continue_rebase(self) -> CommandResult:
        ...

    def stage(self, path: str) -> CommandResult:
        ...

    def abort_rebase(self) -> CommandResult:
        ...

    def hard_reset(self, snapshot: Snapshot) -> CommandResult:
        ...


__all__ = ["CommandResult", "Snapshot", "VersionControl"]
