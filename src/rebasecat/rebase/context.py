"""Run context for one rebase run."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from rebasecat.core.base import BaseState
from rebasecat.git.base import Snapshot

MIN_ATTEMPTS = 1
MAX_ATTEMPTS = 10
DEFAULT_ATTEMPTS = 3


class Stage(StrEnum):
    """Workflow stage recorded in the run context and the event log."""

    INITIALIZING = "initializing"
    CONTINUING = "continuing"
    DETECTING_CONFLICTS = "detecting_conflicts"
    RESOLVING_CONFLICTS = "resolving_conflicts"
    # Event log only; the run stays in RESOLVING_CONFLICTS while verifying.
    VERIFYING_RESOLUTION = "verifying_resolution"
    ROLLING_BACK = "rolling_back"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentUsage(BaseModel):
    """Requests, tokens and tool calls consumed by agent runs."""

    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    tool_calls: int = 0

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_run(cls, usage) -> AgentUsage:
        """Convert the RunUsage of a pydantic-ai run."""
        return cls(
            requests=usage.requests,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            tool_calls=usage.tool_calls,
        )

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: AgentUsage) -> AgentUsage:
        return AgentUsage(
            requests=self.requests + other.requests,
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            tool_calls=self.tool_calls + other.tool_calls,
        )

    def __str__(self) -> str:
        return (
            f"{self.requests} requests, {self.total_tokens} tokens "
            f"({self.input_tokens} in, {self.output_tokens} out), "
            f"{self.tool_calls} tool calls"
        )


class ResolutionError(BaseModel):
    """A file that could not be resolved in the current round."""

    file: str
    error: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"File {self.file}: {self.error}"


class RebaseState(BaseState):
    """Mutable context of one run.

    Only the workflow task mutates it; everything else gets read
    access through RunHandle.state.
    """

    source_ref: str = Field(
        default="", description="Sanitized branch being rebased"
    )
    target_ref: str = Field(
        default="", description="Sanitized branch rebased onto"
    )
    max_attempts: int = Field(
        default=DEFAULT_ATTEMPTS,
        description="Ceiling for resolution rounds and per-file retries",
    )
    attempt_global: int = Field(
        default=0, description="Resolution rounds started so far"
    )
    file_attempts: dict[str, int] = Field(
        default_factory=dict,
        description="Rejected verifications per file path",
    )
    conflict_files: list[str] = Field(
        default_factory=list,
        description="Files selected for resolution in the current round",
    )
    initial_snapshot: Snapshot | None = Field(
        default=None, description="Repository state captured before the run"
    )
    stage: Stage = Field(default=Stage.INITIALIZING)
    resolution_errors: list[ResolutionError] = Field(
        default_factory=list,
        description="Per-file failures of the current round",
    )
    rolled_back: bool = Field(
        default=False, description="Set once rollback has been attempted"
    )
    error: str | None = Field(
        default=None, description="Error message of a failed run"
    )
    agent_usage: dict[str, AgentUsage] = Field(
        default_factory=dict,
        description="Usage per agent name, summed over every dispatch",
    )

    def attempts_for(self, path: str) -> int:
        return self.file_attempts.get(path, 0)

    def record_error(self, path: str, error: str) -> None:
        self.resolution_errors.append(ResolutionError(file=path, error=error))

    def record_usage(self, agent: str, usage: AgentUsage) -> None:
        self.agent_usage[agent] = self.agent_usage.get(agent, AgentUsage()) + usage

    def total_usage(self) -> AgentUsage:
        return sum(self.agent_usage.values(), AgentUsage())


__all__ = [
    "MIN_ATTEMPTS",
    "MAX_ATTEMPTS",
    "DEFAULT_ATTEMPTS",
    "Stage", "AgentUsage", "ResolutionError", "RebaseState"]
