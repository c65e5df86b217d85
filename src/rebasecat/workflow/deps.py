"""Dependencies and result type shared by the workflow nodes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from rebasecat.git.base import VersionControl
from rebasecat.rebase.context import AgentUsage, RebaseState
from rebasecat.rebase.events import EventLog, LogEntry
from rebasecat.rebase.tracker import OperationTracker


@dataclass
class RebaseDeps:
    """Collaborators of one run, passed to every node as ctx.deps."""

    repository: VersionControl
    resolver: object
    verifier: object
    tracker: OperationTracker
    events: EventLog
    cancel: asyncio.Event = field(default_factory=asyncio.Event)
    resolve_timeout: float | None = None
    verify_timeout: float | None = None


@dataclass(frozen=True)
class RunOutcome:
    """Final result of a run, returned by RunHandle.wait()."""

    success: bool
    error: str | None = None
    cause: BaseException | None = None
    rounds: int = 0
    events: tuple[LogEntry, ...] = ()
    usage: AgentUsage = field(default_factory=AgentUsage)

    @classmethod
    def from_state(
        cls,
        state: RebaseState,
        deps: RebaseDeps,
        success: bool,
        cause: BaseException | None = None,
    ) -> RunOutcome:
        return cls(
            success=success,
            error=None if success else state.error,
            cause=cause,
            rounds=state.attempt_global,
            events=deps.events.entries,
            usage=state.total_usage(),
        )


__all__ = ["RebaseDeps", "RunOutcome"]
