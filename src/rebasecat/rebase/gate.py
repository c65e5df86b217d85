"""Verification gate between a resolved file and the index."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum

from rebasecat.core.log import logger
from rebasecat.git.base import VersionControl
from rebasecat.model.verifier import VerificationOutcome
from rebasecat.rebase.context import AgentUsage, RebaseState, Stage
from rebasecat.rebase.events import EventLog
from rebasecat.rebase.tracker import OperationTracker

_MARKER_ISSUE = re.compile(r"conflict marker|<<<<<<<|=======|>>>>>>>", re.I)
_DUPLICATE_ISSUE = re.compile(r"duplicat|repeated|redundant", re.I)


@dataclass(frozen=True)
class FileTask:
    """One unit of work in a resolution round.

    ``failure_context`` carries the verifier's issues from the
    previous attempt on the same file.
    """

    path: str
    attempt: int = 0
    failure_context: str | None = None


class Decision(StrEnum):
    ACCEPTED = "accepted"
    RETRY = "retry"
    EXHAUSTED = "exhausted"
    STAGING_FAILED = "staging_failed"


@dataclass(frozen=True)
class GateVerdict:
    decision: Decision
    issues: list[str] = field(default_factory=list)
    message: str | None = None


@dataclass(frozen=True)
class IssueSummary:
    conflict_markers: list[str]
    duplicate_code: list[str]
    other: list[str]

    def describe(self) -> str:
        details = []
        if self.conflict_markers:
            details.append("Conflict markers still present in file")
        if self.duplicate_code:
            details.append("Duplicate code found in resolution")
        if self.other:
            details.append("Other issues: " + "; ".join(self.other))
        if not details:
            details.append("No issues reported")
        return "Resolution verification failed: " + ". ".join(details)

    def headline(self) -> str:
        if self.conflict_markers:
            return "conflict markers remain"
        if self.duplicate_code:
            return "duplicate code detected"
        return "see issues for details"


def record_usage(
    state: RebaseState,
    events: EventLog,
    agent: str,
    path: str,
    usage: AgentUsage | None,
    stage: Stage,
    progress: int,
) -> None:
    """Add one dispatch's usage to the run totals and the event log."""
    if usage is None:
        return
    state.record_usage(agent, usage)
    events.append(
        stage,
        f"{agent.capitalize()} usage for {path}: {usage}",
        progress,
        files=[path],
    )


def classify_issues(issues: list[str]) -> IssueSummary:
    """Sort verifier issues into buckets for the diagnostic message."""
    markers, duplicates, other = [], [], []
    for issue in issues:
        if _MARKER_ISSUE.search(issue):
            markers.append(issue)
        elif _DUPLICATE_ISSUE.search(issue):
            duplicates.append(issue)
        else:
            other.append(issue)
    return IssueSummary(markers, duplicates, other)


class VerificationGate:
    """Accepts a resolution, or charges the file a retry.

    Only a rejection increments ``file_attempts``; the counter of a
    file never exceeds ``max_attempts``.
    """

    def __init__(
        self,
        state: RebaseState,
        repository: VersionControl,
        verifier,
        tracker: OperationTracker,
        events: EventLog,
        timeout: float | None = None,
    ):
        self.state = state
        self.repository = repository
        self.verifier = verifier
        self.tracker = tracker
        self.events = events
        self.timeout = timeout

    async def _verify(self, task: FileTask, content: str) -> VerificationOutcome:
        dispatch = await self.tracker.dispatch(
            self.verifier.verify(
                task.path,
                content,
                attempt=self.state.attempts_for(task.path) + 1,
                max_attempts=self.state.max_attempts,
            ),
            timeout=self.timeout,
        )
        if not dispatch.ok:
            error = f"Verification agent failed: {dispatch.error}"
            return VerificationOutcome(passed=False, issues=[error], error=error)

        outcome = dispatch.value
        record_usage(
            self.state,
            self.events,
            "verifier",
            task.path,
            outcome.usage,
            Stage.VERIFYING_RESOLUTION,
            65,
        )
        if outcome.error:
            error = f"Verification agent failed: {outcome.error}"
            return VerificationOutcome(passed=False, issues=[error], error=error)
        return outcome

    async def evaluate(self, task: FileTask, content: str) -> GateVerdict:
        state = self.state
        path = task.path

        self.events.append(
            Stage.VERIFYING_RESOLUTION,
            f"Verifying resolution of {path}",
            60,
            files=[path],
        )
        outcome = await self._verify(task, content)

        if outcome.passed:
            self.events.append(
                Stage.VERIFYING_RESOLUTION,
                f"Verification passed for {path}",
                70,
                files=[path],
            )
            staged = self.repository.stage(path)
            if not staged.ok:
                message = f"Failed to stage file after resolution: {staged.output}"
                state.record_error(path, message)
                self.events.append(
                    Stage.RESOLVING_CONFLICTS,
                    f"Staging failed for {path}",
                    80,
                    files=[path],
                    errors=[message],
                )
                return GateVerdict(Decision.STAGING_FAILED, message=message)

            self.events.append(
                Stage.RESOLVING_CONFLICTS,
                f"Staged resolved file {path}",
                85,
                files=[path],
            )
            return GateVerdict(Decision.ACCEPTED)

        issues = list(outcome.issues) or ["Unknown verification issues"]
        summary = classify_issues(issues)
        message = summary.describe()

        attempts = min(state.attempts_for(path) + 1, state.max_attempts)
        state.file_attempts[path] = attempts
        logger.debug(
            f"File attempt counter for {path}: {attempts}/{state.max_attempts}"
        )

        self.events.append(
            Stage.VERIFYING_RESOLUTION,
            f"Resolution verification failed (attempt {attempts}/"
            f"{state.max_attempts}) - {summary.headline()}",
            80,
            files=[path],
            errors=issues,
        )

        if attempts < state.max_attempts:
            self.events.append(
                Stage.RESOLVING_CONFLICTS,
                f"Retrying resolution for file: {path} (attempt "
                f"{attempts + 1}/{state.max_attempts})",
                80,
                files=[path],
                errors=issues,
            )
            return GateVerdict(Decision.RETRY, issues=issues, message=message)

        state.record_error(path, message)
        self.events.append(
            Stage.RESOLVING_CONFLICTS,
            f"Maximum resolution attempts ({state.max_attempts}) reached "
            f"for file: {path}",
            80,
            files=[path],
            errors=issues,
        )
        return GateVerdict(Decision.EXHAUSTED, issues=issues, message=message)


__all__ = [
    "FileTask",
    "Decision",
    "GateVerdict",
    "IssueSummary",
    "classify_issues",
    "record_usage",
    "VerificationGate",
]
