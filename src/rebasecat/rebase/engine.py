"""One resolution round over the current conflict files."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass

from rebasecat.core.log import logger
from rebasecat.git.base import VersionControl
from rebasecat.model.resolver import ResolutionOutcome
from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.rebase.errors import RoundFailed, RunCancelled
from rebasecat.rebase.events import EventLog
from rebasecat.rebase.gate import (
    Decision,
    FileTask,
    VerificationGate,
    record_usage,
)
from rebasecat.rebase.tracker import OperationTracker
from rebasecat.tools.parser import has_conflict_markers


@dataclass(frozen=True)
class RoundResult:
    success: bool
    error: str | None = None
    cause: Exception | None = None


class ConflictResolutionEngine:
    """Resolves, verifies and stages each conflict file in order.

    Files are taken from an explicit queue. A file the gate sends
    back for another attempt goes to the front of the queue with the
    verifier's issues, so its retries happen before the next file.
    """

    def __init__(
        self,
        state: RebaseState,
        repository: VersionControl,
        resolver,
        gate: VerificationGate,
        tracker: OperationTracker,
        events: EventLog,
        cancel: asyncio.Event | None = None,
        resolve_timeout: float | None = None,
    ):
        self.state = state
        self.repository = repository
        self.resolver = resolver
        self.gate = gate
        self.tracker = tracker
        self.events = events
        self.cancel = cancel or asyncio.Event()
        self.resolve_timeout = resolve_timeout

    async def run_round(self) -> RoundResult:
        state = self.state
        state.resolution_errors.clear()

        files = list(state.conflict_files)
        self.events.append(
            Stage.RESOLVING_CONFLICTS,
            f"Starting resolution of {len(files)} files "
            f"(round {state.attempt_global}/{state.max_attempts})",
            25,
            files=files,
        )

        queue = deque(FileTask(path) for path in files)
        while queue:
            if self.cancel.is_set():
                return RoundResult(
                    success=False,
                    error="Rebase cancelled",
                    cause=RunCancelled("Rebase cancelled"),
                )
            task = queue.popleft()
            retry = await self._process(task)
            if retry is not None:
                queue.appendleft(retry)

        return self._finish(files)

    async def _process(self, task: FileTask) -> FileTask | None:
        """Handle one task, returning the retry task if there is one."""
        state = self.state
        path = task.path

        if state.attempts_for(path) >= state.max_attempts:
            message = (
                f"Maximum resolution attempts ({state.max_attempts}) "
                f"already used"
            )
            state.record_error(path, message)
            self.events.append(
                Stage.RESOLVING_CONFLICTS,
                f"Skipping exhausted file: {path}",
                50,
                files=[path],
                errors=[message],
            )
            return None

        try:
            content = self.repository.read_file(path)
        except (OSError, UnicodeDecodeError) as e:
            message = f"Failed to read file: {e}"
            state.record_error(path, message)
            self.events.append(
                Stage.RESOLVING_CONFLICTS,
                f"Cannot read {path}",
                50,
                files=[path],
                errors=[message],
            )
            return None

        if not has_conflict_markers(content):
            staged = self.repository.stage(path)
            if not staged.ok:
                message = (
                    f"Failed to stage file without conflict markers: "
                    f"{staged.output}"
                )
                state.record_error(path, message)
                self.events.append(
                    Stage.RESOLVING_CONFLICTS,
                    f"Staging failed for {path}",
                    50,
                    files=[path],
                    errors=[message],
                )
            else:
                self.events.append(
                    Stage.RESOLVING_CONFLICTS,
                    f"No conflict markers in {path}, staged as-is",
                    50,
                    files=[path],
                )
            return None

        self.events.append(
            Stage.RESOLVING_CONFLICTS,
            f"Analyzing conflicts in file: {path}"
            + (f" (retry {task.attempt})" if task.attempt else ""),
            50,
            files=[path],
        )

        resolved = await self._resolve(task, content)
        if not resolved.ok:
            message = resolved.error or "Resolution agent failed"
            state.record_error(path, message)
            self.events.append(
                Stage.RESOLVING_CONFLICTS,
                f"Resolution failed for {path}",
                50,
                files=[path],
                errors=[message],
            )
            return None

        try:
            content = self.repository.read_file(path)
        except (OSError, UnicodeDecodeError) as e:
            message = f"Failed to read resolved file: {e}"
            state.record_error(path, message)
            self.events.append(
                Stage.RESOLVING_CONFLICTS,
                f"Cannot read resolved {path}",
                60,
                files=[path],
                errors=[message],
            )
            return None

        verdict = await self.gate.evaluate(task, content)
        if verdict.decision is Decision.RETRY:
            return FileTask(
                path,
                attempt=task.attempt + 1,
                failure_context="\n".join(verdict.issues),
            )
        return None

    async def _resolve(self, task: FileTask, content: str) -> ResolutionOutcome:
        dispatch = await self.tracker.dispatch(
            self.resolver.resolve(task.path, content, task.failure_context),
            timeout=self.resolve_timeout,
        )
        if not dispatch.ok:
            return ResolutionOutcome(ok=False, error=dispatch.error)
        record_usage(
            self.state,
            self.events,
            "resolver",
            task.path,
            dispatch.value.usage,
            Stage.RESOLVING_CONFLICTS,
            55,
        )
        return dispatch.value

    def _finish(self, files: list[str]) -> RoundResult:
        state = self.state
        errors = list(state.resolution_errors)

        if errors:
            failed = len({e.file for e in errors})
            message = (
                f"{failed}/{len(files)} files could not be resolved "
                f"automatically: " + "; ".join(str(e) for e in errors)
            )
            self.events.append(
                Stage.RESOLVING_CONFLICTS,
                message,
                90,
                files=[e.file for e in errors],
                errors=[str(e) for e in errors],
            )
            return RoundResult(success=False, error=message, cause=RoundFailed(message))

        self.events.append(
            Stage.RESOLVING_CONFLICTS,
            f"Resolved all {len(files)} files, continuing rebase",
            75,
            files=files,
        )
        result = self.repository.continue_rebase()
        if result.ok:
            self.events.append(
                Stage.RESOLVING_CONFLICTS, "Rebase continued", 100, files=files
            )
            return RoundResult(success=True)

        unmerged = self.repository.list_unmerged_files()
        if unmerged:
            logger.info(
                "Rebase stopped at the next conflicting commit",
                files=unmerged,
            )
            self.events.append(
                Stage.RESOLVING_CONFLICTS,
                f"Rebase continued and stopped at new conflicts in "
                f"{len(unmerged)} files",
                90,
                files=unmerged,
            )
            return RoundResult(success=True)

        message = f"Failed to continue rebase: {result.output}"
        self.events.append(
            Stage.RESOLVING_CONFLICTS, message, 90, errors=[message]
        )
        return RoundResult(success=False, error=message, cause=RoundFailed(message))


__all__ = ["RoundResult", "ConflictResolutionEngine"]
