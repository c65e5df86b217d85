"""Entry point for running a conflict-resolving rebase."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from pydantic_graph import BaseNode, End

from rebasecat.core.log import logger
from rebasecat.git.base import VersionControl
from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.rebase.events import EventLog, LogSubscriber
from rebasecat.rebase.tracker import OperationTracker
from rebasecat.workflow.deps import RebaseDeps, RunOutcome
from rebasecat.workflow.graph import create_workflow

CompletionHandler = Callable[[bool, "str | None"], None]


class RunHandle:
    """Caller's view of one scheduled run."""

    def __init__(self, state: RebaseState, deps: RebaseDeps):
        self._state = state
        self._deps = deps
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> RebaseState:
        return self._state

    @property
    def events(self) -> EventLog:
        return self._deps.events

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        """Ask the run to stop before its next file or round.

        A cancelled run fails and rolls back like any other failure.
        """
        if not self._deps.cancel.is_set():
            logger.info("Cancellation requested")
            self._deps.cancel.set()

    async def wait(self) -> RunOutcome:
        return await self._task


class RebaseOrchestrator:
    """Schedules rebase runs on the running event loop.

    Every run ends with exactly one on_complete(success, error) call
    and a RunOutcome; no exception escapes a run.
    """

    def __init__(
        self,
        repository: VersionControl,
        resolver,
        verifier,
        resolve_timeout: float | None = None,
        verify_timeout: float | None = None,
    ):
        self.repository = repository
        self.resolver = resolver
        self.verifier = verifier
        self.resolve_timeout = resolve_timeout
        self.verify_timeout = verify_timeout
        self.workflow = create_workflow()

    @classmethod
    def from_config(cls, config) -> RebaseOrchestrator:
        """Build an orchestrator with git and the pydantic-ai agents."""
        from rebasecat.git.repository import GitRepository
        from rebasecat.model.resolver import ResolutionAgent
        from rebasecat.model.verifier import VerificationAgent

        workdir = config.git.workdir
        return cls(
            repository=GitRepository(workdir, config),
            resolver=ResolutionAgent(config.llm, workdir, config),
            verifier=VerificationAgent(config.llm, config),
            resolve_timeout=config.agent_setting("resolver", "timeout"),
            verify_timeout=config.agent_setting("verifier", "timeout"),
        )

    def start(
        self,
        source: str,
        target: str,
        max_attempts: int | None = None,
        on_complete: CompletionHandler | None = None,
        on_log: LogSubscriber | None = None,
    ) -> RunHandle:
        """Schedule a rebase of source onto target and return at once.

        Must be called with an event loop running.
        """
        from rebasecat.workflow.nodes.initialize import Initialize

        state = RebaseState(source_ref=source, target_ref=target)
        return self._launch(
            state, Initialize(source, target, max_attempts), on_complete, on_log
        )

    def resume(
        self,
        previous: RunHandle | RebaseState,
        on_complete: CompletionHandler | None = None,
        on_log: LogSubscriber | None = None,
    ) -> RunHandle:
        """Schedule a run that picks up where previous left off.

        The snapshot and attempt counters carry over; validation is
        skipped.
        """
        from rebasecat.workflow.nodes.continue_ import Continue

        base = previous.state if isinstance(previous, RunHandle) else previous
        state = base.model_copy(
            deep=True,
            update={
                "stage": Stage.CONTINUING,
                "rolled_back": False,
                "error": None,
            },
        )
        return self._launch(state, Continue(), on_complete, on_log)

    def _launch(
        self,
        state: RebaseState,
        start_node: BaseNode,
        on_complete: CompletionHandler | None,
        on_log: LogSubscriber | None,
    ) -> RunHandle:
        def notify(success: bool, error: str | None) -> None:
            if on_complete is None:
                return
            try:
                on_complete(success, error)
            except Exception as e:
                logger.error(f"Completion callback failed: {e}")

        deps = RebaseDeps(
            repository=self.repository,
            resolver=self.resolver,
            verifier=self.verifier,
            tracker=OperationTracker(on_complete=notify),
            events=EventLog(on_log=on_log),
            resolve_timeout=self.resolve_timeout,
            verify_timeout=self.verify_timeout,
        )
        handle = RunHandle(state, deps)
        handle._task = asyncio.get_running_loop().create_task(
            self._run(state, deps, start_node)
        )
        return handle

    async def _run(
        self, state: RebaseState, deps: RebaseDeps, start_node: BaseNode
    ) -> RunOutcome:
        # Held for the whole run so the terminal callback cannot fire
        # while agent dispatches come and go
        deps.tracker.track()
        try:
            outcome = await self._iterate(state, deps, start_node)
        except Exception as e:
            logger.error(f"Rebase workflow raised {type(e).__name__}: {e}")
            outcome = await self._recover(state, deps, e)

        deps.tracker.complete(outcome.success, outcome.error)
        return outcome

    async def _iterate(
        self, state: RebaseState, deps: RebaseDeps, start_node: BaseNode
    ) -> RunOutcome:
        outcome = None
        async with self.workflow.iter(start_node, state=state, deps=deps) as run:
            async for node in run:
                if isinstance(node, End):
                    outcome = node.data
                else:
                    logger.debug(f"Workflow node: {type(node).__name__}")
        if outcome is None:
            outcome = run.result.output
        return outcome

    async def _recover(
        self, state: RebaseState, deps: RebaseDeps, error: Exception
    ) -> RunOutcome:
        """Turn an unexpected fault into a failed, rolled back outcome."""
        from rebasecat.workflow.nodes.fail import Fail

        message = f"Unexpected error: {error}"
        try:
            return await self._iterate(state, deps, Fail(message, error))
        except Exception as e:
            logger.error(f"Failure handling raised {type(e).__name__}: {e}")
            if state.error is None:
                state.error = message
            state.stage = Stage.FAILED
            return RunOutcome.from_state(state, deps, False, error)


__all__ = ["RunHandle", "RebaseOrchestrator", "CompletionHandler"]
