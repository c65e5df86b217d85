"""Rollback node - restore the repository to the initial snapshot."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from rebasecat.core.log import logger
from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.workflow.deps import RebaseDeps, RunOutcome


@dataclass
class Rollback(BaseNode[RebaseState, RebaseDeps, RunOutcome]):
    """Abort the rebase and hard-reset to the captured snapshot.

    Runs at most once per run. Its own failures are logged but
    never replace the error that caused the rollback.
    """

    cause: BaseException | None = None

    async def run(
        self, ctx: GraphRunContext[RebaseState, RebaseDeps]
    ) -> End[RunOutcome]:
        state = ctx.state
        repository = ctx.deps.repository
        events = ctx.deps.events
        snapshot = state.initial_snapshot

        state.rolled_back = True
        state.stage = Stage.ROLLING_BACK
        events.append(Stage.ROLLING_BACK, f"Rolling back to {snapshot}", 90)

        aborted = repository.abort_rebase()
        if not aborted.ok:
            # Nothing to abort once the rebase has finished or failed to start
            logger.debug(f"Rebase abort failed: {aborted.output}")

        reset = repository.hard_reset(snapshot)
        if reset.ok:
            events.append(
                Stage.ROLLING_BACK, f"Repository restored to {snapshot}", 100
            )
        else:
            events.append(
                Stage.ROLLING_BACK,
                f"Rollback to {snapshot} failed",
                100,
                errors=[reset.output or "hard reset failed"],
            )

        state.stage = Stage.FAILED
        return End(RunOutcome.from_state(state, ctx.deps, False, self.cause))
