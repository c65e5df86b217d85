"""Fail node - record the failure and decide whether to roll back."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.workflow.deps import RebaseDeps, RunOutcome


@dataclass
class Fail(BaseNode[RebaseState, RebaseDeps, RunOutcome]):
    error: str
    cause: BaseException | None = None

    async def run(
        self, ctx: GraphRunContext[RebaseState, RebaseDeps]
    ) -> "Rollback | End[RunOutcome]":
        from rebasecat.workflow.nodes.rollback import Rollback

        state = ctx.state
        state.stage = Stage.FAILED
        # The first failure is the one reported
        if state.error is None:
            state.error = self.error

        ctx.deps.events.append(
            Stage.FAILED, self.error, 100, errors=[self.error]
        )

        if state.initial_snapshot is not None and not state.rolled_back:
            return Rollback(self.cause)
        return End(RunOutcome.from_state(state, ctx.deps, False, self.cause))
