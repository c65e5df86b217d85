"""Complete node - the rebase finished with no conflicts left."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.workflow.deps import RebaseDeps, RunOutcome


@dataclass
class Complete(BaseNode[RebaseState, RebaseDeps, RunOutcome]):
    async def run(
        self, ctx: GraphRunContext[RebaseState, RebaseDeps]
    ) -> End[RunOutcome]:
        state = ctx.state
        state.stage = Stage.COMPLETED
        ctx.deps.events.append(
            Stage.COMPLETED,
            f"Rebase of {state.source_ref} onto {state.target_ref} completed "
            f"after {state.attempt_global} rounds",
            100,
        )
        return End(RunOutcome.from_state(state, ctx.deps, True))
