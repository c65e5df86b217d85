"""Continue node - re-enter a rebase that is already under way."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.workflow.deps import RebaseDeps, RunOutcome


@dataclass
class Continue(BaseNode[RebaseState, RebaseDeps, RunOutcome]):
    """Skip validation and reuse the state of an earlier run."""

    async def run(
        self, ctx: GraphRunContext[RebaseState, RebaseDeps]
    ) -> "DetectConflicts":
        from rebasecat.workflow.nodes.detect_conflicts import DetectConflicts

        state = ctx.state
        state.stage = Stage.CONTINUING
        ctx.deps.events.append(
            Stage.CONTINUING,
            f"Continuing rebase of {state.source_ref} onto {state.target_ref} "
            f"after {state.attempt_global}/{state.max_attempts} rounds",
            10,
        )
        return DetectConflicts()
