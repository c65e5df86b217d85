"""Initialize node - validate the request and snapshot the repository."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rebasecat.core.log import logger
from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.rebase.errors import ValidationError
from rebasecat.rebase.validator import prepare_run, validate_request
from rebasecat.workflow.deps import RebaseDeps, RunOutcome


@dataclass
class Initialize(BaseNode[RebaseState, RebaseDeps, RunOutcome]):
    """Check branches and working tree before anything is mutated."""

    source: str
    target: str
    max_attempts: int | None = None

    async def run(
        self, ctx: GraphRunContext[RebaseState, RebaseDeps]
    ) -> "DetectConflicts | Fail":
        from rebasecat.workflow.nodes.detect_conflicts import DetectConflicts
        from rebasecat.workflow.nodes.fail import Fail

        ctx.state.stage = Stage.INITIALIZING
        ctx.deps.events.append(
            Stage.INITIALIZING,
            f"Initializing rebase of {self.source} onto {self.target}",
            10,
        )

        try:
            request = validate_request(
                self.source, self.target, self.max_attempts
            )
            prepare_run(ctx.deps.repository, request, ctx.state)
        except ValidationError as e:
            logger.error(f"Validation failed: {e}")
            return Fail(str(e), e)

        ctx.deps.events.append(
            Stage.INITIALIZING,
            f"Validated {ctx.state.source_ref} and {ctx.state.target_ref}, "
            f"snapshot {ctx.state.initial_snapshot}",
            10,
        )
        return DetectConflicts()
