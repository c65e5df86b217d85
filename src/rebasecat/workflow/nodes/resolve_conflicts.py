"""ResolveConflicts node - run one resolution round."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.rebase.engine import ConflictResolutionEngine
from rebasecat.rebase.errors import AttemptsExhausted, RunCancelled
from rebasecat.rebase.gate import VerificationGate
from rebasecat.workflow.deps import RebaseDeps, RunOutcome


@dataclass
class ResolveConflicts(BaseNode[RebaseState, RebaseDeps, RunOutcome]):
    """Spend one global attempt on the current conflict files."""

    async def run(
        self, ctx: GraphRunContext[RebaseState, RebaseDeps]
    ) -> "DetectConflicts | Fail":
        from rebasecat.workflow.nodes.detect_conflicts import DetectConflicts
        from rebasecat.workflow.nodes.fail import Fail

        state = ctx.state
        deps = ctx.deps

        if deps.cancel.is_set():
            return Fail("Rebase cancelled", RunCancelled("Rebase cancelled"))

        if state.attempt_global >= state.max_attempts:
            error = AttemptsExhausted(state.max_attempts)
            return Fail(str(error), error)

        state.attempt_global += 1
        state.stage = Stage.RESOLVING_CONFLICTS

        gate = VerificationGate(
            state,
            deps.repository,
            deps.verifier,
            deps.tracker,
            deps.events,
            timeout=deps.verify_timeout,
        )
        engine = ConflictResolutionEngine(
            state,
            deps.repository,
            deps.resolver,
            gate,
            deps.tracker,
            deps.events,
            cancel=deps.cancel,
            resolve_timeout=deps.resolve_timeout,
        )
        result = await engine.run_round()

        if result.success:
            return DetectConflicts()
        return Fail(result.error, result.cause)
