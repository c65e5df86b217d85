"""Rebase command - runs the conflict-resolving rebase workflow."""

from pydantic import BaseModel

from rebasecat.core.log import logger


def report_outcome(outcome) -> int:
    """Log how a run ended and map it to an exit code."""
    logger.info(f"Agent usage: {outcome.usage}")
    if outcome.success:
        logger.info(f"Rebase complete after {outcome.rounds} rounds")
        return 0
    logger.error(f"Rebase failed: {outcome.error}")
    return 1


class RebaseCommand(BaseModel):
    """Rebase config.git.source_ref onto config.git.target_branch.

    Every conflict is resolved by the resolution agent and checked by
    the verification agent. If the conflicts cannot be resolved within
    config.git.max_attempts rounds, the repository is restored to the
    state it was in before the run.
    """

    async def run_workflow(self, state: "State") -> int:
        """Run rebase workflow.

        Args:
            state: State instance with config loaded

        Returns:
            Exit code (0=success, 1=failure)
        """
        from rebasecat.rebase.orchestrator import RebaseOrchestrator

        git = state.config.git
        if not git.source_ref or not git.target_branch:
            logger.error(
                "Both config.git.source_ref and config.git.target_branch "
                "must be set"
            )
            return 1

        state.runtime.global_.current_command = "rebase"
        logger.info(f"Starting rebase of {git.source_ref} onto {git.target_branch}")

        orchestrator = RebaseOrchestrator.from_config(state.config)
        handle = orchestrator.start(
            git.source_ref, git.target_branch, git.max_attempts
        )
        state.runtime.rebase = handle.state

        outcome = await handle.wait()
        return report_outcome(outcome)
