"""Resume command - continues a rebase stopped at conflicts."""

from pydantic import BaseModel

from rebasecat.core.log import logger


class ResumeCommand(BaseModel):
    """Resolve the conflicts of a rebase that is already in progress.

    Use this after a rebase started outside rebasecat (or after
    resolving some files by hand) stopped at conflicts. There is no
    snapshot from before the rebase, so a failed resume leaves the
    rebase in progress for manual inspection; use `abort` to undo it.
    """

    async def run_workflow(self, state: "State") -> int:
        """Run resume workflow.

        Returns:
            Exit code (0=success, 1=failure)
        """
        from rebasecat.command.rebase import report_outcome
        from rebasecat.rebase.context import RebaseState
        from rebasecat.rebase.errors import ValidationError
        from rebasecat.rebase.orchestrator import RebaseOrchestrator
        from rebasecat.rebase.validator import validate_request

        git = state.config.git
        state.runtime.global_.current_command = "resume"

        try:
            request = validate_request(
                git.source_ref or "", git.target_branch or "", git.max_attempts
            )
        except ValidationError as e:
            logger.error(f"Cannot resume: {e}")
            return 1

        orchestrator = RebaseOrchestrator.from_config(state.config)
        if not orchestrator.repository.is_rebase_in_progress():
            logger.error("No rebase in progress; use the rebase command")
            return 1

        previous = RebaseState(
            source_ref=request.source,
            target_ref=request.target,
            max_attempts=request.max_attempts,
        )
        handle = orchestrator.resume(previous)
        state.runtime.rebase = handle.state

        outcome = await handle.wait()
        return report_outcome(outcome)
