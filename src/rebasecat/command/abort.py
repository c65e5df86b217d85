"""Abort command - abandons an in-progress rebase."""

from pydantic import BaseModel, Field

from rebasecat.core.log import logger


class AbortCommand(BaseModel):
    """Abort the rebase in progress and return to the original branch."""

    hard_reset: bool = Field(
        default=False,
        alias="hard-reset",
        description=(
            "After aborting, also discard every uncommitted change to "
            "tracked files (git reset --hard)"
        ),
    )

    async def run_workflow(self, state: "State") -> int:
        """Run abort workflow.

        Returns:
            Exit code (0=success, 1=failure)
        """
        from rebasecat.git.repository import GitRepository

        state.runtime.global_.current_command = "abort"
        repository = GitRepository(state.config.git.workdir, state.config)

        if repository.is_rebase_in_progress():
            result = repository.abort_rebase()
            if not result.ok:
                logger.error(f"git rebase --abort failed: {result.output}")
                return 1
            logger.info("Rebase aborted")
        else:
            logger.warning("No rebase in progress")

        if self.hard_reset:
            snapshot = repository.current_revision()
            result = repository.hard_reset(snapshot)
            if not result.ok:
                logger.error(f"Hard reset failed: {result.output}")
                return 1
            logger.info(f"Working tree reset to {snapshot}")

        return 0
