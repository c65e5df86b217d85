"""DetectConflicts node - advance the rebase and collect conflicts."""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rebasecat.core.log import logger
from rebasecat.git.base import VersionControl
from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.rebase.errors import AmbiguousRebaseFailure
from rebasecat.workflow.deps import RebaseDeps, RunOutcome

_SAFE_PATH = re.compile(r"^[\w.\-/]+$", re.ASCII)


def select_conflict_files(
    repository: VersionControl, paths: list[str]
) -> list[str]:
    """Drop files the agents should not touch.

    Binary files, lock files and paths with unusual characters are
    left for the user.
    """
    selected = []
    for path in paths:
        if not _SAFE_PATH.match(path):
            logger.warn(f"Skipping file with unsupported path: {path!r}")
        elif path.endswith(".lock"):
            logger.info(f"Skipping lock file: {path}")
        elif repository.is_binary(path):
            logger.info(f"Skipping binary file: {path}")
        else:
            selected.append(path)
    return selected


@dataclass
class DetectConflicts(BaseNode[RebaseState, RebaseDeps, RunOutcome]):
    """Start or continue the rebase and list what needs resolving."""

    async def run(
        self, ctx: GraphRunContext[RebaseState, RebaseDeps]
    ) -> "ResolveConflicts | Complete | Fail":
        from rebasecat.workflow.nodes.complete import Complete
        from rebasecat.workflow.nodes.fail import Fail
        from rebasecat.workflow.nodes.resolve_conflicts import ResolveConflicts

        state = ctx.state
        repository = ctx.deps.repository

        state.stage = Stage.DETECTING_CONFLICTS
        ctx.deps.events.append(
            Stage.DETECTING_CONFLICTS, "Detecting conflicts", 20
        )

        with logger.span(
            "Detect conflicts", source=state.source_ref, target=state.target_ref
        ):
            result = repository.start_or_continue_rebase(
                state.target_ref, state.source_ref
            )
            files = select_conflict_files(
                repository, repository.list_unmerged_files()
            )
        state.conflict_files = files

        if not files:
            if not result.ok:
                message = (
                    "Rebase operation failed but no resolvable conflict "
                    f"files were identified: {result.output}"
                )
                return Fail(message, AmbiguousRebaseFailure(message))
            return Complete()

        ctx.deps.events.append(
            Stage.DETECTING_CONFLICTS,
            f"Found {len(files)} files with conflicts",
            20,
            files=files,
        )
        return ResolveConflicts()
