"""Graph workflow definition."""

from pydantic_graph import Graph

from rebasecat.core.log import logger
from rebasecat.rebase.context import RebaseState


def create_workflow() -> Graph:
    """Create the rebase workflow graph.

    Initialize (or Continue) -> DetectConflicts -> ResolveConflicts
        -> DetectConflicts ... -> Complete
    Any failure goes to Fail, then Rollback when a snapshot exists.

    Returns:
        Graph with RebaseState as state_type and RebaseDeps as deps
    """
    logger.debug("Building workflow graph")

    # Imported here so the graph can resolve the nodes' return hints
    from rebasecat.workflow.deps import RebaseDeps  # noqa: F401
    from rebasecat.workflow.nodes.complete import Complete
    from rebasecat.workflow.nodes.continue_ import Continue
    from rebasecat.workflow.nodes.detect_conflicts import DetectConflicts
    from rebasecat.workflow.nodes.fail import Fail
    from rebasecat.workflow.nodes.initialize import Initialize
    from rebasecat.workflow.nodes.resolve_conflicts import ResolveConflicts
    from rebasecat.workflow.nodes.rollback import Rollback

    return Graph(
        nodes=(
            Initialize,
            Continue,
            DetectConflicts,
            ResolveConflicts,
            Fail,
            Rollback,
            Complete,
        ),
        state_type=RebaseState,
        name="rebase",
    )
