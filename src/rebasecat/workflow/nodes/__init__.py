"""Workflow nodes for the rebase state machine."""

from rebasecat.workflow.nodes.complete import Complete
from rebasecat.workflow.nodes.continue_ import Continue
from rebasecat.workflow.nodes.detect_conflicts import DetectConflicts
from rebasecat.workflow.nodes.fail import Fail
from rebasecat.workflow.nodes.initialize import Initialize
from rebasecat.workflow.nodes.resolve_conflicts import ResolveConflicts
from rebasecat.workflow.nodes.rollback import Rollback

__all__ = [
    "Initialize",
    "Continue",
    "DetectConflicts",
    "ResolveConflicts",
    "Fail",
    "Rollback",
    "Complete",
]
