"""Exceptions raised by the rebase workflow.

None of these escape RebaseOrchestrator.start(). A ValidationError is
raised inside the workflow task before any repository mutation and,
like every other failure, reaches the caller as the failed RunOutcome
returned by RunHandle.wait() and passed to on_complete.
"""


class RebaseError(Exception):
    """Base class for rebase failures."""


class ValidationError(RebaseError):
    """The run request or the repository preconditions are invalid."""


class NotARepository(ValidationError):
    """The working directory is not inside a git work tree."""


class BranchNotFound(ValidationError):
    """A named branch does not exist."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"Branch '{branch}' does not exist")


class DirtyWorkingTree(ValidationError):
    """Tracked files have uncommitted changes."""


class AttemptsExhausted(RebaseError):
    """No resolution rounds remain."""

    def __init__(self, max_attempts: int):
        self.max_attempts = max_attempts
        super().__init__(f"Max attempts ({max_attempts}) exceeded")


class AmbiguousRebaseFailure(RebaseError):
    """Git reported failure but left no conflicted files to resolve."""


class RoundFailed(RebaseError):
    """A resolution round ended with unresolved files."""


class RunCancelled(RebaseError):
    """The run was cancelled by its caller."""


__all__ = [
    "RebaseError",
    "ValidationError",
    "NotARepository",
    "BranchNotFound",
    "DirtyWorkingTree",
    "AttemptsExhausted",
    "AmbiguousRebaseFailure",
    "RoundFailed",
    "RunCancelled",
]
