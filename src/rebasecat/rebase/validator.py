"""Request validation and pre-flight repository checks."""

from __future__ import annotations

import re
from dataclasses import dataclass

from rebasecat.core.log import logger
from rebasecat.git.base import VersionControl
from rebasecat.rebase.context import (
    DEFAULT_ATTEMPTS,
    MAX_ATTEMPTS,
    MIN_ATTEMPTS,
    RebaseState,
)
from rebasecat.rebase.errors import (
    BranchNotFound,
    DirtyWorkingTree,
    NotARepository,
    ValidationError,
)

_UNSAFE_REF_CHARS = re.compile(r"[^A-Za-z0-9_/-]")


@dataclass(frozen=True)
class RebaseRequest:
    source: str
    target: str
    max_attempts: int


def sanitize_ref(name: str) -> str:
    """Strip every character outside ``[A-Za-z0-9_/-]``."""
    return _UNSAFE_REF_CHARS.sub("", name)


def validate_request(
    source: str, target: str, max_attempts: int | None = None
) -> RebaseRequest:
    """Check the caller's arguments without touching the repository.

    Raises:
        ValidationError: If a branch name is empty (before or after
            sanitizing) or max_attempts is outside the allowed range
    """
    for role, name in (("source", source), ("target", target)):
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(f"Invalid {role} branch name: {name!r}")

    if max_attempts is None:
        max_attempts = DEFAULT_ATTEMPTS
    if (
        isinstance(max_attempts, bool)
        or not isinstance(max_attempts, int)
        or not MIN_ATTEMPTS <= max_attempts <= MAX_ATTEMPTS
    ):
        raise ValidationError(
            f"max_attempts must be an integer between {MIN_ATTEMPTS} "
            f"and {MAX_ATTEMPTS}, got {max_attempts!r}"
        )

    clean_source = sanitize_ref(source)
    clean_target = sanitize_ref(target)
    for role, original, clean in (
        ("source", source, clean_source),
        ("target", target, clean_target),
    ):
        if not clean:
            raise ValidationError(
                f"Invalid {role} branch name after sanitizing: {original!r}"
            )
        if clean != original:
            logger.warn(f"Sanitized {role} branch {original!r} to {clean!r}")

    return RebaseRequest(
        source=clean_source, target=clean_target, max_attempts=max_attempts
    )


def prepare_run(
    repository: VersionControl,
    request: RebaseRequest,
    state: RebaseState | None = None,
) -> RebaseState:
    """Verify the repository preconditions and capture the snapshot.

    Nothing in the repository is modified here; a failure leaves it
    exactly as it was. When state is given it is filled in place
    instead of creating a new one.

    Raises:
        NotARepository: Working directory is not a git work tree
        BranchNotFound: Source or target branch does not exist
        DirtyWorkingTree: Tracked files have uncommitted changes
    """
    if not repository.is_valid_repository():
        raise NotARepository("Not a git repository")

    for branch in (request.source, request.target):
        if not repository.branch_exists(branch):
            raise BranchNotFound(branch)

    if not repository.is_clean_working_tree():
        raise DirtyWorkingTree(
            "Working tree has uncommitted changes; commit or stash them first"
        )

    snapshot = repository.current_revision()
    logger.info(f"Captured initial snapshot {snapshot}")

    if state is None:
        state = RebaseState()
    state.source_ref = request.source
    state.target_ref = request.target
    state.max_attempts = request.max_attempts
    state.initial_snapshot = snapshot
    return state


__all__ = ["RebaseRequest", "sanitize_ref", "validate_request", "prepare_run"]
