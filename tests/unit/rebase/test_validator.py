"""Tests for request validation and repository pre-flight checks."""

import pytest

from rebasecat.rebase.errors import (
    BranchNotFound,
    DirtyWorkingTree,
    NotARepository,
    RebaseError,
    ValidationError,
)
from rebasecat.rebase.validator import (
    RebaseRequest,
    prepare_run,
    sanitize_ref,
    validate_request,
)


def test_defaults_to_three_attempts():
    request = validate_request("feature", "main")
    assert request == RebaseRequest("feature", "main", 3)


@pytest.mark.parametrize("source", ["", "   ", None])
def test_rejects_empty_source(source):
    with pytest.raises(ValidationError):
        validate_request(source, "main")


@pytest.mark.parametrize("attempts", [0, 11, -1, 2.5, "3", True])
def test_rejects_out_of_range_attempts(attempts):
    with pytest.raises(ValidationError, match="max_attempts"):
        validate_request("feature", "main", attempts)


@pytest.mark.parametrize("attempts", [1, 10])
def test_accepts_attempt_bounds(attempts):
    assert validate_request("feature", "main", attempts).max_attempts == attempts


def test_sanitizes_branch_names():
    request = validate_request("feat/ure;rm -rf", "main$")
    assert request.source == "feat/urerm-rf"
    assert request.target == "main"


def test_name_empty_after_sanitizing():
    with pytest.raises(ValidationError, match="after sanitizing"):
        validate_request("$$$", "main")


def test_sanitize_keeps_allowed_characters():
    assert sanitize_ref("release/v1_2-x") == "release/v1_2-x"


def test_validation_errors_are_rebase_errors():
    for cls in (BranchNotFound, DirtyWorkingTree, NotARepository):
        assert issubclass(cls, ValidationError)
    assert issubclass(ValidationError, RebaseError)


def test_prepare_run_captures_snapshot(repository):
    state = prepare_run(repository, RebaseRequest("feature", "main", 2))

    assert state.source_ref == "feature"
    assert state.target_ref == "main"
    assert state.max_attempts == 2
    assert state.initial_snapshot == repository.snapshot
    assert state.attempt_global == 0


def test_repository_checked_first(repository):
    repository.valid = False
    repository.clean = False

    with pytest.raises(NotARepository):
        prepare_run(repository, RebaseRequest("feature", "main", 3))
    assert "branch_exists" not in repository.calls


def test_missing_branch_is_named(repository):
    with pytest.raises(BranchNotFound) as excinfo:
        prepare_run(repository, RebaseRequest("feature", "develop", 3))
    assert excinfo.value.branch == "develop"
    assert "develop" in str(excinfo.value)


def test_dirty_tree_takes_no_snapshot(repository):
    repository.clean = False

    with pytest.raises(DirtyWorkingTree):
        prepare_run(repository, RebaseRequest("feature", "main", 3))
    assert "current_revision" not in repository.calls
