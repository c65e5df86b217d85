"""Whole rebase runs against a real git repository."""

import shutil

import pytest
from fakes import RESOLVED, FakeVerifier, WorkdirResolver
from gitrepo import git_output

from rebasecat.git.repository import GitRepository
from rebasecat.rebase.errors import RoundFailed
from rebasecat.rebase.orchestrator import RebaseOrchestrator

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("git") is None, reason="git not installed"),
]


def repo_state(repo):
    return {
        "head": git_output(repo, "rev-parse", "HEAD"),
        "branch": git_output(repo, "rev-parse", "--abbrev-ref", "HEAD"),
        "status": git_output(repo, "status", "--porcelain"),
        "a.txt": (repo / "a.txt").read_text(),
    }


@pytest.mark.asyncio
async def test_rejected_resolution_restores_repository(repo):
    before = repo_state(repo)
    repository = GitRepository(repo)
    resolver = WorkdirResolver(repo)
    verifier = FakeVerifier(always_reject=True)
    orchestrator = RebaseOrchestrator(repository, resolver, verifier)

    handle = orchestrator.start("feature", "main", max_attempts=1)
    outcome = await handle.wait()

    assert not outcome.success
    assert isinstance(outcome.cause, RoundFailed)
    assert handle.state.rolled_back
    assert len(resolver.calls) == 1
    assert len(verifier.calls) == 1
    assert not repository.is_rebase_in_progress()
    assert repo_state(repo) == before
    assert before["a.txt"] == "one\nfeature two\nthree\n"


@pytest.mark.asyncio
async def test_accepted_resolution_completes_rebase(repo):
    main_head = git_output(repo, "rev-parse", "main")
    repository = GitRepository(repo)
    orchestrator = RebaseOrchestrator(
        repository, WorkdirResolver(repo), FakeVerifier()
    )

    outcome = await orchestrator.start("feature", "main", max_attempts=1).wait()

    assert outcome.success
    assert not repository.is_rebase_in_progress()
    assert git_output(repo, "rev-parse", "--abbrev-ref", "HEAD") == "feature"
    assert git_output(repo, "rev-parse", "HEAD~1") == main_head
    assert git_output(repo, "status", "--porcelain") == ""
    assert (repo / "a.txt").read_text() == RESOLVED
