"""Tests for the verification gate."""

import pytest

from rebasecat.git.base import CommandResult
from rebasecat.model.verifier import VerificationOutcome
from rebasecat.rebase.context import RebaseState, Stage
from rebasecat.rebase.events import EventLog
from rebasecat.rebase.gate import (
    Decision,
    FileTask,
    VerificationGate,
    classify_issues,
)
from rebasecat.rebase.tracker import OperationTracker
from fakes import RESOLVED, FakeVerifier


def make_gate(repository, verifier, max_attempts=3):
    state = RebaseState(
        source_ref="feature", target_ref="main", max_attempts=max_attempts
    )
    tracker = OperationTracker()
    tracker.track()
    gate = VerificationGate(state, repository, verifier, tracker, EventLog())
    return gate, state


@pytest.mark.asyncio
async def test_accepted_file_is_staged(repository):
    gate, state = make_gate(repository, FakeVerifier())

    verdict = await gate.evaluate(FileTask("a.py"), RESOLVED)

    assert verdict.decision is Decision.ACCEPTED
    assert repository.staged == ["a.py"]
    assert state.file_attempts == {}
    assert state.resolution_errors == []


@pytest.mark.asyncio
async def test_rejection_below_ceiling_retries(repository):
    gate, state = make_gate(repository, FakeVerifier(always_reject=True))

    verdict = await gate.evaluate(FileTask("a.py"), RESOLVED)

    assert verdict.decision is Decision.RETRY
    assert verdict.issues == ["Conflict markers remain in the file"]
    assert state.file_attempts == {"a.py": 1}
    assert state.resolution_errors == []
    assert repository.staged == []


@pytest.mark.asyncio
async def test_rejection_at_ceiling_exhausts(repository):
    gate, state = make_gate(
        repository, FakeVerifier(always_reject=True), max_attempts=2
    )

    first = await gate.evaluate(FileTask("a.py"), RESOLVED)
    second = await gate.evaluate(FileTask("a.py", attempt=1), RESOLVED)

    assert first.decision is Decision.RETRY
    assert second.decision is Decision.EXHAUSTED
    assert state.file_attempts == {"a.py": 2}
    assert [e.file for e in state.resolution_errors] == ["a.py"]
    assert "Conflict markers still present" in state.resolution_errors[0].error


@pytest.mark.asyncio
async def test_verifier_attempt_numbers(repository):
    verifier = FakeVerifier(rejections={"a.py": 1})
    gate, _ = make_gate(repository, verifier)

    await gate.evaluate(FileTask("a.py"), RESOLVED)
    await gate.evaluate(FileTask("a.py", attempt=1), RESOLVED)

    assert verifier.calls == [("a.py", 1, 3), ("a.py", 2, 3)]


@pytest.mark.asyncio
async def test_staging_failure_is_terminal(repository):
    repository.stage_result = CommandResult(ok=False, output="index.lock exists")
    gate, state = make_gate(repository, FakeVerifier())

    verdict = await gate.evaluate(FileTask("a.py"), RESOLVED)

    assert verdict.decision is Decision.STAGING_FAILED
    assert "index.lock exists" in state.resolution_errors[0].error
    assert state.file_attempts == {}


@pytest.mark.asyncio
async def test_verifier_crash_counts_as_rejection(repository):
    class CrashingVerifier:
        async def verify(self, path, content, attempt, max_attempts):
            raise ConnectionError("model unavailable")

    gate, state = make_gate(repository, CrashingVerifier())

    verdict = await gate.evaluate(FileTask("a.py"), RESOLVED)

    assert verdict.decision is Decision.RETRY
    assert verdict.issues[0].startswith("Verification agent failed:")
    assert "model unavailable" in verdict.issues[0]
    assert state.file_attempts == {"a.py": 1}


@pytest.mark.asyncio
async def test_verifier_error_outcome_counts_as_rejection(repository):
    class ErrorVerifier:
        async def verify(self, path, content, attempt, max_attempts):
            return VerificationOutcome(passed=False, error="bad JSON")

    gate, _ = make_gate(repository, ErrorVerifier())

    verdict = await gate.evaluate(FileTask("a.py"), RESOLVED)

    assert verdict.decision is Decision.RETRY
    assert verdict.issues == ["Verification agent failed: bad JSON"]


def test_classify_issues():
    summary = classify_issues([
        "Leftover conflict marker on line 3",
        "Line 4 still has =======",
        "Function foo is duplicated",
        "Redundant import",
        "Missing semicolon",
    ])

    assert len(summary.conflict_markers) == 2
    assert len(summary.duplicate_code) == 2
    assert summary.other == ["Missing semicolon"]
    assert summary.headline() == "conflict markers remain"
    assert summary.describe() == (
        "Resolution verification failed: Conflict markers still present "
        "in file. Duplicate code found in resolution. Other issues: "
        "Missing semicolon"
    )


@pytest.mark.asyncio
async def test_run_stage_stays_resolving_during_verification(repository):
    seen = []

    class StageRecordingVerifier(FakeVerifier):
        async def verify(self, path, content, attempt, max_attempts):
            seen.append(state.stage)
            return await super().verify(path, content, attempt, max_attempts)

    gate, state = make_gate(repository, StageRecordingVerifier())
    state.stage = Stage.RESOLVING_CONFLICTS

    await gate.evaluate(FileTask("a.py"), RESOLVED)

    assert seen == [Stage.RESOLVING_CONFLICTS]
    assert state.stage is Stage.RESOLVING_CONFLICTS
    assert [e.stage for e in gate.events.entries[:2]] == [
        Stage.VERIFYING_RESOLUTION,
        Stage.VERIFYING_RESOLUTION,
    ]
