"""In-memory collaborators for orchestrator tests, and a resolver
that writes into a real working directory."""

from rebasecat.git.base import CommandResult, Snapshot
from rebasecat.model.resolver import ResolutionOutcome
from rebasecat.model.verifier import VerificationOutcome

CONFLICTED = (
    "line one\n"
    "<<<<<<< HEAD\n"
    "ours\n"
    "=======\n"
    "theirs\n"
    ">>>>>>> feature\n"
    "line three\n"
)
RESOLVED = "line one\nours and theirs\nline three\n"


class FakeRepository:
    """In-memory stand-in for GitRepository.

    ``conflict_rounds`` is a list of file lists: each call to
    start_or_continue_rebase() moves to the next one, so a test can
    script several commits that each stop at conflicts. File contents
    live in ``files``; staging a path removes it from the unmerged
    set.
    """

    def __init__(
        self,
        conflict_rounds=None,
        files=None,
        valid=True,
        branches=("feature", "main"),
        clean=True,
        binary=(),
    ):
        self.conflict_rounds = [list(r) for r in (conflict_rounds or [])]
        self.files = dict(files or {})
        self.valid = valid
        self.branches = set(branches)
        self.clean = clean
        self.binary = set(binary)
        self.snapshot = Snapshot(revision="a" * 40, branch="feature")

        self.unmerged: list[str] = []
        self.staged: list[str] = []
        self.calls: list[str] = []
        self.rebase_result = CommandResult(ok=True)
        self.stage_result = CommandResult(ok=True)
        self.continue_result = None
        self.reset_result = CommandResult(ok=True)
        self.rounds_started = 0

    def _record(self, name):
        self.calls.append(name)

    def is_valid_repository(self):
        self._record("is_valid_repository")
        return self.valid

    def branch_exists(self, name):
        self._record("branch_exists")
        return name in self.branches

    def is_clean_working_tree(self):
        self._record("is_clean_working_tree")
        return self.clean

    def current_revision(self):
        self._record("current_revision")
        return self.snapshot

    def start_or_continue_rebase(self, target, source):
        self._record("start_or_continue_rebase")
        if self.rounds_started < len(self.conflict_rounds):
            self.unmerged = list(self.conflict_rounds[self.rounds_started])
            self.rounds_started += 1
            if self.unmerged:
                return CommandResult(ok=False, output="CONFLICT (content)")
        return self.rebase_result

    def list_unmerged_files(self):
        self._record("list_unmerged_files")
        return list(self.unmerged)

    def is_binary(self, path):
        return path in self.binary

    def read_file(self, path):
        self._record(f"read_file:{path}")
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def continue_rebase(self):
        self._record("continue_rebase")
        if self.continue_result is not None:
            return self.continue_result
        return CommandResult(ok=True)

    def stage(self, path):
        self._record(f"stage:{path}")
        if not self.stage_result.ok:
            return self.stage_result
        self.staged.append(path)
        if path in self.unmerged:
            self.unmerged.remove(path)
        return self.stage_result

    def abort_rebase(self):
        self._record("abort_rebase")
        return CommandResult(ok=True)

    def hard_reset(self, snapshot):
        self._record("hard_reset")
        self.reset_to = snapshot
        return self.reset_result


class FakeResolver:
    """Writes RESOLVED into the repository's files on every call.

    ``usage`` is attached to every outcome, as a real agent run would.
    """

    def __init__(self, repository, content=RESOLVED, fail_with=None, usage=None):
        self.repository = repository
        self.content = content
        self.fail_with = fail_with
        self.usage = usage
        self.calls: list[tuple[str, str | None]] = []

    async def resolve(self, path, content, failure_context=None):
        self.calls.append((path, failure_context))
        if self.fail_with is not None:
            return ResolutionOutcome(
                ok=False, error=self.fail_with, usage=self.usage
            )
        self.write(path)
        return ResolutionOutcome(ok=True, usage=self.usage)

    def write(self, path):
        self.repository.files[path] = self.content


class WorkdirResolver(FakeResolver):
    """Writes the resolution into a real working directory."""

    def __init__(self, workdir, content=RESOLVED, usage=None):
        super().__init__(None, content=content, usage=usage)
        self.workdir = workdir

    def write(self, path):
        (self.workdir / path).write_text(self.content)


class FakeVerifier:
    """Returns scripted verdicts, then passes.

    ``rejections`` maps a path to the number of times it is rejected
    before being accepted; ``always_reject`` rejects everything.
    """

    def __init__(
        self, rejections=None, always_reject=False, issues=None, usage=None
    ):
        self.rejections = dict(rejections or {})
        self.always_reject = always_reject
        self.issues = issues or ["Conflict markers remain in the file"]
        self.usage = usage
        self.calls: list[tuple[str, int, int]] = []

    async def verify(self, path, content, attempt, max_attempts):
        self.calls.append((path, attempt, max_attempts))
        if self.always_reject:
            return self._reject()
        if self.rejections.get(path, 0) > 0:
            self.rejections[path] -= 1
            return self._reject()
        return VerificationOutcome(passed=True, usage=self.usage)

    def _reject(self):
        return VerificationOutcome(
            passed=False, issues=list(self.issues), usage=self.usage
        )
