"""Git implementation of the version-control boundary."""

from __future__ import annotations

import shlex
from pathlib import Path

from rebasecat.core.log import logger
from rebasecat.core.runner import Runner
from rebasecat.git.base import CommandResult, Snapshot

# Used when the configuration does not override a template.
# Placeholders are shell-quoted before substitution.
DEFAULT_COMMANDS = {
    "is_inside_work_tree": "git rev-parse --is-inside-work-tree",
    "verify_ref": "git rev-parse --verify --quiet {ref}",
    "status_porcelain": "git status --porcelain",
    "rev_parse_head": "git rev-parse HEAD",
    "current_branch": "git symbolic-ref --quiet --short HEAD",
    "git_path": "git rev-parse --git-path {name}",
    "rebase_start": "git rebase {target} {source}",
    "rebase_continue": "git rebase --continue",
    "rebase_abort": "git rebase --abort",
    "diff_conflicted_files": (
        "git -c core.quotepath=false diff --name-only --diff-filter=U"
    ),
    "add_file": "git add -- {filepath}",
    "checkout_force": "git checkout --force {branch}",
    "reset_hard": "git reset --hard {revision}",
}

# Never open an editor for commit messages while replaying
REBASE_ENV = {"GIT_EDITOR": "true", "GIT_SEQUENCE_EDITOR": "true"}

# Same heuristic git uses: a NUL byte in the first 8000 bytes
BINARY_CHECK_BYTES = 8000


class GitRepository:
    """Runs the git commands the rebase workflow needs.

    Command templates come from the ``commands.git`` section of the
    configuration, falling back to DEFAULT_COMMANDS.
    """

    def __init__(self, workdir: Path, config=None, runner: Runner | None = None):
        """Initialize repository wrapper.

        Args:
            workdir: Path to the git working directory
            config: Configuration object with command templates
            runner: Command runner (a new Runner by default)
        """
        self.workdir = Path(workdir)
        self.config = config
        self.runner = runner or Runner()
        self.commands = dict(DEFAULT_COMMANDS)
        if config is not None:
            self.commands.update(config.commands.get("git", {}))

    def _command(self, name: str, **params: str) -> str:
        quoted = {key: shlex.quote(str(value)) for key, value in params.items()}
        return self.commands[name].format(**quoted)

    def _run(
        self, name: str, env: dict[str, str] | None = None, **params: str
    ) -> CommandResult:
        cmd = self._command(name, **params)
        result = self.runner.execute(cmd, cwd=self.workdir, check=False, env=env)
        output = (result.stdout + result.stderr).strip()
        logger.debug(
            f"git {name} exited {result.exited}",
            command=cmd,
            exit_code=result.exited,
        )
        return CommandResult(ok=result.exited == 0, output=output)

    def _stdout(self, name: str, **params: str) -> str | None:
        """Stdout of a query command, or None if it failed."""
        cmd = self._command(name, **params)
        result = self.runner.execute(cmd, cwd=self.workdir, check=False)
        if result.exited != 0:
            return None
        return result.stdout.strip()

    # ---- queries ----

    def is_valid_repository(self) -> bool:
        if not self.workdir.is_dir():
            return False
        return self._stdout("is_inside_work_tree") == "true"

    def branch_exists(self, name: str) -> bool:
        return self._stdout("verify_ref", ref=name) is not None

    def is_clean_working_tree(self) -> bool:
        """True when no tracked file has changes.

        Untracked and ignored entries are tolerated, as are
        directory placeholders (paths ending in ``/``).
        """
        status = self._stdout("status_porcelain")
        if status is None:
            return False

        for line in status.splitlines():
            code, path = line[:2], line[3:]
            if code in ("??", "!!"):
                continue
            if " -> " in path:
                path = path.split(" -> ", 1)[1]
            if path.rstrip('"').endswith("/"):
                continue
            logger.debug("Tracked change in working tree", entry=line)
            return False
        return True

    def current_revision(self) -> Snapshot:
        revision = self._stdout("rev_parse_head")
        if not revision:
            raise RuntimeError(f"Cannot resolve HEAD in {self.workdir}")
        branch = self._stdout("current_branch") or None
        return Snapshot(revision=revision, branch=branch)

    def is_rebase_in_progress(self) -> bool:
        for name in ("rebase-merge", "rebase-apply"):
            git_path = self._stdout("git_path", name=name)
            if git_path and (self.workdir / git_path).is_dir():
                return True
        return False

    def list_unmerged_files(self) -> list[str]:
        output = self._stdout("diff_conflicted_files")
        if not output:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def is_binary(self, path: str) -> bool:
        try:
            with open(self.workdir / path, "rb") as f:
                return b"\0" in f.read(BINARY_CHECK_BYTES)
        except OSError:
            return False

    def read_file(self, path: str) -> str:
        """Read a working-tree file.

        Raises:
            OSError: If the file does not exist or cannot be read
        """
        return (self.workdir / path).read_text(encoding="utf-8")

    # ---- mutations ----

    def start_or_continue_rebase(self, target: str, source: str) -> CommandResult:
        """Continue the rebase in progress, or start one.

        Starting ``git rebase target source`` when source is already
        on top of target is a successful no-op, which makes repeated
        detection after the last round settle on success.
        """
        if self.is_rebase_in_progress():
            logger.info("Rebase in progress, continuing it")
            return self.continue_rebase()

        logger.info(f"Starting rebase of {source} onto {target}")
        return self._run("rebase_start", env=REBASE_ENV, target=target, source=source)

    def continue_rebase(self) -> CommandResult:
        return self._run("rebase_continue", env=REBASE_ENV)

    def abort_rebase(self) -> CommandResult:
        return self._run("rebase_abort")

    def stage(self, path: str) -> CommandResult:
        """Stage a resolved file with git add.

        A path git no longer knows about was already staged as a
        deletion (git rm), which counts as success.
        """
        result = self._run("add_file", filepath=path)
        if not result.ok and "did not match any files" in result.output:
            logger.info(f"File {path} already staged (likely deleted with git rm)")
            return CommandResult(ok=True, output=result.output)
        return result

    def hard_reset(self, snapshot: Snapshot) -> CommandResult:
        """Restore the branch and working tree recorded in snapshot."""
        if snapshot.branch:
            checkout = self._run("checkout_force", branch=snapshot.branch)
            if not checkout.ok:
                return checkout
        return self._run("reset_hard", revision=snapshot.revision)


__all__ = ["GitRepository", "DEFAULT_COMMANDS"]
