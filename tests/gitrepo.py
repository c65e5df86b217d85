"""Helpers for building throwaway git repositories in tests."""

import subprocess


def git(workdir, *args):
    subprocess.run(
        ["git", *args], cwd=workdir, check=True, capture_output=True, text=True
    )


def git_output(workdir, *args):
    return subprocess.run(
        ["git", *args], cwd=workdir, check=True, capture_output=True, text=True
    ).stdout.strip()


def commit(workdir, path, content, message):
    (workdir / path).write_text(content)
    git(workdir, "add", path)
    git(workdir, "commit", "-q", "-m", message)


def make_conflicting_repo(workdir):
    """main and feature each change line two of a.txt; feature is checked out."""
    workdir.mkdir()
    git(workdir, "init", "-q", "-b", "main")
    git(workdir, "config", "user.name", "Test")
    git(workdir, "config", "user.email", "test@example.com")
    git(workdir, "config", "commit.gpgsign", "false")

    commit(workdir, "a.txt", "one\ntwo\nthree\n", "base")
    git(workdir, "checkout", "-q", "-b", "feature")
    commit(workdir, "a.txt", "one\nfeature two\nthree\n", "feature change")
    git(workdir, "checkout", "-q", "main")
    commit(workdir, "a.txt", "one\nmain two\nthree\n", "main change")
    git(workdir, "checkout", "-q", "feature")
    return workdir
