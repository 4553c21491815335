"""
branch_sources.py – thin wrappers around the ``git`` CLI.

Everything here shells out to ``git`` and turns its line-oriented output into
:class:`Branch` / :class:`Commit` tuples.  Failures are raised as
:class:`SourceError`; nothing in this module exits the process.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import NamedTuple

DEFAULT_MAX_COUNT = 1000
FALLBACK_MAIN_BRANCH = "master"

# NUL can't appear in an author name or a subject line
LOG_FORMAT = "%H%x00%an%x00%s"
FIELD_SEP = "\0"

DETACHED_PREFIXES = ("(HEAD detached", "(no branch")


class SourceError(RuntimeError):
    """A ``git`` invocation failed or produced output we can't use."""

    def __init__(
        self,
        message: str,
        *,
        cmd: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class MalformedLineError(SourceError):
    """A branch or commit line doesn't have the expected shape."""

    def __init__(self, what: str, line: str):
        self.line = line
        super().__init__(f"malformed {what} line: {line!r}")


class ResolutionError(SourceError):
    """One step of main-branch name resolution failed (recoverable)."""


class Branch(NamedTuple):
    name: str
    current: bool = False


class Commit(NamedTuple):
    id: str
    author: str
    subject: str


def run_git(*args: str, cwd: str | Path | None = None) -> list[str]:
    """Run ``git *args`` and return its stdout split into lines."""
    cmd = ["git", *args]
    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as err:
        raise SourceError("git not found", cmd=cmd) from err

    if result.returncode != 0:
        stderr = result.stderr.strip()
        message = f"'{' '.join(cmd)}' failed ({result.returncode})"
        if stderr:
            message += f": {stderr}"
        raise SourceError(
            message, cmd=cmd, returncode=result.returncode, stderr=stderr
        )
    # only "\n" ends a line; subjects may hold \x1c, \x85, U+2028 and the like
    out = result.stdout
    return out.rstrip("\n").split("\n") if out else []


def parse_branch_line(line: str) -> Branch | None:
    """Parse one ``git branch`` line; ``None`` for detached-HEAD entries."""
    if len(line) < 3 or line[1] != " " or line[0] not in "* +":
        raise MalformedLineError("branch", line)
    name = line[2:]
    if name.startswith(DETACHED_PREFIXES):
        return None
    return Branch(name=name, current=line[0] == "*")


def list_branches(cwd: str | Path | None = None) -> list[Branch]:
    branches: list[Branch] = []
    for line in run_git("branch", cwd=cwd):
        branch = parse_branch_line(line)
        if branch is not None:
            branches.append(branch)
    return branches


def parse_commit_line(line: str) -> Commit:
    parts = line.split(FIELD_SEP, 2)
    if len(parts) != 3 or not parts[0]:
        raise MalformedLineError("commit", line)
    sha, author, subject = parts
    return Commit(id=sha, author=author, subject=subject)


def list_commits(
    ref: str,
    *,
    max_count: int = DEFAULT_MAX_COUNT,
    cwd: str | Path | None = None,
) -> list[Commit]:
    """Return up to *max_count* commits reachable from *ref*, newest first."""
    lines = run_git(
        "log",
        f"--pretty=format:{LOG_FORMAT}",
        f"--max-count={max_count}",
        ref,
        "--",
        cwd=cwd,
    )
    return [parse_commit_line(line) for line in lines]


# ── main branch resolution ───────────────────────────────────────────────
def _remote_head(remote: str, cwd: str | Path | None) -> str:
    ref_prefix = f"refs/remotes/{remote}/"
    try:
        lines = run_git("symbolic-ref", f"{ref_prefix}HEAD", cwd=cwd)
    except SourceError as err:
        raise ResolutionError(f"no HEAD for remote {remote!r}") from err
    if len(lines) != 1:
        raise ResolutionError(f"expected one line for symbolic-ref of {remote!r}")
    target = lines[0].strip()
    if target.startswith(ref_prefix):
        return target[len(ref_prefix) :]
    return target.rsplit("/", 1)[-1]


def _configured_default(cwd: str | Path | None) -> str:
    try:
        lines = run_git("config", "--get", "init.defaultBranch", cwd=cwd)
    except SourceError as err:
        raise ResolutionError("init.defaultBranch is not set") from err
    if len(lines) != 1 or not lines[0].strip():
        raise ResolutionError("init.defaultBranch is empty")
    return lines[0].strip()


def main_branch_name(cwd: str | Path | None = None) -> str:
    """
    Name of the repository's main branch.

    Tries the first remote's ``HEAD`` symbolic ref, then
    ``init.defaultBranch``, then falls back to ``master``.  Only a failure of
    ``git remote`` itself (e.g. not a repository) is raised.
    """
    remotes = run_git("remote", cwd=cwd)
    if remotes:
        try:
            return _remote_head(remotes[0].strip(), cwd)
        except ResolutionError:
            pass
    try:
        return _configured_default(cwd)
    except ResolutionError:
        return FALLBACK_MAIN_BRANCH
