"""Git repository abstraction.

``Repository`` wraps the handful of git commands the latest engine needs.
Every call shells out to the system ``git`` under a timeout and returns a
Result; nothing here raises for git failures.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.current_branch():
        case Ok(branch):
            print(f"Branch: {branch}")
        case Err(e):
            print(f"Error: {e.message}")

    match repo.rebase("origin/main"):
        case Err(e) if mentions_conflict(e.message):
            print("rebase stopped on conflicts")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from kira.core.config import DEFAULT_COMMAND_TIMEOUT, DEFAULT_NETWORK_TIMEOUT
from kira.core.result import Err, Ok, Result
from kira.platform.process import ProcessError
from kira.platform.process import run as run_process

# Keeps automated rebases from blocking on an editor or pager.
GIT_NON_INTERACTIVE_ENV: dict[str, str] = {"GIT_EDITOR": "true", "GIT_PAGER": "cat"}

# Porcelain XY codes git uses for unmerged paths (besides anything with a U).
CONFLICT_STATUS_CODES = frozenset({"AA", "DD", "AU", "UA", "DU", "UD"})

__all__ = [
    "CONFLICT_STATUS_CODES",
    "GIT_NON_INTERACTIVE_ENV",
    "GitError",
    "Repository",
    "RepositoryInfo",
    "StatusEntry",
    "mentions_conflict",
    "parse_porcelain",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed (e.g. "fetch origin main")
        message: Combined git output, or a short description if git printed nothing
        returncode: Process return code (-1 if git could not run or timed out)
        timed_out: True if the command hit its timeout
    """

    command: str
    message: str
    returncode: int = 1
    timed_out: bool = False


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single ``git status --porcelain -z`` entry.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??", "UU")
        path: File path relative to the repository root, never quoted
        orig_path: Source path of a rename or copy
    """

    xy: str
    path: str
    orig_path: str | None = None

    @property
    def is_conflicted(self) -> bool:
        """True for unmerged paths (any U, or both-added / both-deleted)."""
        return "U" in self.xy or self.xy in CONFLICT_STATUS_CODES


@dataclass(frozen=True, slots=True)
class RepositoryInfo:
    """A repository taking part in the current unit of work.

    Attributes:
        name: Display name (project name, or the directory name when standalone)
        path: Absolute path to the working tree
        trunk_branch: Branch to rebase onto
        remote: Remote to fetch the trunk from
        shared_root_key: Set when several projects share one physical repository
    """

    name: str
    path: Path
    trunk_branch: str
    remote: str = "origin"
    shared_root_key: str | None = None

    @property
    def upstream(self) -> str:
        """The remote-tracking ref rebased onto (e.g. "origin/main")."""
        return f"{self.remote}/{self.trunk_branch}"


def mentions_conflict(text: str) -> bool:
    """True if git output reports a conflict.

    Plain substring matching on git's human-readable output; fragile across
    git versions and locales, but it is what git offers for rebase/stash.
    """
    return "CONFLICT" in text or "conflict" in text


def parse_porcelain(output: str) -> tuple[StatusEntry, ...]:
    """Parse ``git status --porcelain -z`` output.

    Records are NUL-terminated and paths are taken as-is (no C-style
    quoting in ``-z`` mode). A rename or copy record is followed by one
    extra field holding the source path.
    """
    fields = output.split("\0")
    entries: list[StatusEntry] = []
    index = 0
    while index < len(fields):
        record = fields[index]
        index += 1
        if len(record) < 4:
            continue
        xy = record[:2]
        orig_path = None
        if "R" in xy or "C" in xy:
            orig_path = fields[index] if index < len(fields) else None
            index += 1
        entries.append(StatusEntry(xy=xy, path=record[3:], orig_path=orig_path))
    return tuple(entries)


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository working tree
    """

    def __init__(
        self,
        path: Path,
        *,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        network_timeout: float = DEFAULT_NETWORK_TIMEOUT,
    ) -> None:
        self.path = path
        self._timeout = timeout
        self._network_timeout = network_timeout

    def exists(self) -> bool:
        """Check if this is a git repository (.git is a directory, or a file for worktrees)."""
        return (self.path / ".git").exists()

    def git_dir(self) -> Path:
        """Resolve the git metadata directory.

        For worktrees ``.git`` is a file pointing elsewhere, so ask git and
        fall back to ``<path>/.git`` if that fails.
        """
        fallback = self.path / ".git"
        match self._run(["rev-parse", "--git-dir"]):
            case Ok(stdout):
                value = stdout.strip()
                if not value:
                    return fallback
                git_dir = Path(value)
                return git_dir if git_dir.is_absolute() else self.path / git_dir
            case Err(_):
                return fallback

    def rebase_in_progress(self) -> bool:
        git_dir = self.git_dir()
        return (git_dir / "rebase-merge").exists() or (git_dir / "rebase-apply").exists()

    def merge_in_progress(self) -> bool:
        return (self.git_dir() / "MERGE_HEAD").exists()

    def status_porcelain(self) -> Result[str, GitError]:
        """Raw ``git status --porcelain -z`` output (NUL-terminated records)."""
        return self._git(["status", "--porcelain", "-z"], "git status failed")

    def status_entries(self) -> Result[tuple[StatusEntry, ...], GitError]:
        """Parsed working tree status, one entry per changed path."""
        return self.status_porcelain().map(parse_porcelain)

    def status_text(self) -> Result[str, GitError]:
        """Human-readable ``git status`` output."""
        return self._git(["status"], "git status failed")

    def diff_check_output(self) -> str:
        """Output of ``git diff --check``.

        git exits non-zero when it finds problems; the combined output is
        what matters, so failures are folded into the returned text.
        """
        match self._run(["diff", "--check"]):
            case Ok(stdout):
                return stdout
            case Err(e):
                return e.output

    def has_changes(self) -> Result[bool, GitError]:
        """True if the working tree has staged, unstaged or untracked changes."""
        return self.status_porcelain().map(lambda out: out.strip() != "")

    def current_branch(self) -> Result[str, GitError]:
        """Current branch name ("HEAD" when detached)."""
        return self._git(["rev-parse", "--abbrev-ref", "HEAD"], "could not determine branch").map(
            str.strip
        )

    def branch_exists(self, branch: str) -> Result[bool, GitError]:
        """Check for a local branch. Exit code 1 from show-ref means "absent"."""
        result = self._run(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                return Ok(False)
            case Err(e):
                return Err(self._error(f"show-ref {branch}", e, "show-ref failed"))

    def remote_exists(self, remote: str) -> bool:
        return isinstance(self._run(["remote", "get-url", remote]), Ok)

    def fetch(self, remote: str, branch: str) -> Result[str, GitError]:
        return self._git(["fetch", remote, branch], "fetch failed")

    def rebase(self, onto: str) -> Result[str, GitError]:
        """Rebase the current branch onto ``onto`` without any interactive prompt."""
        return self._git(["rebase", onto], "rebase failed", env=GIT_NON_INTERACTIVE_ENV)

    def rebase_continue(self) -> Result[str, GitError]:
        """Continue an in-progress rebase, keeping the recorded commit messages."""
        return self._git(
            ["rebase", "--continue"], "rebase --continue failed", env=GIT_NON_INTERACTIVE_ENV
        )

    def rebase_abort(self) -> Result[None, GitError]:
        """Abort an in-progress rebase. No rebase in progress is not an error."""
        match self._run(["rebase", "--abort"]):
            case Ok(_):
                return Ok(None)
            case Err(e):
                text = e.output.lower()
                if "no rebase in progress" in text:
                    return Ok(None)
                return Err(self._error("rebase --abort", e, "rebase --abort failed"))

    def stash_push(self, message: str) -> Result[bool, GitError]:
        """Stash all changes including untracked files.

        Returns Ok(False) when there was nothing to stash.
        """
        result = self._run(["stash", "push", "-m", message, "--include-untracked"])
        match result:
            case Ok(stdout):
                return Ok("No local changes to save" not in stdout)
            case Err(e) if "No local changes to save" in e.output:
                return Ok(False)
            case Err(e):
                return Err(self._error("stash push", e, "stash failed"))

    def stash_pop(self) -> Result[bool, GitError]:
        """Pop the most recent stash. Returns Ok(False) when there was no stash."""
        match self._run(["stash", "pop"]):
            case Ok(_):
                return Ok(True)
            case Err(e) if "No stash entries found" in e.output:
                return Ok(False)
            case Err(e):
                return Err(self._error("stash pop", e, "stash pop failed"))

    def _git(
        self,
        args: list[str],
        fallback: str,
        *,
        env: dict[str, str] | None = None,
    ) -> Result[str, GitError]:
        result = self._run(args, env=env)
        match result:
            case Err(e):
                return Err(self._error(" ".join(args), e, fallback))
            case Ok(stdout):
                return Ok(stdout)

    def _error(self, command: str, error: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=error.output or fallback,
            returncode=error.returncode,
            timed_out=error.timed_out,
        )

    def _run(
        self,
        args: list[str],
        *,
        env: dict[str, str] | None = None,
    ) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = self._network_timeout if command in {"fetch", "pull", "push"} else self._timeout
        return run_process(
            ["git", "-C", str(self.path), *args],
            cwd=self.path,
            extra_env=env,
            timeout=timeout,
        )
