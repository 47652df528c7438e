"""Repository state detection and aggregation.

Every decision ``kira latest`` makes starts here: each repository is
classified from its live git metadata, then the per-repository states are
reduced to a single overall state.

Usage:
    states = detect_all(repos)
    aggregated = aggregate_states(states)
    if aggregated.overall_state is RepositoryState.CONFLICTS_EXIST:
        ...
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from kira.core.config import DEFAULT_COMMAND_TIMEOUT
from kira.core.result import Err, Ok, Result

from .conflicts import conflicting_files
from .repository import GitError, Repository, RepositoryInfo, mentions_conflict

__all__ = [
    "AggregatedState",
    "RepositoryState",
    "RepositoryStateInfo",
    "aggregate_states",
    "blocking_states",
    "detect_all",
    "detect_state",
    "has_conflicts",
    "resolution_hint",
]

# Phrases from human-readable `git status` that mean unmerged paths.
STATUS_CONFLICT_PHRASES = (
    "Unmerged paths",
    "both modified",
    "both added",
    "deleted by them",
    "deleted by us",
)


class RepositoryState(StrEnum):
    READY_FOR_UPDATE = "ready_for_update"
    CONFLICTS_EXIST = "conflicts_exist"
    DIRTY_WORKING_DIRECTORY = "dirty_working_directory"
    IN_REBASE = "in_rebase"
    IN_MERGE = "in_merge"
    ERROR = "error"


# Highest priority first; the first state present wins the aggregate.
STATE_PRIORITY: tuple[RepositoryState, ...] = (
    RepositoryState.CONFLICTS_EXIST,
    RepositoryState.IN_REBASE,
    RepositoryState.IN_MERGE,
    RepositoryState.DIRTY_WORKING_DIRECTORY,
    RepositoryState.ERROR,
    RepositoryState.READY_FOR_UPDATE,
)

_BLOCKING = frozenset(
    {
        RepositoryState.CONFLICTS_EXIST,
        RepositoryState.IN_REBASE,
        RepositoryState.IN_MERGE,
        RepositoryState.ERROR,
    }
)

_HINTS: dict[RepositoryState, str] = {
    RepositoryState.CONFLICTS_EXIST: "Resolve the conflicts, 'git add' the files, then run 'kira latest' again",
    RepositoryState.IN_REBASE: "Finish with 'git rebase --continue' or cancel with 'git rebase --abort'",
    RepositoryState.IN_MERGE: "Finish with 'git commit' or cancel with 'git merge --abort'",
    RepositoryState.ERROR: "Check the repository with 'git status' and fix the reported problem",
}


@dataclass(frozen=True, slots=True)
class RepositoryStateInfo:
    """Detected state of one repository.

    Attributes:
        repo: The repository
        state: Classification
        detail: Short human-readable explanation (may be empty)
        error: Underlying error message when state is ERROR
    """

    repo: RepositoryInfo
    state: RepositoryState
    detail: str = ""
    error: str | None = None

    @property
    def name(self) -> str:
        return self.repo.name


@dataclass(frozen=True, slots=True)
class AggregatedState:
    """Overall state plus repository names bucketed by state."""

    overall_state: RepositoryState
    states: tuple[RepositoryStateInfo, ...] = ()
    conflicting: tuple[str, ...] = ()
    dirty: tuple[str, ...] = ()
    in_operation: tuple[str, ...] = ()
    errored: tuple[str, ...] = ()
    ready: tuple[str, ...] = ()

    def with_state(self, state: RepositoryState) -> list[RepositoryStateInfo]:
        return [info for info in self.states if info.state is state]


def has_conflicts(git: Repository) -> Result[bool, GitError]:
    """Check for unresolved conflicts.

    ``git diff --check`` catches leftover markers; ``git status`` catches
    unmerged paths that have no markers (delete/modify and friends).
    """
    check_output = git.diff_check_output()
    if "<<<<<<<" in check_output or mentions_conflict(check_output):
        return Ok(True)

    match git.status_text():
        case Err(e):
            return Err(e)
        case Ok(text):
            return Ok(any(phrase in text for phrase in STATUS_CONFLICT_PHRASES))


def _error(repo: RepositoryInfo, error: GitError) -> RepositoryStateInfo:
    return RepositoryStateInfo(
        repo=repo,
        state=RepositoryState.ERROR,
        detail=f"git {error.command} failed",
        error=error.message,
    )


def _in_operation(
    repo: RepositoryInfo,
    git: Repository,
    operation: str,
    state: RepositoryState,
) -> RepositoryStateInfo:
    match has_conflicts(git):
        case Err(e):
            return _error(repo, e)
        case Ok(True):
            return RepositoryStateInfo(
                repo, RepositoryState.CONFLICTS_EXIST, f"conflicts detected during {operation} operation"
            )
        case Ok(_):
            return RepositoryStateInfo(repo, state, f"{operation} in progress")


def detect_state(
    repo: RepositoryInfo,
    git: Repository | None = None,
    *,
    timeout: float = DEFAULT_COMMAND_TIMEOUT,
) -> RepositoryStateInfo:
    """Classify one repository from its current git metadata."""
    git = git or Repository(repo.path, timeout=timeout)

    if git.rebase_in_progress():
        return _in_operation(repo, git, "rebase", RepositoryState.IN_REBASE)
    if git.merge_in_progress():
        return _in_operation(repo, git, "merge", RepositoryState.IN_MERGE)

    match git.status_entries():
        case Err(e):
            return _error(repo, e)
        case Ok(entries):
            pass

    unmerged = conflicting_files(entries)
    conflicted = bool(unmerged)
    if not conflicted:
        match has_conflicts(git):
            case Err(e):
                return _error(repo, e)
            case Ok(found):
                conflicted = found

    if conflicted:
        detail = f"conflicts in: {', '.join(unmerged)}" if unmerged else "merge conflicts detected"
        return RepositoryStateInfo(repo, RepositoryState.CONFLICTS_EXIST, detail)

    if entries:
        return RepositoryStateInfo(
            repo, RepositoryState.DIRTY_WORKING_DIRECTORY, f"{len(entries)} uncommitted change(s)"
        )
    return RepositoryStateInfo(repo, RepositoryState.READY_FOR_UPDATE)


def detect_all(
    repos: Iterable[RepositoryInfo],
    *,
    timeout: float = DEFAULT_COMMAND_TIMEOUT,
) -> list[RepositoryStateInfo]:
    """Detect every repository in order, one at a time.

    A failing repository becomes an ERROR entry; the others are still checked.
    """
    return [detect_state(repo, timeout=timeout) for repo in repos]


def aggregate_states(states: Sequence[RepositoryStateInfo]) -> AggregatedState:
    """Reduce per-repository states to one overall state (empty input is ready)."""
    present = {info.state for info in states}
    overall = next(
        (state for state in STATE_PRIORITY if state in present),
        RepositoryState.READY_FOR_UPDATE,
    )

    def names(*wanted: RepositoryState) -> tuple[str, ...]:
        return tuple(info.name for info in states if info.state in wanted)

    return AggregatedState(
        overall_state=overall,
        states=tuple(states),
        conflicting=names(RepositoryState.CONFLICTS_EXIST),
        dirty=names(RepositoryState.DIRTY_WORKING_DIRECTORY),
        in_operation=names(RepositoryState.IN_REBASE, RepositoryState.IN_MERGE),
        errored=names(RepositoryState.ERROR),
        ready=names(RepositoryState.READY_FOR_UPDATE),
    )


def blocking_states(aggregated: AggregatedState) -> list[RepositoryStateInfo]:
    """Repositories that must be dealt with before any update may start."""
    return [info for info in aggregated.states if info.state in _BLOCKING]


def resolution_hint(state: RepositoryState) -> str | None:
    return _HINTS.get(state)
