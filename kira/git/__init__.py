"""Git operations: repository wrapper, state detection, conflict parsing."""

from .conflicts import (
    ConflictRegion,
    FileConflict,
    RepositoryConflicts,
    collect_repository_conflicts,
    parse_conflict_markers,
)
from .repository import GitError, Repository, RepositoryInfo, StatusEntry
from .state import (
    AggregatedState,
    RepositoryState,
    RepositoryStateInfo,
    aggregate_states,
    blocking_states,
    detect_all,
    detect_state,
)

__all__ = [
    # conflicts
    "ConflictRegion",
    "FileConflict",
    "RepositoryConflicts",
    "collect_repository_conflicts",
    "parse_conflict_markers",
    # repository
    "GitError",
    "Repository",
    "RepositoryInfo",
    "StatusEntry",
    # state
    "AggregatedState",
    "RepositoryState",
    "RepositoryStateInfo",
    "aggregate_states",
    "blocking_states",
    "detect_all",
    "detect_state",
]
