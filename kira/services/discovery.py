"""Repository discovery for the current unit of work.

Works out which git repositories ``kira latest`` should touch: the single
work item in the doing folder must exist, then the workspace topology in
kira.yml decides between one repository (standalone / monorepo) and one
per project (polyrepo).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Literal

from kira.core.config import DEFAULT_REMOTE, Config, ProjectConfig
from kira.core.result import Err, Ok, Result
from kira.core.work_item import WorkItem, WorkItemError, find_current_work_item, load_work_item
from kira.core.workspace import Workspace
from kira.git.repository import Repository, RepositoryInfo

__all__ = [
    "Discovery",
    "DiscoveryError",
    "Topology",
    "detect_topology",
    "discover_repositories",
    "find_git_root",
    "order_repositories",
    "resolve_trunk_branch",
    "validate_repositories",
]

TRUNK_CANDIDATES = ("main", "master")

# -----------------------------------------------------------------------------
# Types
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DiscoveryError:
    """Discovery failure. Nothing has been changed on disk when this is returned."""

    kind: Literal["work_item", "not_a_repo", "validation", "trunk"]
    message: str
    hint: str | None = None
    work_item_error: WorkItemError | None = None


class Topology(StrEnum):
    STANDALONE = "standalone"
    MONOREPO = "monorepo"
    POLYREPO = "polyrepo"


@dataclass(frozen=True, slots=True)
class Discovery:
    work_item: WorkItem
    topology: Topology
    repositories: tuple[RepositoryInfo, ...]


@dataclass(frozen=True, slots=True)
class _Candidate:
    name: str
    path: Path
    project: ProjectConfig | None = None


# -----------------------------------------------------------------------------
# Topology
# -----------------------------------------------------------------------------


def find_git_root(start: Path) -> Path | None:
    """Walk upward from start to the first directory containing ``.git``."""
    start = start.resolve()
    for parent in (start, *start.parents):
        if (parent / ".git").exists():
            return parent
    return None


def _resolve_project_path(raw: str, base: Path) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = base / path
    return path.resolve()


def detect_topology(config: Config, base: Path) -> Topology:
    """Classify the workspace from its project list.

    Any ``repo_root``, or a project path that is itself a git repository,
    means polyrepo. Projects that all live in the main repository mean
    monorepo.
    """
    projects = config.projects
    if not projects:
        return Topology.STANDALONE
    if any(p.repo_root for p in projects):
        return Topology.POLYREPO
    for project in projects:
        if project.path and (_resolve_project_path(project.path, base) / ".git").exists():
            return Topology.POLYREPO
    return Topology.MONOREPO


# -----------------------------------------------------------------------------
# Trunk branch
# -----------------------------------------------------------------------------


def resolve_trunk_branch(
    config: Config,
    project: ProjectConfig | None,
    repo_path: Path,
) -> Result[str, DiscoveryError]:
    """Trunk branch priority: project override, then git.trunk_branch, then auto-detect.

    Auto-detection needs exactly one of ``main`` / ``master`` to exist locally.
    """
    if project is not None and project.trunk_branch:
        return Ok(project.trunk_branch)
    if config.git.trunk_branch:
        return Ok(config.git.trunk_branch)

    repo = Repository(repo_path, timeout=config.git.command_timeout)
    found: list[str] = []
    for branch in TRUNK_CANDIDATES:
        match repo.branch_exists(branch):
            case Err(e):
                return Err(
                    DiscoveryError(
                        kind="trunk",
                        message=f"failed to check for '{branch}' branch in {repo_path}: {e.message}",
                    )
                )
            case Ok(True):
                found.append(branch)
            case Ok(_):
                pass

    if len(found) == 1:
        return Ok(found[0])

    hint = "Set git.trunk_branch in kira.yml (or trunk_branch on the project)"
    if found:
        message = (
            f"both 'main' and 'master' branches exist in {repo_path}: "
            "cannot auto-detect trunk branch"
        )
    else:
        message = f"trunk branch not found in {repo_path}: neither 'main' nor 'master' exists"
    return Err(DiscoveryError(kind="trunk", message=message, hint=hint))


def _resolve_remote(config: Config, project: ProjectConfig | None) -> str:
    if project is not None and project.remote:
        return project.remote
    return config.git.remote or DEFAULT_REMOTE


# -----------------------------------------------------------------------------
# Discovery
# -----------------------------------------------------------------------------


def _candidates(config: Config, topology: Topology, git_root: Path) -> list[_Candidate]:
    if topology is not Topology.POLYREPO:
        return [_Candidate(name=git_root.name, path=git_root)]
    return [
        _Candidate(name=p.name, path=_resolve_project_path(p.path, git_root), project=p)
        for p in config.projects
        if p.path
    ]


def validate_repositories(candidates: Sequence[tuple[str, Path]]) -> Result[None, DiscoveryError]:
    """Check every (name, path) pair is an existing git repository.

    All problems are reported together.
    """
    problems: list[str] = []
    for name, path in candidates:
        if not path.exists():
            problems.append(f"repository path does not exist: {path} (for {name})")
        elif not Repository(path).exists():
            problems.append(f"path is not a git repository: {path} (for {name})")

    if problems:
        return Err(
            DiscoveryError(
                kind="validation",
                message="repository validation failed:\n  " + "\n  ".join(problems),
                hint="Check workspace.projects paths in kira.yml",
            )
        )
    return Ok(None)


def discover_repositories(config: Config, workspace: Workspace) -> Result[Discovery, DiscoveryError]:
    """Find the repositories for the work item currently in progress.

    Everything is validated before returning; no git state is modified.
    """
    match find_current_work_item(config):
        case Err(e):
            return Err(_work_item_error(e))
        case Ok(item_path):
            pass

    match load_work_item(item_path):
        case Err(e):
            return Err(_work_item_error(e))
        case Ok(work_item):
            pass

    git_root = find_git_root(workspace.root)
    if git_root is None:
        return Err(
            DiscoveryError(
                kind="not_a_repo",
                message=f"not a git repository: {workspace.root} (or any parent)",
                hint="Run kira inside a git repository",
            )
        )

    topology = detect_topology(config, git_root)
    candidates = _candidates(config, topology, git_root)

    checked = validate_repositories([(c.name, c.path) for c in candidates])
    if isinstance(checked, Err):
        return checked

    repos: list[RepositoryInfo] = []
    for candidate in candidates:
        match resolve_trunk_branch(config, candidate.project, candidate.path):
            case Err(e):
                return Err(e)
            case Ok(trunk):
                pass
        repos.append(
            RepositoryInfo(
                name=candidate.name,
                path=candidate.path,
                trunk_branch=trunk,
                remote=_resolve_remote(config, candidate.project),
                shared_root_key=candidate.project.repo_root if candidate.project else None,
            )
        )

    return Ok(Discovery(work_item=work_item, topology=topology, repositories=tuple(repos)))


def _work_item_error(error: WorkItemError) -> DiscoveryError:
    return DiscoveryError(
        kind="work_item",
        message=error.message,
        hint=error.hint,
        work_item_error=error,
    )


# -----------------------------------------------------------------------------
# Ordering
# -----------------------------------------------------------------------------


def order_repositories(repos: Sequence[RepositoryInfo]) -> list[RepositoryInfo]:
    """Order repositories so shared-root groups are adjacent.

    Groups come first, in order of first appearance, each keeping its
    members' original order; ungrouped repositories follow in original order.
    """
    groups: dict[str, list[RepositoryInfo]] = {}
    ungrouped: list[RepositoryInfo] = []
    for repo in repos:
        if repo.shared_root_key:
            groups.setdefault(repo.shared_root_key, []).append(repo)
        else:
            ungrouped.append(repo)

    ordered = [repo for members in groups.values() for repo in members]
    return ordered + ungrouped
