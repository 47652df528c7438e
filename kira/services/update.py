"""Parallel fetch-and-rebase across repositories.

Each repository gets one worker that runs its steps strictly in order:
stash (if dirty), fetch, rebase onto ``<remote>/<trunk>`` (or a trunk
update when the trunk itself is checked out), then stash pop. A failing
step triggers compensation (rebase abort, stash restore) for that
repository only; the other workers carry on.

Usage:
    orchestrator = UpdateOrchestrator(console=console)
    results = orchestrator.run(repos, no_pop_stash=False, abort_on_conflict=False)
    failed = [r for r in results if not r.succeeded]
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from kira.core.config import DEFAULT_COMMAND_TIMEOUT, DEFAULT_NETWORK_TIMEOUT
from kira.core.result import Err, Ok
from kira.git.repository import GitError, Repository, RepositoryInfo, mentions_conflict
from kira.output.console import ConsoleProtocol, Style

__all__ = [
    "ContinueResult",
    "RepositoryOperationResult",
    "ResultsCollector",
    "UpdateOrchestrator",
    "classify_fetch_error",
    "stash_message",
]

_NETWORK_PATTERNS = (
    "could not resolve host",
    "unable to access",
    "connection refused",
    "network",
    "timeout",
    "connection timed out",
)

_PERMISSION_PATTERNS = (
    "permission denied",
    "authentication failed",
    "403",
    "401",
    "could not read from remote",
    "access denied",
    "auth failed",
    "unauthorized",
    "forbidden",
)

RepositoryFactory = Callable[[RepositoryInfo], Repository]


def stash_message(repo: RepositoryInfo) -> str:
    return f"kira latest: auto-stash before rebase on {repo.name}"


@dataclass(slots=True)
class RepositoryOperationResult:
    """Outcome of one repository's update attempt.

    Built up by exactly one worker, then handed to the collector and never
    modified again.
    """

    repo: RepositoryInfo
    steps: list[str] = field(default_factory=list)
    error: str | None = None
    had_stash: bool = False
    stash_popped: bool = False
    rebase_attempted: bool = False
    rebase_aborted: bool = False
    rebase_had_conflicts: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def step(self, label: str) -> None:
        self.steps.append(label)

    def fail(self, label: str, error: str) -> None:
        self.steps.append(f"{label} (failed)")
        self.error = error


@dataclass(frozen=True, slots=True)
class ContinueResult:
    repo: RepositoryInfo
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ResultsCollector:
    """Shared sink for worker output.

    Progress lines and result slots go through one lock, so concurrent
    workers never interleave a line or race on a slot.
    """

    def __init__(self, console: ConsoleProtocol, size: int) -> None:
        self._console = console
        self._lock = threading.Lock()
        self._results: list[RepositoryOperationResult | None] = [None] * size

    def progress(self, repo: RepositoryInfo, operation: str) -> None:
        with self._lock:
            self._console.print(f"  Updating {repo.name}: {operation}...", Style.DIM)

    def record(self, index: int, result: RepositoryOperationResult) -> None:
        with self._lock:
            if self._results[index] is not None:
                raise RuntimeError(f"result slot {index} written twice")
            self._results[index] = result

    def results(self) -> list[RepositoryOperationResult]:
        with self._lock:
            missing = [i for i, r in enumerate(self._results) if r is None]
            if missing:
                raise RuntimeError(f"no result recorded for slots {missing}")
            return [r for r in self._results if r is not None]


def classify_fetch_error(repo: RepositoryInfo, error: GitError) -> str:
    """Turn a fetch failure into a message that says what to check.

    Classification only changes the wording; every class is a step failure.
    """
    where = repo.upstream
    if error.timed_out:
        return f"failed to fetch from {where}: timed out. Check network connection and try again"

    text = error.message.lower()
    if any(p in text for p in _NETWORK_PATTERNS):
        return (
            f"failed to fetch from {where}: network error occurred. "
            f"Check network connection and try again: {error.message}"
        )
    if any(p in text for p in _PERMISSION_PATTERNS):
        return (
            f"failed to fetch from {where}: permission or authentication error. "
            f"Check remote access and credentials: {error.message}"
        )
    if "fatal:" in text and ("doesn't exist" in text or "couldn't find remote ref" in text):
        return (
            f"failed to fetch from {where}: branch '{repo.trunk_branch}' "
            f"does not exist on remote '{repo.remote}'"
        )
    return f"failed to fetch from {where}: {error.message}"


class UpdateOrchestrator:
    """Runs the update cycle for every repository in parallel."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        network_timeout: float = DEFAULT_NETWORK_TIMEOUT,
        repository_factory: RepositoryFactory | None = None,
    ) -> None:
        self._console = console
        self._command_timeout = command_timeout
        self._network_timeout = network_timeout
        self._repository_factory = repository_factory or self._open

    def _open(self, repo: RepositoryInfo) -> Repository:
        return Repository(
            repo.path,
            timeout=self._command_timeout,
            network_timeout=self._network_timeout,
        )

    def run(
        self,
        repos: Sequence[RepositoryInfo],
        *,
        no_pop_stash: bool = False,
        abort_on_conflict: bool = False,
    ) -> list[RepositoryOperationResult]:
        """Update all repositories concurrently; results come back in input order."""
        if not repos:
            return []

        collector = ResultsCollector(self._console, len(repos))
        with ThreadPoolExecutor(max_workers=len(repos), thread_name_prefix="kira-latest") as pool:
            futures = [
                pool.submit(
                    self._worker,
                    index,
                    repo,
                    collector,
                    no_pop_stash,
                    abort_on_conflict,
                )
                for index, repo in enumerate(repos)
            ]
        for future in futures:
            future.result()
        return collector.results()

    def _worker(
        self,
        index: int,
        repo: RepositoryInfo,
        collector: ResultsCollector,
        no_pop_stash: bool,
        abort_on_conflict: bool,
    ) -> None:
        try:
            result = self.update_repository(
                repo,
                collector,
                no_pop_stash=no_pop_stash,
                abort_on_conflict=abort_on_conflict,
            )
        except Exception as e:  # noqa: BLE001
            result = RepositoryOperationResult(repo=repo)
            result.fail("update", f"unexpected error: {e}")
        collector.record(index, result)

    def update_repository(
        self,
        repo: RepositoryInfo,
        collector: ResultsCollector,
        *,
        no_pop_stash: bool = False,
        abort_on_conflict: bool = False,
    ) -> RepositoryOperationResult:
        """Run the full cycle for one repository (sequential steps)."""
        git = self._repository_factory(repo)
        result = RepositoryOperationResult(repo=repo)

        if not self._stash(git, result, collector):
            return result

        if not self._fetch(git, result, collector) or not self._rebase(git, result, collector):
            self._compensate(git, result, no_pop_stash, abort_on_conflict)
            return result

        if result.had_stash:
            if no_pop_stash:
                result.step("stash (kept)")
            else:
                collector.progress(repo, "popping stash")
                self._pop_after_success(git, result)

        collector.progress(repo, "complete")
        return result

    def _stash(
        self,
        git: Repository,
        result: RepositoryOperationResult,
        collector: ResultsCollector,
    ) -> bool:
        match git.has_changes():
            case Err(e):
                result.fail("stash", f"failed to check for uncommitted changes: {e.message}")
                return False
            case Ok(False):
                return True
            case Ok(_):
                pass

        collector.progress(result.repo, "stashing changes")
        match git.stash_push(stash_message(result.repo)):
            case Err(e):
                result.fail("stash", f"failed to stash changes: {e.message}")
                return False
            case Ok(stashed):
                if stashed:
                    result.had_stash = True
                    result.step("stash")
                return True

    def _fetch(
        self,
        git: Repository,
        result: RepositoryOperationResult,
        collector: ResultsCollector,
    ) -> bool:
        repo = result.repo
        collector.progress(repo, "fetching")

        if not git.remote_exists(repo.remote):
            result.fail(
                "fetch",
                f"fetch failed: remote '{repo.remote}' does not exist for repository {repo.name}",
            )
            return False

        match git.fetch(repo.remote, repo.trunk_branch):
            case Err(e):
                result.fail("fetch", f"fetch failed: {classify_fetch_error(repo, e)}")
                return False
            case Ok(_):
                result.step("fetch")
                return True

    def _rebase(
        self,
        git: Repository,
        result: RepositoryOperationResult,
        collector: ResultsCollector,
    ) -> bool:
        repo = result.repo
        match git.current_branch():
            case Err(e):
                result.fail("branch-check", f"failed to determine current branch: {e.message}")
                return False
            case Ok(branch):
                on_trunk = branch == repo.trunk_branch

        label = "trunk-update" if on_trunk else "rebase"
        collector.progress(repo, "updating trunk" if on_trunk else "rebasing")

        result.rebase_attempted = True
        match git.rebase(repo.upstream):
            case Ok(_):
                result.step(label)
                return True
            case Err(e):
                if mentions_conflict(e.message):
                    result.rebase_had_conflicts = True
                    message = (
                        f"{label} failed due to conflicts. "
                        f"Resolve conflicts and run 'kira latest' again: {e.message}"
                    )
                elif e.timed_out:
                    message = f"{label} timed out: {e.message}"
                elif "fatal:" in e.message and "doesn't exist" in e.message:
                    message = (
                        f"{label} failed: remote reference '{repo.upstream}' does not exist. "
                        "Ensure fetch completed successfully"
                    )
                else:
                    message = f"{label} failed: {e.message}"
                result.fail(label, message)
                return False

    def _compensate(
        self,
        git: Repository,
        result: RepositoryOperationResult,
        no_pop_stash: bool,
        abort_on_conflict: bool,
    ) -> None:
        """Undo what can be undone after a fetch or rebase failure.

        A conflicted rebase is left in place for the user unless
        ``abort_on_conflict``; any other rebase failure is aborted. The stash
        is only restored onto a tree that is back to its pre-rebase state.
        """
        should_abort = result.rebase_attempted and (
            abort_on_conflict or not result.rebase_had_conflicts
        )
        if should_abort:
            match git.rebase_abort():
                case Ok(_):
                    result.rebase_aborted = True
                    result.step("rebase-abort")
                case Err(_):
                    result.step("rebase-abort (failed)")

        if not result.had_stash:
            return

        safe_to_pop = not result.rebase_attempted or result.rebase_aborted
        if no_pop_stash or not safe_to_pop:
            result.step("stash (kept)")
            return

        match git.stash_pop():
            case Ok(_):
                result.stash_popped = True
                result.step("stash-pop")
            case Err(_):
                result.step("stash-pop (failed)")

    def _pop_after_success(self, git: Repository, result: RepositoryOperationResult) -> None:
        match git.stash_pop():
            case Ok(_):
                result.stash_popped = True
                result.step("stash-pop")
            case Err(e) if mentions_conflict(e.message):
                result.fail(
                    "stash-pop",
                    "rebase succeeded but stash pop failed due to conflicts. "
                    f"Resolve conflicts manually: {e.message}",
                )
            case Err(e):
                result.fail(
                    "stash-pop",
                    f"rebase succeeded but failed to pop stash: {e.message}. "
                    "Use 'git stash pop' to restore your changes",
                )

    def continue_rebases(self, repos: Sequence[RepositoryInfo]) -> list[ContinueResult]:
        """Run ``git rebase --continue`` in each repository, stopping at the first failure.

        Failures are left as they are; the user is in the middle of resolving.
        """
        results: list[ContinueResult] = []
        for repo in repos:
            self._console.print(f"  Updating {repo.name}: rebase-continue...", Style.DIM)
            match self._repository_factory(repo).rebase_continue():
                case Ok(_):
                    results.append(ContinueResult(repo=repo))
                case Err(e):
                    results.append(ContinueResult(repo=repo, error=e.message))
                    break
        return results
