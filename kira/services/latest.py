"""The ``kira latest`` flow.

Discover the repositories of the current work item, classify them, and
then do exactly one of:

- show conflicts (nothing is changed),
- continue in-progress rebases,
- refuse to start because something is blocking,
- fetch and rebase every repository in parallel.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from kira.core.config import Config
from kira.core.result import Err, Ok, Result
from kira.core.workspace import Workspace
from kira.git.conflicts import RepositoryConflicts, collect_repository_conflicts
from kira.git.repository import Repository, RepositoryInfo
from kira.git.state import (
    AggregatedState,
    RepositoryState,
    RepositoryStateInfo,
    aggregate_states,
    blocking_states,
    detect_all,
    resolution_hint,
)
from kira.output.conflicts import print_conflicts
from kira.output.console import ConsoleProtocol, Style

from .discovery import Discovery, DiscoveryError, discover_repositories, order_repositories
from .recovery import report_results
from .update import ContinueResult, UpdateOrchestrator

__all__ = ["LatestError", "LatestErrorKind", "LatestService"]

LatestErrorKind = Literal[
    "work_item",
    "discovery",
    "no_repositories",
    "conflicts",
    "continue_failed",
    "blocked",
    "update_failed",
]

_STATE_SYMBOLS: dict[RepositoryState, str] = {
    RepositoryState.READY_FOR_UPDATE: "✓",
    RepositoryState.CONFLICTS_EXIST: "✗",
    RepositoryState.DIRTY_WORKING_DIRECTORY: "!",
    RepositoryState.IN_REBASE: "⟳",
    RepositoryState.IN_MERGE: "⟳",
    RepositoryState.ERROR: "⚠",
}

_STATE_STYLES: dict[RepositoryState, Style] = {
    RepositoryState.READY_FOR_UPDATE: Style.SUCCESS,
    RepositoryState.CONFLICTS_EXIST: Style.ERROR,
    RepositoryState.DIRTY_WORKING_DIRECTORY: Style.WARNING,
    RepositoryState.IN_REBASE: Style.WARNING,
    RepositoryState.IN_MERGE: Style.WARNING,
    RepositoryState.ERROR: Style.ERROR,
}


@dataclass(frozen=True, slots=True)
class LatestError:
    kind: LatestErrorKind
    message: str
    hint: str | None = None


class LatestService:
    """Keeps the current work item's repositories up to date with trunk."""

    def __init__(
        self,
        *,
        workspace: Workspace,
        config: Config,
        console: ConsoleProtocol,
        orchestrator: UpdateOrchestrator | None = None,
    ) -> None:
        self._workspace = workspace
        self._config = config
        self._console = console
        self._orchestrator = orchestrator or UpdateOrchestrator(
            console=console,
            command_timeout=config.git.command_timeout,
            network_timeout=config.git.network_timeout,
        )

    def run(
        self,
        *,
        no_pop_stash: bool = False,
        abort_on_conflict: bool = False,
    ) -> Result[None, LatestError]:
        match discover_repositories(self._config, self._workspace):
            case Err(e):
                return Err(_discovery_error(e))
            case Ok(discovery):
                pass

        repos = discovery.repositories
        if not repos:
            return Err(
                LatestError(
                    kind="no_repositories",
                    message="no repositories found for current work item",
                    hint="Check workspace.projects in kira.yml",
                )
            )

        self._show_discovery(discovery)

        self._console.header("Checking repository state...")
        states = detect_all(repos, timeout=self._config.git.command_timeout)
        aggregated = aggregate_states(states)
        self._show_states(aggregated)

        if aggregated.overall_state is RepositoryState.CONFLICTS_EXIST:
            return self._show_conflicts(aggregated)

        if aggregated.overall_state is RepositoryState.IN_REBASE:
            return self._continue_rebases(aggregated)

        blocking = blocking_states(aggregated)
        if blocking:
            return self._refuse(blocking)

        ready = [
            info.repo
            for info in states
            if info.state
            in (RepositoryState.READY_FOR_UPDATE, RepositoryState.DIRTY_WORKING_DIRECTORY)
        ]
        return self._update(
            ready,
            dirty=aggregated.dirty,
            no_pop_stash=no_pop_stash,
            abort_on_conflict=abort_on_conflict,
        )

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def _show_discovery(self, discovery: Discovery) -> None:
        item = discovery.work_item
        label = item.id or item.path.stem
        if item.title:
            label = f"{label}: {item.title}"
        self._console.print(f"Work item: {label}", Style.BOLD)
        self._console.print(
            f"Discovered {len(discovery.repositories)} repository(ies) "
            f"({discovery.topology}) for current work item:"
        )
        for repo in discovery.repositories:
            self._console.print(
                f"  - {repo.name}: {repo.path} (trunk: {repo.trunk_branch}, "
                f"remote: {repo.remote}){self._branch_note(repo)}"
            )

    def _branch_note(self, repo: RepositoryInfo) -> str:
        git = Repository(repo.path, timeout=self._config.git.command_timeout)
        match git.current_branch():
            case Ok(branch) if branch == repo.trunk_branch:
                return " [on trunk]"
            case Ok(_):
                return " [on feature branch]"
            case Err(_):
                return ""

    def _show_states(self, aggregated: AggregatedState) -> None:
        self._console.header("Repository State Summary:")
        for info in aggregated.states:
            line = f"  {_STATE_SYMBOLS[info.state]} {info.name}: {info.state}"
            if info.detail:
                line += f" ({info.detail})"
            if info.error:
                line += f" - Error: {info.error}"
            self._console.print(line, _STATE_STYLES[info.state])

        self._console.newline()
        self._console.print(f"Overall State: {aggregated.overall_state}", Style.BOLD)
        buckets = (
            ("Repositories with conflicts", aggregated.conflicting),
            ("Repositories in operation", aggregated.in_operation),
            ("Repositories with uncommitted changes", aggregated.dirty),
            ("Repositories with errors", aggregated.errored),
            ("Repositories ready for update", aggregated.ready),
        )
        for title, names in buckets:
            if names:
                self._console.print(f"  {title}: {', '.join(names)}", Style.DIM)

    # -------------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------------

    def _show_conflicts(self, aggregated: AggregatedState) -> Result[None, LatestError]:
        collected: list[RepositoryConflicts] = []
        for info in aggregated.with_state(RepositoryState.CONFLICTS_EXIST):
            match collect_repository_conflicts(
                info.repo, Repository(info.repo.path, timeout=self._config.git.command_timeout)
            ):
                case Err(message):
                    self._console.warning(
                        f"failed to parse conflicts from repository {info.name}: {message}"
                    )
                case Ok(conflicts) if conflicts.files:
                    collected.append(conflicts)
                case Ok(_):
                    pass

        print_conflicts(self._console, collected)
        return Err(
            LatestError(
                kind="conflicts",
                message=f"merge conflicts in: {', '.join(aggregated.conflicting)}",
                hint="Resolve the conflicts, 'git add' the files, then run 'kira latest' again",
            )
        )

    def _continue_rebases(self, aggregated: AggregatedState) -> Result[None, LatestError]:
        repos = [info.repo for info in aggregated.with_state(RepositoryState.IN_REBASE)]
        self._console.newline()
        self._console.print(
            "Repositories with in-progress rebases detected. "
            "Attempting to continue rebase operations..."
        )

        results = self._orchestrator.continue_rebases(repos)
        failed = self._report_continuations(results)
        if failed is not None:
            return Err(
                LatestError(
                    kind="continue_failed",
                    message=f"failed to continue rebase for {failed.repo.name}: {failed.error}",
                    hint=(
                        f"Resolve any reported issues or conflicts in {failed.repo.path}, "
                        "then run 'kira latest' again"
                    ),
                )
            )

        self._console.newline()
        self._console.print(
            "Rebase operations continued. If new conflicts were introduced, "
            "resolve them and run 'kira latest' again."
        )

        # Merges and errors in sibling repositories still need the user.
        remaining = [
            info
            for info in blocking_states(aggregated)
            if info.state is not RepositoryState.IN_REBASE
        ]
        if remaining:
            return self._refuse(remaining)
        return Ok(None)

    def _report_continuations(self, results: Sequence[ContinueResult]) -> ContinueResult | None:
        for result in results:
            if result.succeeded:
                self._console.print(
                    f"  ✓ {result.repo.name}: rebase continue completed", Style.SUCCESS
                )
            else:
                self._console.print(
                    f"  ✗ {result.repo.name}: rebase --continue failed: {result.error}",
                    Style.ERROR,
                )
                return result
        return None

    def _refuse(self, blocking: Sequence[RepositoryStateInfo]) -> Result[None, LatestError]:
        self._console.newline()
        self._console.error("cannot proceed with update: repositories have blocking states")
        for info in blocking:
            reason = info.error or info.detail or str(info.state)
            self._console.print(f"  - {info.name}: {info.state} ({reason})")
            hint = resolution_hint(info.state)
            if hint:
                self._console.print(f"    {hint}", Style.DIM)

        return Err(
            LatestError(
                kind="blocked",
                message="blocked by: " + ", ".join(info.name for info in blocking),
                hint="Resolve the blocking states above, then run 'kira latest' again",
            )
        )

    def _update(
        self,
        repos: Sequence[RepositoryInfo],
        *,
        dirty: Sequence[str],
        no_pop_stash: bool,
        abort_on_conflict: bool,
    ) -> Result[None, LatestError]:
        self._console.newline()
        if dirty:
            self._console.print(
                "Some repositories have uncommitted changes. They will be stashed before rebase."
            )
            if no_pop_stash:
                self._console.print("Changes will remain stashed (--no-pop-stash was specified).")
            else:
                self._console.print("Changes will be automatically popped after successful rebase.")
        else:
            self._console.print(
                "All repositories are ready for update. Proceeding with fetch and rebase..."
            )
        self._console.newline()

        results = self._orchestrator.run(
            order_repositories(repos),
            no_pop_stash=no_pop_stash,
            abort_on_conflict=abort_on_conflict,
        )
        if not report_results(self._console, results):
            failed = [r.repo.name for r in results if not r.succeeded]
            return Err(
                LatestError(
                    kind="update_failed",
                    message=f"some repositories failed to update: {', '.join(failed)}",
                )
            )

        self._console.newline()
        self._console.success("All repositories updated successfully!")
        return Ok(None)


def _discovery_error(error: DiscoveryError) -> LatestError:
    kind: LatestErrorKind = "work_item" if error.kind == "work_item" else "discovery"
    return LatestError(kind=kind, message=error.message, hint=error.hint)
