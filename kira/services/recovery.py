"""Per-repository reporting and recovery guidance after an update pass."""

from __future__ import annotations

from collections.abc import Sequence

from kira.output.console import ConsoleProtocol, Style

from .update import RepositoryOperationResult

__all__ = ["recovery_steps", "report_results"]

RULE = "─" * 63


def recovery_steps(result: RepositoryOperationResult) -> list[str]:
    """Recovery guidance derived from the result flags alone."""
    path = result.repo.path
    steps: list[str] = []

    if result.rebase_attempted:
        if result.rebase_had_conflicts and not result.rebase_aborted:
            steps.append(
                f"Resolve merge conflicts in {path}, stage changes with 'git add', then either "
                "run 'git rebase --continue' or 'kira latest' again in that repository"
            )
        elif not result.rebase_aborted:
            steps.append(
                f"Check rebase state in {path} with 'git status'. If a rebase is still in "
                "progress and you do not want to keep it, run 'git rebase --abort'."
            )
        else:
            steps.append(
                f"Rebase was aborted for {path}. Inspect the error above, fix the issue, "
                "and re-run 'kira latest' when ready."
            )

    if result.had_stash and not result.stash_popped:
        if result.rebase_aborted or not result.rebase_attempted:
            steps.append(f"Run 'git stash pop' in {path} to restore stashed changes")
        elif result.rebase_had_conflicts:
            steps.append(
                "Your uncommitted changes were stashed and kept while the rebase is in "
                f"progress. After the rebase completes, run 'git stash pop' in {path} to "
                "restore them."
            )
        else:
            steps.append(
                f"Use 'git stash list' and 'git stash pop' in {path} to restore any stashed "
                "changes once the repository is in a clean state."
            )

    return steps


def _report_success(console: ConsoleProtocol, result: RepositoryOperationResult) -> None:
    console.print(f"  ✓ {result.repo.name}: SUCCESS", Style.SUCCESS)
    if result.steps:
        console.print(f"    Completed: {', '.join(result.steps)}", Style.DIM)
    if result.had_stash and not result.stash_popped:
        console.print(
            "    Note: Changes were stashed and remain in stash (use 'git stash pop' to restore)",
            Style.WARNING,
        )


def _report_failure(console: ConsoleProtocol, result: RepositoryOperationResult) -> None:
    console.print(f"  ✗ {result.repo.name}: FAILED", Style.ERROR)
    console.print(f"    Error: {result.error}")
    if result.steps:
        console.print(f"    Completed steps: {', '.join(result.steps)}", Style.DIM)
    steps = recovery_steps(result)
    if steps:
        console.print("    Recovery steps:")
        for step in steps:
            console.print(f"      - {step}")


def report_results(console: ConsoleProtocol, results: Sequence[RepositoryOperationResult]) -> bool:
    """Print the outcome of every repository. Returns True if all succeeded."""
    console.header("Operation Results:")
    console.print(RULE, Style.DIM)

    failed: list[RepositoryOperationResult] = []
    for result in results:
        if result.succeeded:
            _report_success(console, result)
        else:
            failed.append(result)
            _report_failure(console, result)

    console.print(RULE, Style.DIM)
    console.print(f"Summary: {len(results) - len(failed)} succeeded, {len(failed)} failed")

    if failed:
        console.newline()
        console.print("Next steps for failed repositories:", Style.BOLD)
        for result in failed:
            console.print(f"  {result.repo.name}:")
            steps = recovery_steps(result)
            for number, step in enumerate(steps, start=1):
                console.print(f"    {number}. {step}")
            console.print(
                f"    {len(steps) + 1}. Fix the issue described above and run 'kira latest' again"
            )
        return False

    return True
