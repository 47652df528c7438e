"""Latest command - bring the current work item's repositories up to date."""

from __future__ import annotations

import typer

from kira.cli.context import build_context
from kira.core.result import Err, Ok
from kira.output.errors import latest_error_exit_code, print_latest_error
from kira.services.latest import LatestService


def latest(
    no_pop_stash: bool = typer.Option(
        False,
        "--no-pop-stash",
        help="Leave auto-stashed changes in the stash after rebasing",
    ),
    abort_on_conflict: bool = typer.Option(
        False,
        "--abort-on-conflict",
        help="Abort the rebase (and restore stashed changes) when it hits conflicts",
    ),
) -> None:
    """Fetch trunk and rebase every repository of the current work item.

    Shows conflicts instead when some are pending, and continues
    in-progress rebases once they are resolved.
    """
    ctx = build_context()
    result = LatestService(
        workspace=ctx.workspace,
        config=ctx.config,
        console=ctx.console,
    ).run(no_pop_stash=no_pop_stash, abort_on_conflict=abort_on_conflict)

    match result:
        case Err(error):
            print_latest_error(error, ctx.console)
            raise typer.Exit(code=latest_error_exit_code(error))
        case Ok(_):
            pass
