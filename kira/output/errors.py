"""Error presentation for ``kira latest``.

Centralized message formatting and exit code mapping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kira.core.errors import ErrorCode
from kira.output.console import Style

if TYPE_CHECKING:
    from kira.output.console import ConsoleProtocol
    from kira.services.latest import LatestError

__all__ = ["latest_error_exit_code", "print_latest_error"]


def print_latest_error(error: LatestError, console: ConsoleProtocol) -> None:
    """Print the terminal error of a ``kira latest`` run."""
    console.newline()
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def latest_error_exit_code(error: LatestError) -> int:
    match error.kind:
        case "work_item":
            return int(ErrorCode.USER_ERROR)
        case "discovery" | "no_repositories":
            return int(ErrorCode.ENV_ERROR)
        case "continue_failed" | "update_failed":
            return int(ErrorCode.GIT_ERROR)
        case "conflicts":
            return int(ErrorCode.CONFLICTS)
        case "blocked":
            return int(ErrorCode.BLOCKED)
    # Fallback for exhaustiveness
    return int(ErrorCode.GIT_ERROR)
