"""Exit codes for the kira CLI.

Values are process exit codes and must stay stable:
- 0: Success
- 1: User error (no work item in progress, ambiguous work item)
- 2: Environment error (workspace, kira.yml, repository validation, trunk resolution)
- 3: Git error (an update or rebase continuation failed)
- 4: Conflicts present (conflicts were displayed for resolution)
- 5: Blocked (in-progress merge or repositories in error state)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    GIT_ERROR = 3
    CONFLICTS = 4
    BLOCKED = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
